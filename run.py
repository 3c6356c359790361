import uvicorn
import os
import sys

if __name__ == "__main__":
    # Ensure usage of the current directory for imports
    sys.path.append(os.path.dirname(os.path.abspath(__file__)))

    from roomify.config.settings import settings

    print("🚀 Starting Roomify Bookings backend...")
    uvicorn.run("roomify.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
