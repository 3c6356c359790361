"""
Helper utility functions
"""
from bson import ObjectId
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import pytz

PKT = pytz.timezone('Asia/Karachi')

def utc_now() -> datetime:
    """Naive UTC timestamp, the same shape the Mongo driver returns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id coming from a caller, None when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None

def serialize_doc(doc: Dict) -> Dict:
    """Convert MongoDB document to JSON-serializable format"""
    if doc is None:
        return None

    doc = dict(doc)
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            doc[key] = str(value)
        elif isinstance(value, datetime):
            if value.tzinfo is None:
                value = pytz.utc.localize(value)
            doc[key] = value.astimezone(PKT).isoformat()
        elif isinstance(value, list):
            doc[key] = [serialize_doc(item) if isinstance(item, dict) else item for item in value]
        elif isinstance(value, dict):
            doc[key] = serialize_doc(value)

    return doc

def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC so stored datetimes compare cleanly"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
