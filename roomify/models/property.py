from pydantic import BaseModel, Field
from enum import Enum
from typing import Any, Dict, Optional


class PropertyType(str, Enum):
    SHARED_ROOM = "shared_room"
    FULL_HOUSE = "full_house"


class PropertyStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    RENTED = "rented"
    INACTIVE = "inactive"
    REJECTED = "rejected"


class Rent(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = "PKR"
    security_deposit: float = 0


class SharedRoomDetails(BaseModel):
    total_beds: int = Field(..., ge=1)
    available_beds: int = Field(..., ge=0)
    current_occupants: int = 0


class Availability(BaseModel):
    is_available: bool = True


class Property(BaseModel):
    """The slice of a property document the booking engine reads"""
    id: str = Field(alias="_id")
    owner_id: str
    title: str = ""
    property_type: PropertyType
    status: PropertyStatus = PropertyStatus.PENDING_VERIFICATION
    rent: Rent
    availability: Availability = Field(default_factory=Availability)
    shared_room_details: Optional[SharedRoomDetails] = None
    inquiries: int = 0

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Property":
        return cls.model_validate({**doc, "_id": str(doc["_id"])})

    @property
    def is_bookable(self) -> bool:
        return self.status == PropertyStatus.ACTIVE and self.availability.is_available
