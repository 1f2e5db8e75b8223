from pydantic import BaseModel, ConfigDict, Field, EmailStr
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime

COMPLAINT_STATUSES = ('Pending', 'In Progress', 'Resolved')

ComplaintStatus = Literal['Pending', 'In Progress', 'Resolved']


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Users collection
class User(CamelModel):
    name: str = Field(..., description="Staff member name")
    email: EmailStr = Field(..., description="Login email, stored lowercase")
    password_hash: str = Field(..., description="<salt>$<sha256 hex>")


class MapCoordinates(BaseModel):
    lat: float
    lng: float


# Complaints collection
class Complaint(CamelModel):
    id: str = Field(..., description="Public complaint ID e.g. CMP1760781234567A1B2")
    full_name: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    route_number: Optional[str] = None
    location: Optional[str] = None
    complaint_type: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None

    image_name: Optional[str] = Field(None, description="Stored upload filename")
    image_url: Optional[str] = Field(None, description="Public URL of the uploaded image")

    map_pin: bool = False
    map_coordinates: Optional[MapCoordinates] = None

    timestamp: Optional[str] = Field(None, description="Human readable submission time")
    status: ComplaintStatus = Field('Pending', description="Complaint status")

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Request bodies

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class StatusUpdateRequest(BaseModel):
    status: str
