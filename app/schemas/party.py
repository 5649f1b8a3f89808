"""
Party-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

class JoinRequest(BaseModel):
    """Join the waitlist"""
    name: StrictStr = Field(min_length=1)
    party_size: StrictInt = Field(alias="partySize", gt=0)
    client_id: StrictStr = Field(alias="clientId", min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)

class PartyStatusResponse(BaseModel):
    """Outcome of a join or cancel; a repeated join gets the same shape"""
    message: str
    party_id: str = Field(serialization_alias="partyId")
    status: str

class PartyResponse(BaseModel):
    """Full party record"""
    id: str
    client_id: str
    name: str
    party_size: int
    status: str
    joined_at: datetime
    ready_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    service_ends_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class WaitlistSnapshot(BaseModel):
    """Queue contents and free seats, as pushed to observers"""
    waitlist: List[PartyResponse]
    available_seats: int = Field(serialization_alias="availableSeats")
