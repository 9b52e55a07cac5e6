from datetime import date, datetime
from fitcoach.core.schemas import CamelModel
from pydantic import EmailStr, field_validator
from typing import Optional


class ClientCreate(CamelModel):
    # Set only when a client provisions their own profile; coaches invite by email
    user_id: Optional[str] = None
    invited_email: Optional[EmailStr] = None
    # Accepted for compatibility, always overwritten from the caller identity
    coach_id: Optional[str] = None
    created_by: Optional[str] = None
    phone: Optional[str] = None
    package_type: Optional[str] = None
    goals: Optional[str] = None
    notes: Optional[str] = None
    height: Optional[float] = None
    starting_weight: Optional[float] = None
    goal_weight: Optional[float] = None
    date_of_birth: Optional[date] = None

    @field_validator("invited_email")
    @classmethod
    def lower_case_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class ClientUpdate(CamelModel):
    phone: Optional[str] = None
    package_type: Optional[str] = None
    goals: Optional[str] = None
    notes: Optional[str] = None
    height: Optional[float] = None
    starting_weight: Optional[float] = None
    goal_weight: Optional[float] = None
    date_of_birth: Optional[date] = None


class ClientResponse(CamelModel):
    id: str
    user_id: Optional[str] = None
    coach_id: Optional[str] = None
    invited_email: Optional[str] = None
    created_by: str
    phone: Optional[str] = None
    package_type: Optional[str] = None
    goals: Optional[str] = None
    notes: Optional[str] = None
    height: Optional[float] = None
    starting_weight: Optional[float] = None
    goal_weight: Optional[float] = None
    date_of_birth: Optional[date] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
