from datetime import datetime
from enum import Enum
from fitcoach.core.schemas import CamelModel
from typing import Optional


class CheckinStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CheckinCreate(CamelModel):
    client_id: str
    scheduled_for: datetime
    ends_at: datetime
    notes: Optional[str] = None
    coach_id: Optional[str] = None
    created_by: Optional[str] = None


class CheckinStatusUpdate(CamelModel):
    status: CheckinStatus


class CheckinResponse(CamelModel):
    id: str
    client_id: str
    coach_id: str
    scheduled_for: datetime
    ends_at: datetime
    status: CheckinStatus = CheckinStatus.SCHEDULED
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
