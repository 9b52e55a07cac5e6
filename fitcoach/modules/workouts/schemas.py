from datetime import date, datetime
from enum import Enum
from fitcoach.core.schemas import CamelModel
from pydantic import Field
from typing import Optional


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class WorkoutAssignmentCreate(CamelModel):
    client_id: str
    workout_name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    scheduled_date: date
    notes: Optional[str] = None
    # Ignored: both are set from the caller
    coach_id: Optional[str] = None
    assigned_by: Optional[str] = None


class WorkoutAssignmentStatusUpdate(CamelModel):
    status: AssignmentStatus


class WorkoutAssignmentFeedback(CamelModel):
    coach_feedback: str = Field(min_length=1, max_length=5000)


class WorkoutAssignmentResponse(CamelModel):
    id: str
    client_id: str
    coach_id: str
    assigned_by: str
    workout_name: str
    description: Optional[str] = None
    scheduled_date: date
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    coach_feedback: Optional[str] = None
    created_at: datetime
