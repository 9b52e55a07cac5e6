from datetime import date, datetime
from fitcoach.core.schemas import CamelModel
from pydantic import Field
from typing import Optional


class WeightLogCreate(CamelModel):
    client_id: Optional[str] = None
    weight: float = Field(gt=0, lt=1000)
    logged_on: date
    notes: Optional[str] = None
    created_by: Optional[str] = None


class WeightLogResponse(CamelModel):
    id: str
    client_id: str
    weight: float
    logged_on: date
    notes: Optional[str] = None
    created_by: str
    created_at: datetime


class WorkoutLogCreate(CamelModel):
    client_id: Optional[str] = None
    workout_name: str = Field(min_length=1, max_length=200)
    started_at: datetime
    ended_at: Optional[datetime] = None
    completed_exercises: int = Field(default=0, ge=0)
    notes: Optional[str] = None
    created_by: Optional[str] = None


class WorkoutLogUpdate(CamelModel):
    ended_at: Optional[datetime] = None
    completed_exercises: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class WorkoutLogResponse(CamelModel):
    id: str
    client_id: str
    workout_name: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    completed_exercises: int = 0
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
