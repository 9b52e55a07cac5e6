from datetime import date, datetime
from fitcoach.core.schemas import CamelModel
from pydantic import Field
from typing import Optional


class NutritionPlanCreate(CamelModel):
    client_id: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    protein_target: int = Field(ge=0)
    carbs_target: int = Field(ge=0)
    fat_target: int = Field(ge=0)
    calories_target: int = Field(ge=0)
    notes: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    # Ignored: both are set from the caller
    coach_id: Optional[str] = None
    assigned_by: Optional[str] = None


class NutritionPlanResponse(CamelModel):
    id: str
    client_id: str
    coach_id: str
    assigned_by: str
    title: str
    description: Optional[str] = None
    protein_target: int
    carbs_target: int
    fat_target: int
    calories_target: int
    notes: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
