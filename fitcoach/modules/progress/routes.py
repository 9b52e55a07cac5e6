from datetime import date
from fastapi import APIRouter, Depends, Query
from fitcoach.core.dependencies import get_current_caller, get_gateway
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.progress.schemas import (
    WeightLogCreate, WeightLogResponse, WorkoutLogCreate, WorkoutLogResponse, WorkoutLogUpdate
)
from fitcoach.modules.progress.service import ProgressService
from typing import List, Optional

router = APIRouter(tags=["progress"])


def get_progress_service(gateway: TenantGateway = Depends(get_gateway)) -> ProgressService:
    return ProgressService(gateway)


@router.post("/weight-logs", response_model=WeightLogResponse, status_code=201)
def log_weight(
    data: WeightLogCreate,
    caller: CallerIdentity = Depends(get_current_caller),
    service: ProgressService = Depends(get_progress_service)
):
    return service.log_weight(data, caller)


@router.get("/weight-logs", response_model=List[WeightLogResponse])
def list_weight_logs(
    client_id: Optional[str] = Query(None, alias="clientId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: ProgressService = Depends(get_progress_service)
):
    return service.list_weight_logs(caller, client_id, start_date, end_date)


@router.post("/workout-logs", response_model=WorkoutLogResponse, status_code=201)
def log_workout(
    data: WorkoutLogCreate,
    caller: CallerIdentity = Depends(get_current_caller),
    service: ProgressService = Depends(get_progress_service)
):
    return service.log_workout(data, caller)


@router.get("/workout-logs", response_model=List[WorkoutLogResponse])
def list_workout_logs(
    client_id: Optional[str] = Query(None, alias="clientId"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: ProgressService = Depends(get_progress_service)
):
    return service.list_workout_logs(caller, client_id)


@router.patch("/workout-logs/{log_id}", response_model=WorkoutLogResponse)
def update_workout_log(
    log_id: str,
    data: WorkoutLogUpdate,
    service: ProgressService = Depends(get_progress_service)
):
    return service.update_workout_log(log_id, data)
