from fastapi import APIRouter, Depends, Query
from fitcoach.core.dependencies import get_current_caller, get_gateway, require_role
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity, Role
from fitcoach.modules.workouts.schemas import (
    WorkoutAssignmentCreate, WorkoutAssignmentFeedback, WorkoutAssignmentResponse, WorkoutAssignmentStatusUpdate
)
from fitcoach.modules.workouts.service import WorkoutAssignmentService
from typing import List, Optional

router = APIRouter(prefix="/workout-assignments", tags=["workouts"])


def get_workout_assignment_service(gateway: TenantGateway = Depends(get_gateway)) -> WorkoutAssignmentService:
    return WorkoutAssignmentService(gateway)


@router.post("", response_model=WorkoutAssignmentResponse, status_code=201)
def assign_workout(
    data: WorkoutAssignmentCreate,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: WorkoutAssignmentService = Depends(get_workout_assignment_service)
):
    """Schedule a workout for a managed client (coaches only)"""
    return service.assign(data, caller)


@router.get("", response_model=List[WorkoutAssignmentResponse])
def list_workout_assignments(
    client_id: Optional[str] = Query(None, alias="clientId"),
    upcoming: bool = False,
    caller: CallerIdentity = Depends(get_current_caller),
    service: WorkoutAssignmentService = Depends(get_workout_assignment_service)
):
    return service.list_assignments(caller, client_id, upcoming)


@router.patch("/{assignment_id}/status", response_model=WorkoutAssignmentResponse)
def update_workout_assignment_status(
    assignment_id: str,
    data: WorkoutAssignmentStatusUpdate,
    service: WorkoutAssignmentService = Depends(get_workout_assignment_service)
):
    return service.update_status(assignment_id, data)


@router.patch("/{assignment_id}/feedback", response_model=WorkoutAssignmentResponse)
def leave_workout_feedback(
    assignment_id: str,
    data: WorkoutAssignmentFeedback,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: WorkoutAssignmentService = Depends(get_workout_assignment_service)
):
    """Coach feedback on a scheduled workout (coaches only)"""
    return service.leave_feedback(assignment_id, data)


@router.delete("/{assignment_id}", status_code=204)
def delete_workout_assignment(
    assignment_id: str,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: WorkoutAssignmentService = Depends(get_workout_assignment_service)
):
    service.delete_assignment(assignment_id)
    return None
