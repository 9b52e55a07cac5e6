import logging
from datetime import datetime, timezone
from fitcoach.core.audit import enforce_audit_fields, stamp_for_table
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.clients.service import resolve_client_id
from fitcoach.modules.workouts.schemas import (
    AssignmentStatus, WorkoutAssignmentCreate, WorkoutAssignmentFeedback,
    WorkoutAssignmentResponse, WorkoutAssignmentStatusUpdate
)
from typing import List, Optional

logger = logging.getLogger(__name__)


class WorkoutAssignmentService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def assign(self, data: WorkoutAssignmentCreate, caller: CallerIdentity) -> WorkoutAssignmentResponse:
        row = enforce_audit_fields(data.model_dump(), caller, ("coach_id",))
        row = stamp_for_table("workout_assignments", row, caller)
        row["status"] = AssignmentStatus.ASSIGNED.value
        created = self.gateway.create_workout_assignment(row)
        logger.info("Workout %s assigned to client %s by %s", created.get("id"), data.client_id, caller.id)
        return WorkoutAssignmentResponse.model_validate(created)

    def list_assignments(
        self,
        caller: CallerIdentity,
        client_id: Optional[str] = None,
        upcoming: bool = False,
    ) -> List[WorkoutAssignmentResponse]:
        resolved = resolve_client_id(self.gateway, caller, client_id)
        rows = self.gateway.get_workout_assignments(resolved, upcoming)
        return [WorkoutAssignmentResponse.model_validate(r) for r in rows]

    def update_status(self, assignment_id: str, data: WorkoutAssignmentStatusUpdate) -> WorkoutAssignmentResponse:
        """Move an assignment along; starting and completing are timestamped."""
        changes = {"status": data.status.value}
        now = datetime.now(timezone.utc)
        if data.status == AssignmentStatus.IN_PROGRESS:
            changes["started_at"] = now
        elif data.status == AssignmentStatus.COMPLETED:
            current = self.gateway.get_workout_assignment(assignment_id)
            if not current.get("started_at"):
                changes["started_at"] = now
            changes["completed_at"] = now
        updated = self.gateway.update_workout_assignment(assignment_id, changes)
        return WorkoutAssignmentResponse.model_validate(updated)

    def leave_feedback(self, assignment_id: str, data: WorkoutAssignmentFeedback) -> WorkoutAssignmentResponse:
        updated = self.gateway.update_workout_assignment(assignment_id, {"coach_feedback": data.coach_feedback})
        return WorkoutAssignmentResponse.model_validate(updated)

    def delete_assignment(self, assignment_id: str) -> None:
        self.gateway.delete_workout_assignment(assignment_id)
