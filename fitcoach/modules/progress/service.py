from datetime import date, datetime
from fitcoach.core.audit import stamp_for_table
from fitcoach.core.errors import ValidationFailed
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.clients.service import resolve_client_id
from fitcoach.modules.progress.schemas import (
    WeightLogCreate, WeightLogResponse, WorkoutLogCreate, WorkoutLogResponse, WorkoutLogUpdate
)
from typing import List, Optional


def _comparable(a: datetime, b: datetime) -> bool:
    # naive and aware datetimes cannot be ordered
    return (a.tzinfo is None) == (b.tzinfo is None)


class ProgressService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def log_weight(self, data: WeightLogCreate, caller: CallerIdentity) -> WeightLogResponse:
        row = data.model_dump()
        row["client_id"] = resolve_client_id(self.gateway, caller, data.client_id)
        row = stamp_for_table("weight_logs", row, caller)
        return WeightLogResponse.model_validate(self.gateway.create_weight_log(row))

    def list_weight_logs(
        self,
        caller: CallerIdentity,
        client_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[WeightLogResponse]:
        if start_date and end_date and start_date > end_date:
            raise ValidationFailed("startDate must not be after endDate")
        resolved = resolve_client_id(self.gateway, caller, client_id)
        rows = self.gateway.get_weight_logs(resolved, start_date, end_date)
        return [WeightLogResponse.model_validate(r) for r in rows]

    def log_workout(self, data: WorkoutLogCreate, caller: CallerIdentity) -> WorkoutLogResponse:
        if data.ended_at and _comparable(data.started_at, data.ended_at) and data.ended_at < data.started_at:
            raise ValidationFailed("endedAt must not be before startedAt")
        row = data.model_dump()
        row["client_id"] = resolve_client_id(self.gateway, caller, data.client_id)
        row = stamp_for_table("workout_logs", row, caller)
        return WorkoutLogResponse.model_validate(self.gateway.create_workout_log(row))

    def list_workout_logs(self, caller: CallerIdentity, client_id: Optional[str] = None) -> List[WorkoutLogResponse]:
        resolved = resolve_client_id(self.gateway, caller, client_id)
        return [WorkoutLogResponse.model_validate(r) for r in self.gateway.get_workout_logs(resolved)]

    def update_workout_log(self, log_id: str, data: WorkoutLogUpdate) -> WorkoutLogResponse:
        changes = data.model_dump(exclude_unset=True)
        return WorkoutLogResponse.model_validate(self.gateway.update_workout_log(log_id, changes))
