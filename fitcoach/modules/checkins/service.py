from fitcoach.core.audit import enforce_audit_fields, stamp_for_table
from fitcoach.core.errors import ValidationFailed
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.checkins.schemas import CheckinCreate, CheckinResponse, CheckinStatus, CheckinStatusUpdate
from fitcoach.modules.clients.service import resolve_client_id
from typing import List, Optional


class CheckinService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def schedule(self, data: CheckinCreate, caller: CallerIdentity) -> CheckinResponse:
        if (data.scheduled_for.tzinfo is None) == (data.ends_at.tzinfo is None) and data.ends_at <= data.scheduled_for:
            raise ValidationFailed("endsAt must be after scheduledFor")
        row = enforce_audit_fields(data.model_dump(), caller, ("coach_id",))
        row = stamp_for_table("checkins", row, caller)
        row["status"] = CheckinStatus.SCHEDULED.value
        return CheckinResponse.model_validate(self.gateway.create_checkin(row))

    def list_checkins(
        self,
        caller: CallerIdentity,
        client_id: Optional[str] = None,
        upcoming: bool = False,
    ) -> List[CheckinResponse]:
        resolved = resolve_client_id(self.gateway, caller, client_id)
        return [CheckinResponse.model_validate(r) for r in self.gateway.get_checkins(resolved, upcoming)]

    def update_status(self, checkin_id: str, data: CheckinStatusUpdate) -> CheckinResponse:
        return CheckinResponse.model_validate(self.gateway.update_checkin_status(checkin_id, data.status.value))
