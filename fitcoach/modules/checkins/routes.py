from fastapi import APIRouter, Depends, Query
from fitcoach.core.dependencies import get_current_caller, get_gateway, require_role
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity, Role
from fitcoach.modules.checkins.schemas import CheckinCreate, CheckinResponse, CheckinStatusUpdate
from fitcoach.modules.checkins.service import CheckinService
from typing import List, Optional

router = APIRouter(prefix="/checkins", tags=["checkins"])


def get_checkin_service(gateway: TenantGateway = Depends(get_gateway)) -> CheckinService:
    return CheckinService(gateway)


@router.post("", response_model=CheckinResponse, status_code=201)
def schedule_checkin(
    data: CheckinCreate,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: CheckinService = Depends(get_checkin_service)
):
    """Schedule a check-in with a managed client (coaches only)"""
    return service.schedule(data, caller)


@router.get("", response_model=List[CheckinResponse])
def list_checkins(
    client_id: Optional[str] = Query(None, alias="clientId"),
    upcoming: bool = False,
    caller: CallerIdentity = Depends(get_current_caller),
    service: CheckinService = Depends(get_checkin_service)
):
    return service.list_checkins(caller, client_id, upcoming)


@router.patch("/{checkin_id}/status", response_model=CheckinResponse)
def update_checkin_status(
    checkin_id: str,
    data: CheckinStatusUpdate,
    service: CheckinService = Depends(get_checkin_service)
):
    return service.update_status(checkin_id, data)
