from fastapi import APIRouter, Depends, Response
from fitcoach.core.dependencies import get_current_caller, get_gateway
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.integrations.schemas import IntegrationResponse, IntegrationUpsert
from fitcoach.modules.integrations.service import IntegrationService
from typing import List

router = APIRouter(prefix="/integrations", tags=["integrations"])


def get_integration_service(gateway: TenantGateway = Depends(get_gateway)) -> IntegrationService:
    return IntegrationService(gateway)


@router.get("", response_model=List[IntegrationResponse])
def list_integrations(service: IntegrationService = Depends(get_integration_service)):
    return service.list_integrations()


@router.post("", response_model=IntegrationResponse, status_code=201)
def upsert_integration(
    data: IntegrationUpsert,
    response: Response,
    caller: CallerIdentity = Depends(get_current_caller),
    service: IntegrationService = Depends(get_integration_service)
):
    """Connect a device provider; reconnecting an existing provider refreshes its tokens"""
    integration, created = service.upsert_integration(data, caller)
    if not created:
        response.status_code = 200
    return integration


@router.delete("/{integration_id}", status_code=204)
def delete_integration(integration_id: str, service: IntegrationService = Depends(get_integration_service)):
    service.delete_integration(integration_id)
    return None
