from fastapi import APIRouter, Depends
from fitcoach.core.dependencies import get_current_caller, get_gateway, require_role
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity, Role
from fitcoach.modules.clients.schemas import ClientCreate, ClientResponse, ClientUpdate
from fitcoach.modules.clients.service import ClientService
from typing import List

router = APIRouter(prefix="/clients", tags=["clients"])


def get_client_service(gateway: TenantGateway = Depends(get_gateway)) -> ClientService:
    return ClientService(gateway)


@router.get("", response_model=List[ClientResponse])
def list_clients(service: ClientService = Depends(get_client_service)):
    """List clients visible to the caller"""
    return service.list_clients()


@router.post("", response_model=ClientResponse, status_code=201)
def create_client(
    client_data: ClientCreate,
    caller: CallerIdentity = Depends(get_current_caller),
    service: ClientService = Depends(get_client_service)
):
    """Create a client profile (coach: managed client; client: own profile)"""
    return service.create_client(client_data, caller)


@router.get("/invitations", response_model=List[ClientResponse])
def list_invitations(service: ClientService = Depends(get_client_service)):
    """Unclaimed profiles issued to the caller's email"""
    return service.list_invitations()


@router.post("/{client_id}/claim", response_model=ClientResponse)
def claim_client(
    client_id: str,
    caller: CallerIdentity = Depends(require_role(Role.CLIENT)),
    service: ClientService = Depends(get_client_service)
):
    """Link an invitation to the calling client account"""
    return service.claim_client(client_id, caller)


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(client_id: str, service: ClientService = Depends(get_client_service)):
    return service.get_client(client_id)


@router.patch("/{client_id}", response_model=ClientResponse)
def update_client(
    client_id: str,
    client_data: ClientUpdate,
    service: ClientService = Depends(get_client_service)
):
    return service.update_client(client_id, client_data)


@router.delete("/{client_id}", status_code=204)
def delete_client(
    client_id: str,
    caller: CallerIdentity = Depends(require_role(Role.COACH)),
    service: ClientService = Depends(get_client_service)
):
    """Delete a managed client (coaches only)"""
    service.delete_client(client_id)
    return None
