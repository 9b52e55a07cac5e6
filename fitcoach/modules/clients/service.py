import logging
from fitcoach.core.audit import enforce_audit_fields, stamp_for_table
from fitcoach.core.errors import Unauthorized, ValidationFailed
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.clients.schemas import ClientCreate, ClientResponse, ClientUpdate
from typing import List, Optional

logger = logging.getLogger(__name__)


def resolve_client_id(gateway: TenantGateway, caller: CallerIdentity, requested: Optional[str]) -> str:
    """Pick the client profile a request is about.

    Clients are pinned to their own profile. Coaches must name one; the
    gateway only returns rows the coach manages anyway.
    """
    if caller.is_coach:
        if not requested:
            raise ValidationFailed("clientId is required")
        return requested
    own = gateway.get_client_by_user_id(caller.id)
    if not own:
        raise ValidationFailed("Client profile not found")
    if requested and requested != own["id"]:
        raise Unauthorized("Unauthorized to access another client's records")
    return own["id"]


class ClientService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def list_clients(self) -> List[ClientResponse]:
        """Clients the caller may see; filtering is done by the database"""
        return [ClientResponse.model_validate(row) for row in self.gateway.get_clients_visible_to_caller()]

    def get_client(self, client_id: str) -> ClientResponse:
        return ClientResponse.model_validate(self.gateway.get_client(client_id))

    def create_client(self, client_data: ClientCreate, caller: CallerIdentity) -> ClientResponse:
        """Create a client profile.

        Coaches become the managing coach of what they create and never link
        it to a user; the invited client claims it. Clients can only create
        their own profile, without a coach.
        """
        row = client_data.model_dump(exclude_none=True)
        if caller.is_coach:
            row = enforce_audit_fields(row, caller, ("coach_id",))
            if row.pop("user_id", None) is not None:
                logger.warning("Coach %s tried to link a user on client creation", caller.id)
        else:
            row = enforce_audit_fields(row, caller, ("user_id",))
            row.pop("invited_email", None)
            if row.pop("coach_id", None) is not None:
                logger.warning("Client %s tried to assign a coach on self-provisioning", caller.id)
        row = stamp_for_table("clients", row, caller)
        created = self.gateway.create_client(row)
        logger.info("Client %s created by %s", created.get("id"), caller.id)
        return ClientResponse.model_validate(created)

    def list_invitations(self) -> List[ClientResponse]:
        return [ClientResponse.model_validate(row) for row in self.gateway.get_client_invitations()]

    def claim_client(self, client_id: str, caller: CallerIdentity) -> ClientResponse:
        """Link an invitation issued to the caller's email to the caller."""
        claimed = self.gateway.claim_client(client_id, caller.id)
        logger.info("Client %s claimed by %s", client_id, caller.id)
        return ClientResponse.model_validate(claimed)

    def update_client(self, client_id: str, client_data: ClientUpdate) -> ClientResponse:
        changes = client_data.model_dump(exclude_unset=True)
        return ClientResponse.model_validate(self.gateway.update_client(client_id, changes))

    def delete_client(self, client_id: str) -> None:
        self.gateway.delete_client(client_id)
