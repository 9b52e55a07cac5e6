import logging
from fitcoach.core.audit import enforce_audit_fields
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.integrations.schemas import IntegrationResponse, IntegrationUpsert
from typing import List, Tuple

logger = logging.getLogger(__name__)


class IntegrationService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def list_integrations(self) -> List[IntegrationResponse]:
        return [IntegrationResponse.from_row(r) for r in self.gateway.get_device_integrations_for_caller()]

    def upsert_integration(self, data: IntegrationUpsert, caller: CallerIdentity) -> Tuple[IntegrationResponse, bool]:
        """Create the caller's integration for a provider, or refresh its tokens.

        Returns the integration and whether it was newly created.
        """
        existing = self.gateway.get_device_integration(data.provider)
        if existing:
            # Fields left out of the request keep their stored values
            changes = data.model_dump(exclude_unset=True, exclude={"user_id", "provider"})
            changes["access_token"] = data.access_token
            updated = self.gateway.update_device_integration(existing["id"], changes)
            logger.info("Integration %s refreshed for user %s", data.provider, caller.id)
            return IntegrationResponse.from_row(updated), False

        row = enforce_audit_fields(data.model_dump(), caller, ("user_id",))
        created = self.gateway.create_device_integration(row)
        logger.info("Integration %s connected for user %s", data.provider, caller.id)
        return IntegrationResponse.from_row(created), True

    def delete_integration(self, integration_id: str) -> None:
        self.gateway.delete_device_integration(integration_id)
