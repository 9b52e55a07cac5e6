"""
Core dependencies for route protection.

Every protected route resolves the caller from the bearer token first; the
gateway dependency depends on that resolution, so no data call is ever made
for an unverified request.
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
from fitcoach.core.errors import Unauthenticated, Unauthorized
from fitcoach.database.gateway import TenantGateway
from fitcoach.database.supabase_client import SupabaseClient, get_auth_client
from fitcoach.modules.auth.schemas import BearerToken, CallerIdentity, Role
from fitcoach.modules.auth.service import IdentityService
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our 401 rather than FastAPI's default
security = HTTPBearer(auto_error=False)


def get_credential(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> BearerToken:
    """Extract the bearer token from the Authorization header"""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Unauthorized - No token provided")
    return BearerToken(token=credentials.credentials)


def get_identity_service(supabase: Client = Depends(get_auth_client)) -> IdentityService:
    return IdentityService(supabase)


def get_current_caller(
    credential: BearerToken = Depends(get_credential),
    identity_service: IdentityService = Depends(get_identity_service),
) -> CallerIdentity:
    """Verify the token with the identity provider and return the caller"""
    return identity_service.resolve(credential)


def get_client_factory() -> Callable[[str], Client]:
    return SupabaseClient.create_user_client


def get_gateway(
    credential: BearerToken = Depends(get_credential),
    caller: CallerIdentity = Depends(get_current_caller),
    client_factory: Callable[[str], Client] = Depends(get_client_factory),
) -> TenantGateway:
    """Request-scoped gateway bound to the verified caller's token"""
    return TenantGateway.for_caller(credential, client_factory=client_factory)


def require_role(*roles: Role):
    """Factory for a role check dependency.

    This is a UX gate only; the database policies remain the actual boundary.
    """
    def check_role(caller: CallerIdentity = Depends(get_current_caller)) -> CallerIdentity:
        if caller.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            logger.info("Caller %s (%s) rejected; requires %s", caller.id, caller.role.value, allowed)
            raise Unauthorized(f"Only {allowed} accounts can perform this action")
        return caller
    return check_role
