"""Test fixtures: a fresh in-memory Supabase per test, wired into the app.

Identity resolution and the tenant gateway run unmodified; only the clients
they talk to are replaced, so policy enforcement is exercised end to end.
"""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fitcoach.core.dependencies import get_client_factory, get_identity_service
from fitcoach.core.rate_limit import limiter
from fitcoach.database.gateway import TenantGateway
from fitcoach.main import app
from fitcoach.modules.auth.schemas import BearerToken
from fitcoach.modules.auth.service import IdentityService
from tests.fakes import FakeDatabase

TENANT_ROLES = {
    "coach_a": "coach",
    "coach_b": "coach",
    "client_a": "client",
    "client_b": "client",
}


@pytest.fixture()
def db():
    return FakeDatabase()


@pytest.fixture()
def identity_service(db):
    return IdentityService(db.client(), session_factory=db.client)


@pytest.fixture()
def tenants(db):
    """Coach A/B and Client A/B, each signed in with a live token."""
    result = {}
    for label, role in TENANT_ROLES.items():
        user = db.add_user(f"{label.replace('_', '-')}@example.com", role=role)
        token = db.issue_token(user["id"])
        result[label] = SimpleNamespace(
            id=user["id"],
            email=user["email"],
            token=token,
            headers={"Authorization": f"Bearer {token}"},
            gateway=TenantGateway.for_caller(BearerToken(token=token), client_factory=db.client),
        )
    return result


@pytest.fixture()
def managed_client(db, tenants):
    """Client A's profile: issued by Coach A, then claimed by Client A."""
    coach_a, client_a = tenants["coach_a"], tenants["client_a"]
    invitation = coach_a.gateway.create_client({
        "coach_id": coach_a.id,
        "created_by": coach_a.id,
        "invited_email": client_a.email,
        "notes": "Client A profile",
    })
    return client_a.gateway.claim_client(invitation["id"], client_a.id)


@pytest_asyncio.fixture()
async def client(db, identity_service):
    """HTTP client with identity and data clients pointed at the fake project."""
    app.dependency_overrides[get_identity_service] = lambda: identity_service
    app.dependency_overrides[get_client_factory] = lambda: db.client
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True
