"""Real supabase-py clients, built offline: the caller's token must reach PostgREST."""

import pytest

from fitcoach.config import settings
from fitcoach.core.errors import Unavailable
from fitcoach.database.supabase_client import SupabaseClient


@pytest.fixture(autouse=True)
def fresh_auth_client():
    SupabaseClient.reset_client()
    yield
    SupabaseClient.reset_client()


def test_user_client_sends_caller_token_to_postgrest():
    client = SupabaseClient.create_user_client("tok-123")
    assert client.postgrest.session.headers["Authorization"] == "Bearer tok-123"


def test_user_clients_do_not_share_tokens():
    first = SupabaseClient.create_user_client("tok-first")
    second = SupabaseClient.create_user_client("tok-second")
    assert first is not second
    assert first.postgrest.session.headers["Authorization"] == "Bearer tok-first"
    assert second.postgrest.session.headers["Authorization"] == "Bearer tok-second"


def test_shared_auth_client_carries_no_user_token():
    SupabaseClient.create_user_client("tok-123")
    auth_client = SupabaseClient.get_auth_client()

    authorization = auth_client.postgrest.session.headers["Authorization"]
    assert authorization == f"Bearer {settings.effective_supabase_anon_key}"
    assert "tok-123" not in str(dict(auth_client.postgrest.session.headers))
    assert SupabaseClient.get_auth_client() is auth_client


def test_service_client_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "supabase_service_role_key", "")
    with pytest.raises(Unavailable) as exc:
        SupabaseClient.create_service_client("nightly export")
    assert exc.value.status_code == 503
