import logging
from supabase import Client, ClientOptions, create_client
from fitcoach.config import settings
from fitcoach.core.errors import Unavailable

logger = logging.getLogger(__name__)


def _client_options(**overrides) -> ClientOptions:
    return ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=settings.data_timeout_seconds,
        **overrides,
    )


class SupabaseClient:
    """
    Factory for Supabase clients.

    The auth client is shared across requests: token verification passes the
    caller's JWT on every call and keeps nothing on the client. Data clients
    are never shared; each one is built for a single caller token.
    """
    _auth_client: Client = None

    @classmethod
    def get_auth_client(cls) -> Client:
        if cls._auth_client is None:
            cls._auth_client = create_client(
                settings.effective_supabase_url,
                settings.effective_supabase_anon_key,
                options=_client_options(),
            )
        return cls._auth_client

    @classmethod
    def create_anon_client(cls) -> Client:
        """Throwaway client for sign-up/sign-in, so sessions never land on the shared client."""
        return create_client(
            settings.effective_supabase_url,
            settings.effective_supabase_anon_key,
            options=_client_options(),
        )

    @classmethod
    def create_user_client(cls, token: str) -> Client:
        """Anon-key client whose PostgREST calls carry the caller's JWT, so RLS applies."""
        client = create_client(
            settings.effective_supabase_url,
            settings.effective_supabase_anon_key,
            options=_client_options(headers={"Authorization": f"Bearer {token}"}),
        )
        client.postgrest.auth(token)
        return client

    @classmethod
    def create_service_client(cls, reason: str) -> Client:
        """Client with service_role key; bypasses RLS. Every use is logged with its reason."""
        if not settings.supabase_service_role_key:
            raise Unavailable("service gateway", "Service role key not configured")
        logger.warning("Service-role data client created (RLS bypassed): %s", reason)
        return create_client(
            settings.effective_supabase_url,
            settings.supabase_service_role_key,
            options=_client_options(),
        )

    @classmethod
    def reset_client(cls):
        cls._auth_client = None


def get_auth_client() -> Client:
    return SupabaseClient.get_auth_client()
