import logging
import httpx
from supabase import Client
from supabase_auth.errors import AuthApiError, AuthError, AuthRetryableError
from fitcoach.core.errors import Unauthenticated, Unavailable, UserAlreadyExists, ValidationFailed
from fitcoach.database.supabase_client import SupabaseClient
from fitcoach.modules.auth.schemas import (
    BearerToken, CallerIdentity, LoginRequest, RegisterRequest, RegisterResponse, Role, TokenResponse
)
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

IDENTITY_PROVIDER = "identity provider"


def role_from_user(user: Any) -> Role:
    """app_metadata is server-controlled and wins; anything unrecognised is a client."""
    app_metadata = getattr(user, "app_metadata", None) or {}
    user_metadata = getattr(user, "user_metadata", None) or {}
    raw = app_metadata.get("role") or user_metadata.get("role")
    try:
        return Role(raw)
    except ValueError:
        return Role.CLIENT


def identity_from_user(user: Any) -> CallerIdentity:
    user_metadata = getattr(user, "user_metadata", None) or {}
    return CallerIdentity(
        id=str(user.id),
        role=role_from_user(user),
        email=getattr(user, "email", None),
        first_name=user_metadata.get("first_name"),
        last_name=user_metadata.get("last_name"),
    )


def _is_upstream_failure(status: Optional[int]) -> bool:
    return not status or status >= 500


class IdentityService:
    """
    Resolves bearer credentials into caller identities via Supabase Auth.

    `supabase` is the shared auth client and is only used for stateless token
    verification. Sign-up and sign-in run on throwaway clients from
    `session_factory` so no session is ever stored on the shared client.
    """

    def __init__(
        self,
        supabase: Client,
        session_factory: Callable[[], Client] = SupabaseClient.create_anon_client,
    ):
        self.supabase = supabase
        self.session_factory = session_factory

    def resolve(self, credential: Optional[BearerToken]) -> CallerIdentity:
        """Verify the token with the identity provider. Fails closed on every error path."""
        if credential is None:
            raise Unauthenticated("Unauthorized - No token provided")
        try:
            user_response = self.supabase.auth.get_user(jwt=credential.token)
        except AuthRetryableError as e:
            logger.error("Identity provider unreachable: %s", e)
            raise Unavailable(IDENTITY_PROVIDER)
        except AuthApiError as e:
            if _is_upstream_failure(e.status):
                logger.error("Identity provider error (status %s): %s", e.status, e)
                raise Unavailable(IDENTITY_PROVIDER)
            logger.info("Token verification rejected (status %s)", e.status)
            raise Unauthenticated()
        except AuthError as e:
            logger.info("Token verification failed: %s", type(e).__name__)
            raise Unauthenticated()
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed: %s", e)
            raise Unavailable(IDENTITY_PROVIDER)

        if user_response is None or not user_response.user:
            raise Unauthenticated()
        identity = identity_from_user(user_response.user)
        logger.debug("Authenticated user %s as %s", identity.id, identity.role.value)
        return identity

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user with Supabase Auth. The role is stored in user metadata."""
        user_metadata: Dict[str, Any] = {"role": register_data.role.value}
        if register_data.first_name:
            user_metadata["first_name"] = register_data.first_name
        if register_data.last_name:
            user_metadata["last_name"] = register_data.last_name

        client = self.session_factory()
        try:
            auth_response = client.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata
                }
            })
        except AuthApiError as e:
            if _is_upstream_failure(e.status):
                raise Unavailable(IDENTITY_PROVIDER)
            message = str(e).lower()
            if "already registered" in message or "already exists" in message:
                raise UserAlreadyExists(register_data.email)
            raise ValidationFailed(f"Registration failed: {e}")
        except (AuthError, httpx.HTTPError) as e:
            logger.error("Registration request failed: %s", e)
            raise Unavailable(IDENTITY_PROVIDER)

        user = auth_response.user
        if not user:
            raise ValidationFailed("Failed to register user")
        # With email confirmation on, GoTrue answers an existing address with an identity-less user
        if getattr(user, "identities", None) == []:
            raise UserAlreadyExists(register_data.email)

        return RegisterResponse(
            user_id=str(user.id),
            email=user.email or register_data.email,
            message="User registered successfully"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate with email and password and return the provider's access token."""
        client = self.session_factory()
        try:
            auth_response = client.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except AuthApiError as e:
            if _is_upstream_failure(e.status):
                raise Unavailable(IDENTITY_PROVIDER)
            raise Unauthenticated("Invalid email or password")
        except (AuthError, httpx.HTTPError) as e:
            logger.error("Login request failed: %s", e)
            raise Unavailable(IDENTITY_PROVIDER)

        if not auth_response.user or not auth_response.session:
            raise Unauthenticated("Invalid email or password")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            token_type="bearer",
            user_id=str(auth_response.user.id),
            email=auth_response.user.email or login_data.email,
            role=role_from_user(auth_response.user),
        )
