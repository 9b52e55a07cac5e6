import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

# Local `supabase start` defaults; only suitable for development
DEFAULT_SUPABASE_URL = "http://127.0.0.1:54321"
DEFAULT_SUPABASE_ANON_KEY = (
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
    "eyJpc3MiOiJzdXBhYmFzZS1kZW1vIiwicm9sZSI6ImFub24iLCJleHAiOjE5ODM4MTI5OTZ9."
    "CRXP1A7WOeoJeXxjNni43kdQwgnWNReilDMblYTn_I0"
)


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Only for the explicit service gateway path

    # PostgREST timeout (seconds); a timeout fails the request closed.
    # GoTrue calls use the httpx default of 5 seconds.
    data_timeout_seconds: float = 10.0

    # App
    app_name: str = "fitcoach-backend"
    app_url: str = "http://localhost:8000"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/15minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def effective_supabase_url(self) -> str:
        return self.supabase_url.strip() or DEFAULT_SUPABASE_URL

    @property
    def effective_supabase_anon_key(self) -> str:
        return self.supabase_anon_key.strip() or DEFAULT_SUPABASE_ANON_KEY

    def uses_fallback_credentials(self) -> bool:
        return not self.supabase_url.strip() or not self.supabase_anon_key.strip()

    def warn_on_fallback_credentials(self, logger: logging.Logger) -> bool:
        """Log a startup warning when the local development defaults are in use."""
        if not self.uses_fallback_credentials():
            return False
        level = logging.ERROR if self.is_production else logging.WARNING
        logger.log(
            level,
            "Using fallback Supabase credentials (%s). Set SUPABASE_URL and "
            "SUPABASE_ANON_KEY; the fallback is unsafe for production.",
            DEFAULT_SUPABASE_URL,
        )
        return True

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
