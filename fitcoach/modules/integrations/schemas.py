from datetime import datetime
from fitcoach.core.schemas import CamelModel
from pydantic import Field
from typing import Optional


class IntegrationUpsert(CamelModel):
    provider: str = Field(min_length=1, max_length=50)
    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    is_active: bool = True
    # Ignored: integrations always belong to the caller
    user_id: Optional[str] = None


class IntegrationResponse(CamelModel):
    """Device tokens are never echoed back over the API."""
    id: str
    user_id: str
    provider: str
    is_active: bool = True
    has_refresh_token: bool = False
    token_expires_at: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "IntegrationResponse":
        return cls.model_validate({**row, "has_refresh_token": bool(row.get("refresh_token"))})
