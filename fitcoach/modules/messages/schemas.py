from datetime import datetime
from fitcoach.core.schemas import CamelModel
from pydantic import Field
from typing import Optional


class MessageCreate(CamelModel):
    receiver_id: str
    content: str = Field(min_length=1, max_length=5000)
    # Ignored: the sender is always the caller
    sender_id: Optional[str] = None


class MessageResponse(CamelModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    created_at: datetime
