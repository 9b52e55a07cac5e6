from fitcoach.core.audit import stamp_for_table
from fitcoach.core.errors import ValidationFailed
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.messages.schemas import MessageCreate, MessageResponse
from typing import List


class MessageService:
    def __init__(self, gateway: TenantGateway):
        self.gateway = gateway

    def send_message(self, message_data: MessageCreate, caller: CallerIdentity) -> MessageResponse:
        if message_data.receiver_id == caller.id:
            raise ValidationFailed("Cannot send a message to yourself")
        row = stamp_for_table("messages", message_data.model_dump(), caller)
        row["is_read"] = False
        return MessageResponse.model_validate(self.gateway.create_message(row))

    def list_messages(self) -> List[MessageResponse]:
        """Caller's inbox and outbox, newest first"""
        return [MessageResponse.model_validate(m) for m in self.gateway.get_messages_for_caller()]

    def get_conversation(self, caller: CallerIdentity, other_user_id: str) -> List[MessageResponse]:
        rows = self.gateway.get_conversation(caller.id, other_user_id)
        return [MessageResponse.model_validate(m) for m in rows]

    def mark_as_read(self, message_id: str) -> MessageResponse:
        return MessageResponse.model_validate(self.gateway.mark_message_read(message_id))
