from fastapi import APIRouter, Depends, Query
from fitcoach.core.dependencies import get_current_caller, get_gateway
from fitcoach.database.gateway import TenantGateway
from fitcoach.modules.auth.schemas import CallerIdentity
from fitcoach.modules.messages.schemas import MessageCreate, MessageResponse
from fitcoach.modules.messages.service import MessageService
from typing import List, Optional

router = APIRouter(prefix="/messages", tags=["messages"])


def get_message_service(gateway: TenantGateway = Depends(get_gateway)) -> MessageService:
    return MessageService(gateway)


@router.post("", response_model=MessageResponse, status_code=201)
def send_message(
    message_data: MessageCreate,
    caller: CallerIdentity = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service)
):
    return service.send_message(message_data, caller)


@router.get("", response_model=List[MessageResponse])
def list_messages(
    other_user_id: Optional[str] = Query(None, alias="otherUserId"),
    caller: CallerIdentity = Depends(get_current_caller),
    service: MessageService = Depends(get_message_service)
):
    """All of the caller's messages, or one conversation when otherUserId is given"""
    if other_user_id:
        return service.get_conversation(caller, other_user_id)
    return service.list_messages()


@router.patch("/{message_id}/read", response_model=MessageResponse)
def mark_message_read(message_id: str, service: MessageService = Depends(get_message_service)):
    return service.mark_as_read(message_id)
