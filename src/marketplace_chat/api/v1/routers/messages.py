from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from marketplace_chat.api.deps import CurrentIdentity, GatewayDep, UoWDep
from marketplace_chat.api.v1.schemas.message import (
    ConversationSummaryResponse,
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from marketplace_chat.config import settings
from marketplace_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])


@router.post("/send", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    msg = await conversation_service.send_message(
        identity, body.receiver_id, body.message, body.project_id, uow,
    )
    await gateway.deliver_message(msg)
    return MessageResponse.from_entity(msg)


@router.get("/messages", response_model=list[MessageResponse])
async def get_messages(
    identity: CurrentIdentity,
    uow: UoWDep,
    gateway: GatewayDep,
    receiver_id: UUID = Query(..., alias="receiverId"),
    project_id: UUID | None = Query(None, alias="projectId"),
    limit: int = Query(50, ge=1, le=settings.HISTORY_MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> list[MessageResponse]:
    messages, receipt = await conversation_service.get_history(
        identity, receiver_id, project_id, limit, offset, uow,
    )
    await gateway.notify_seen(receiver_id, receipt)
    return [MessageResponse.from_entity(m) for m in messages]


@router.get("/history", response_model=list[ConversationSummaryResponse])
async def get_history(identity: CurrentIdentity, uow: UoWDep) -> list[ConversationSummaryResponse]:
    summaries = await conversation_service.list_conversations(identity, uow)
    return [ConversationSummaryResponse.from_summary(s) for s in summaries]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(identity: CurrentIdentity, uow: UoWDep) -> UnreadCountResponse:
    count = await conversation_service.unread_count(identity, uow)
    return UnreadCountResponse(count=count)


@router.patch("/{message_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_message_read(message_id: UUID, identity: CurrentIdentity, uow: UoWDep) -> Response:
    await conversation_service.mark_message_read(identity, message_id, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    body: EditMessageRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    msg = await conversation_service.edit_message(identity, message_id, body.message, uow)
    await gateway.notify_edited(msg)
    return MessageResponse.from_entity(msg)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: UUID,
    identity: CurrentIdentity,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Response:
    msg = await conversation_service.delete_message(identity, message_id, uow)
    await gateway.notify_deleted(msg)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
