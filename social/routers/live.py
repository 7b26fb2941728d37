"""
Live subscription endpoint.

One WebSocket per subscription: the client connects with its ID token and a
topic, receives the current snapshot, then a new snapshot whenever the
underlying documents change. Closing the socket cancels the live query.

Topics:
    conversations  - the caller's conversation list
    messages       - one conversation's messages (``id`` = conversation id)
    circle         - one circle (``id`` = circle id)
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from starlette.datastructures import State

from common.auth import Principal, authenticate_token
from common.database import TRANSIENT_STORE_ERRORS
from common.utils import (
    APIException,
    ForbiddenException,
    TransientStoreException,
    ValidationException,
    error_response,
    success_response,
)
from social.dependencies import service_from_state
from social.services.realtime.live_query import LiveQuery

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live"])


async def open_live_query(
    state: State,
    principal: Principal,
    topic: str,
    resource_id: Optional[str],
) -> LiveQuery:
    """Resolve a topic to a LiveQuery the principal may watch."""
    max_await = service_from_state(state, "settings").LIVE_QUERY_MAX_AWAIT_MS
    conversation_service = service_from_state(state, "conversation_service")
    circle_service = service_from_state(state, "circle_service")

    if topic == "conversations":
        return conversation_service.watch_conversations(principal.uid, max_await)

    if topic not in ("messages", "circle"):
        raise ValidationException(message=f"Unknown topic: {topic}", code="INVALID_TOPIC")

    if not resource_id:
        raise ValidationException(message=f"Topic {topic} requires an id", code="MISSING_TOPIC_ID")

    if topic == "messages":
        conversation = await conversation_service.get_conversation(resource_id)
        if principal.uid not in conversation["participants"]:
            raise ForbiddenException(
                message="You are not part of this conversation",
                code="NOT_CONVERSATION_PARTICIPANT",
            )
        return conversation_service.watch_messages(resource_id, max_await)

    await circle_service.get_circle(resource_id)
    return circle_service.watch_circle(resource_id, max_await)


async def _send_snapshots(websocket: WebSocket, topic: str, live: LiveQuery) -> None:
    try:
        async for snapshot in live:
            await websocket.send_json(success_response({"topic": topic, "snapshot": snapshot}))
    except APIException as e:
        await websocket.send_json(error_response(e.message, code=e.code))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    except TRANSIENT_STORE_ERRORS as e:
        logger.warning(f"Live query for {topic} lost the store: {e}")
        unavailable = TransientStoreException()
        await websocket.send_json(error_response(unavailable.message, code=unavailable.code))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass


@router.websocket("/ws/live")
async def live_updates(
    websocket: WebSocket,
    token: str = Query(default=""),
    topic: str = Query(default=""),
    resource_id: Optional[str] = Query(default=None, alias="id"),
):
    """Stream snapshots for one topic until the client disconnects."""
    await websocket.accept()
    state = websocket.app.state

    try:
        principal = await authenticate_token(service_from_state(state, "auth_provider"), token)
        live = await open_live_query(state, principal, topic, resource_id)
    except APIException as e:
        await websocket.send_json(error_response(e.message, code=e.code))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    logger.info(f"Live subscription {topic} opened for {principal.uid}")

    sender = asyncio.create_task(_send_snapshots(websocket, topic, live))
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))

    try:
        done, _ = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        live.cancel()
        sender.cancel()
        receiver.cancel()

    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Live subscription {topic} for {principal.uid} failed: {task.exception()}")

    logger.info(f"Live subscription {topic} closed for {principal.uid}")
