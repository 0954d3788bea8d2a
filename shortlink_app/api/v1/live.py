from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from shortlink_app.config import settings
from shortlink_app.dependencies import get_broadcaster
from shortlink_app.errors import AuthError
from shortlink_app.live.broadcaster import ClickBroadcaster
from shortlink_app.logging_config import get_logger
from shortlink_app.schemas.live import LiveControlEvent, LiveControlMessage
from shortlink_app.security.tokens import decode_token

router = APIRouter(tags=["live"])
logger = get_logger(__name__)


@router.websocket(settings.live_path)
async def live_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    broadcaster: ClickBroadcaster = Depends(get_broadcaster)
):
    """
    Live click updates.

    Client messages: {"event": "join-user-room" | "leave-user-room", "userId": ...}
    Server messages: url-clicked events for the joined room, joined/left
    acknowledgements, and error notices. With an access token in the query
    string, only the token owner's room can be joined.
    """
    subject = None
    if token:
        try:
            subject = decode_token(token).sub
        except AuthError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
    elif settings.ws_require_token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = LiveControlMessage.model_validate_json(raw)
            except PydanticValidationError:
                await websocket.send_json({
                    "event": "error",
                    "message": "Expected {event, userId} with event join-user-room or leave-user-room",
                })
                continue

            if subject is not None and message.user_id != subject:
                await websocket.send_json({
                    "event": "error",
                    "message": "Cannot subscribe to another user's updates",
                })
                continue

            if message.event == LiveControlEvent.JOIN:
                broadcaster.join(websocket, message.user_id)
                await websocket.send_json({"event": "joined", "userId": message.user_id})
            else:
                broadcaster.leave(websocket, message.user_id)
                await websocket.send_json({"event": "left", "userId": message.user_id})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
