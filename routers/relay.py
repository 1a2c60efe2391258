import json
from typing import Optional

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse, Response

from broadcaster import Broadcaster
from constants import CORS_HEADERS
from forwarder import Forwarder
from logging_config import get_logger
from rooms import Room
from translator import match_prefix

logger = get_logger(__name__)

relay_router = APIRouter(tags=["relay"])

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def client_payload(message: dict) -> Optional[str]:
    """Extract the message body from an ASGI websocket.receive event."""
    if message.get("text") is not None:
        return message["text"]
    if message.get("bytes") is not None:
        return message["bytes"].decode("utf-8", errors="replace")
    return None


def handle_client_message(payload: str, room: Room, forwarder: Forwarder, path: str, host: str) -> None:
    forwarder.schedule(room.key, path, payload, host)


def handle_close(connection_id: str, room: Room) -> None:
    # Removing the last connection drops the room from the manager
    if room.remove(connection_id):
        logger.info(f"Connection {connection_id} left room {room.key}")


@relay_router.websocket("/{path:path}")
async def websocket_endpoint(websocket: WebSocket, path: str):
    """Admit a client into the room named by the full request path.

    Every text or binary frame the client sends is forwarded to the webhook
    matching the path; replies come back to the whole room.
    """
    state = websocket.app.state
    room_key = websocket.url.path
    logger.info(f"WebSocket connection attempt for room: {room_key}")

    if match_prefix(room_key, state.config.prefix_pairs) is None:
        logger.info(f"WebSocket connection rejected: invalid path {room_key}")
        await websocket.send_denial_response(
            PlainTextResponse("Invalid WebSocket path", status_code=404, headers=CORS_HEADERS)
        )
        return

    await websocket.accept()
    host = websocket.headers.get("host") or websocket.url.netloc
    room = state.rooms.get_or_create_room(room_key)
    connection_id = room.admit(websocket)
    logger.info(f"Connection {connection_id} joined room {room_key} (connections: {len(room)})")

    message_count = 0
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected for connection {connection_id} in room {room_key}")
                break
            payload = client_payload(message)
            if payload is None:
                continue
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id} in room {room_key}")
            handle_client_message(payload, room, state.forwarder, room_key, host)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for connection {connection_id} in room {room_key}")
    except Exception as e:
        logger.error(f"Error receiving from connection {connection_id} in room {room_key}: {e}", exc_info=True)
    finally:
        handle_close(connection_id, room)


@relay_router.api_route("/{path:path}", methods=HTTP_METHODS)
async def http_endpoint(request: Request, path: str):
    """CORS preflight, or broadcast of the request body to the room."""
    state = request.app.state
    room_key = request.url.path

    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)

    if match_prefix(room_key, state.config.prefix_pairs) is None:
        logger.info(f"Rejected {request.method} {room_key}: invalid path")
        return PlainTextResponse("Invalid WebSocket path", status_code=404, headers=CORS_HEADERS)

    if request.method != "POST":
        return PlainTextResponse("Method Not Allowed", status_code=405, headers=CORS_HEADERS)

    body = await request.body()
    broadcaster: Broadcaster = state.broadcaster
    room = state.rooms.get_or_create_room(room_key)
    try:
        result = await broadcaster.ingest(room, body, request.headers.get("content-type"))
    except json.JSONDecodeError as e:
        logger.warning(f"Broadcast to room {room_key} rejected: malformed JSON body: {e}")
        return PlainTextResponse("Malformed JSON body", status_code=400, headers=CORS_HEADERS)
    finally:
        state.rooms.discard_if_idle(room_key)

    if result is None:
        logger.info(f"Broadcast to room {room_key} suppressed")
    else:
        logger.info(f"Broadcast to room {room_key}: delivered={len(result.delivered)}, evicted={len(result.evicted)}")
    return Response(status_code=200, headers=CORS_HEADERS)
