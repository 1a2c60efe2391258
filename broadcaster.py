import json
from dataclasses import dataclass, field
from typing import List, Optional, Union

from exceptions import TransportSendError
from logging_config import get_logger
from rooms import Room
from schemas.relay import RelayConfig

logger = get_logger(__name__)


@dataclass
class BroadcastResult:
    delivered: List[str] = field(default_factory=list)
    evicted: List[str] = field(default_factory=list)


def is_json_content(content_type: Optional[str]) -> bool:
    return "application/json" in (content_type or "").lower()


def dumps(payload) -> str:
    # Same shape as JSON.stringify: no whitespace, non-ASCII kept as is
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


class Broadcaster:
    def __init__(self, config: RelayConfig):
        self.config = config

    def interpret(self, body: Union[bytes, str], content_type: Optional[str]) -> Optional[str]:
        """Turn a request or reply body into the text sent to clients.

        Returns None when the body is a suppressed acknowledgment. Raises
        json.JSONDecodeError when the body claims to be JSON but is not.
        """
        text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
        if not is_json_content(content_type):
            return text

        parsed = json.loads(text)
        if self.config.is_suppressed(parsed):
            logger.debug(f"Suppressed acknowledgment payload: {text}")
            return None
        return dumps(parsed)

    async def broadcast(self, room: Room, message: str) -> BroadcastResult:
        result = BroadcastResult()
        for connection_id, handle in room.snapshot():
            try:
                await handle.send_text(message)
                result.delivered.append(connection_id)
            except Exception as e:
                error = TransportSendError(connection_id, e)
                logger.warning(f"Error sending to connection {connection_id} in room {room.key}: {error}")
                result.evicted.append(connection_id)

        for connection_id in result.evicted:
            if room.remove(connection_id):
                logger.info(f"Cleaned up disconnected connection {connection_id} from room {room.key}")

        logger.debug(f"Broadcast to {len(result.delivered)} connections in room {room.key}, "
                     f"evicted {len(result.evicted)}")
        return result

    async def ingest(self, room: Room, body: Union[bytes, str], content_type: Optional[str]) -> Optional[BroadcastResult]:
        message = self.interpret(body, content_type)
        if message is None:
            return None
        return await self.broadcast(room, message)
