import asyncio
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from keepalive import KeepaliveMonitor
from logging_config import get_logger
from schemas.relay import RelayConfig

logger = get_logger(__name__)


@dataclass
class Connection:
    connection_id: str
    handle: object  # anything with `async send_text(str)`, normally a WebSocket
    room_key: str
    monitor: KeepaliveMonitor


class Room:
    """All live connections for one room key.

    The registry is only mutated through admit/remove/close; everything else
    works on snapshot() lists.
    """

    def __init__(self, key: str, config: RelayConfig, on_idle: Optional[Callable[["Room"], object]] = None,
                 sleep=asyncio.sleep):
        self.key = key
        self.config = config
        self.on_idle = on_idle
        self.sleep = sleep
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def connection_ids(self) -> List[str]:
        return list(self._connections)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def admit(self, handle) -> str:
        connection_id = uuid.uuid4().hex
        monitor = KeepaliveMonitor(
            connection_id,
            handle,
            interval=self.config.keepalive_interval,
            payload=self.config.keepalive_payload,
            on_evict=self.remove,
            sleep=self.sleep,
        )
        self._connections[connection_id] = Connection(connection_id, handle, self.key, monitor)
        monitor.start()
        logger.debug(f"Admitted connection {connection_id} to room {self.key} (connections: {len(self)})")
        return connection_id

    def remove(self, connection_id: str) -> bool:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        connection.monitor.stop()
        logger.debug(f"Removed connection {connection_id} from room {self.key} (connections: {len(self)})")
        if not self._connections and self.on_idle is not None:
            self.on_idle(self)
        return True

    def snapshot(self) -> List[Tuple[str, object]]:
        return [(cid, conn.handle) for cid, conn in self._connections.items()]

    def close(self) -> None:
        for connection_id in list(self._connections):
            self.remove(connection_id)


class RoomManager:
    """Keeps at most one Room per key for this process.

    Rooms are created on first use and dropped once idle; nothing survives a
    restart.
    """

    def __init__(self, config: RelayConfig):
        self.config = config
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def get_room(self, key: str) -> Optional[Room]:
        return self._rooms.get(key)

    def get_or_create_room(self, key: str) -> Room:
        room = self._rooms.get(key)
        if room is None:
            room = Room(key, self.config, on_idle=self._forget)
            self._rooms[key] = room
            logger.info(f"Created room {key}")
        return room

    def discard_if_idle(self, key: str) -> bool:
        room = self._rooms.get(key)
        if room is None or len(room) > 0:
            return False
        del self._rooms[key]
        logger.info(f"No more connections in room {key}, cleaning up")
        return True

    def _forget(self, room: Room) -> None:
        # A stale Room must not drop a newer one created under the same key
        if self._rooms.get(room.key) is room:
            del self._rooms[room.key]
            logger.info(f"No more connections in room {room.key}, cleaning up")

    def close(self) -> None:
        for room in list(self._rooms.values()):
            room.close()
        self._rooms.clear()
