import asyncio
import json
from typing import Optional, Set

import httpx

from broadcaster import BroadcastResult, Broadcaster, dumps
from exceptions import OutboundForwardError
from logging_config import get_logger
from rooms import RoomManager
from schemas.relay import RelayConfig
from translator import translate_path

logger = get_logger(__name__)


class Forwarder:
    """Posts client messages to the webhook and broadcasts the replies.

    Forwarding is best effort. Transport failures are logged and dropped,
    and the client that sent the message never hears about them.
    """

    def __init__(self, config: RelayConfig, client: httpx.AsyncClient, rooms: RoomManager,
                 broadcaster: Broadcaster):
        self.config = config
        self.client = client
        self.rooms = rooms
        self.broadcaster = broadcaster
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def build_url(self, inbound_path: str, request_host: str) -> str:
        host = self.config.api_host or request_host
        return f"{self.config.api_scheme}://{host}{translate_path(inbound_path, self.config.prefix_pairs)}"

    async def forward(self, room_key: str, inbound_path: str, payload: str,
                      request_host: str) -> Optional[BroadcastResult]:
        url = self.build_url(inbound_path, request_host)
        logger.debug(f"Forwarding message from room {room_key} to {url}")
        try:
            response = await self.client.post(
                url,
                content=dumps(payload),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            error = OutboundForwardError(url, e)
            logger.error(str(error))
            return None

        logger.debug(f"Webhook {url} replied {response.status_code}")

        # Look the room up again: it may have emptied and been discarded meanwhile
        room = self.rooms.get_room(room_key)
        if room is None:
            logger.debug(f"Room {room_key} is gone, dropping reply from {url}")
            return None

        try:
            return await self.broadcaster.ingest(room, response.content, response.headers.get("content-type"))
        except json.JSONDecodeError as e:
            logger.warning(f"Unparseable JSON reply from {url}: {e}")
            return None

    def schedule(self, room_key: str, inbound_path: str, payload: str, request_host: str) -> asyncio.Task:
        """Run forward() in the background.

        Tasks start in creation order, so one client's messages go out in
        the order they were received.
        """
        task = asyncio.create_task(self.forward(room_key, inbound_path, payload, request_host))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Unexpected error while forwarding message", exc_info=task.exception())

    async def aclose(self) -> None:
        if self._pending:
            logger.info(f"Waiting for {len(self._pending)} in-flight forwards")
            await asyncio.gather(*self._pending, return_exceptions=True)
