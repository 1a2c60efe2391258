import asyncio
from enum import Enum
from typing import Callable, Optional

from exceptions import KeepaliveProbeError
from logging_config import get_logger

logger = get_logger(__name__)


class KeepaliveState(str, Enum):
    ACTIVE = "active"
    EVICTED = "evicted"


class KeepaliveMonitor:
    """Periodically sends a probe message over one connection.

    The probe is an ordinary text message, not a protocol-level ping. A
    failed probe evicts the connection through `on_evict`. Once EVICTED the
    monitor never fires again.
    """

    def __init__(self, connection_id: str, handle, interval: float, payload: str,
                 on_evict: Callable[[str], object], sleep=asyncio.sleep):
        self.connection_id = connection_id
        self.handle = handle
        self.interval = interval
        self.payload = payload
        self.on_evict = on_evict
        self.sleep = sleep
        self.state = KeepaliveState.ACTIVE
        self.probes_sent = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.state is KeepaliveState.ACTIVE

    def start(self) -> None:
        if self.interval <= 0:
            logger.debug(f"Keepalive disabled for connection {self.connection_id}")
            return
        if self._task is None and self.active:
            self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        self.state = KeepaliveState.EVICTED
        task, self._task = self._task, None
        # The probe task stops itself when it is the caller
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        while self.active:
            await self.sleep(self.interval)
            if not self.active:
                return
            try:
                await self.handle.send_text(self.payload)
            except Exception as e:
                error = KeepaliveProbeError(self.connection_id, e)
                logger.warning(f"Keepalive probe failed, evicting: {error}")
                self.stop()
                self.on_evict(self.connection_id)
                return
            self.probes_sent += 1
            logger.debug(f"Keepalive probe #{self.probes_sent} sent to connection {self.connection_id}")
