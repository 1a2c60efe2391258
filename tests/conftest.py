"""Shared fixtures for relay tests."""
import pytest

from schemas.relay import RelayConfig


class FakeSocket:
    """Stand-in for a WebSocket: records every message, optionally failing."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.attempts = 0

    async def send_text(self, data: str) -> None:
        self.attempts += 1
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(data)


@pytest.fixture
def config():
    """Keepalive off so registry tests need no event loop."""
    return RelayConfig(keepalive_interval=0)


@pytest.fixture
def make_socket():
    def _make(fail: bool = False) -> FakeSocket:
        return FakeSocket(fail=fail)
    return _make
