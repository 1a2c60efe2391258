from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from broadcaster import Broadcaster
from forwarder import Forwarder
from logging_config import get_logger, setup_logging
from rooms import RoomManager
from routers.relay import relay_router
from schemas.relay import RelayConfig
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


def create_app(config: Optional[RelayConfig] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Build the relay application.

    Each app owns its rooms; nothing is shared between instances. A caller
    supplied `http_client` is used as is and left open on shutdown.
    """
    config = config or RelayConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(config.forward_timeout))
        app.state.forwarder = Forwarder(config, client, app.state.rooms, app.state.broadcaster)
        logger.info(f"Relay started: {config.ws_path} -> {config.api_path}, "
                    f"{config.ws_path_test} -> {config.api_path_test}, host={config.api_host or '<request host>'}")
        try:
            yield
        finally:
            await app.state.forwarder.aclose()
            app.state.rooms.close()
            if http_client is None:
                await client.aclose()
            logger.info("Relay stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.rooms = RoomManager(config)
    app.state.broadcaster = Broadcaster(config)
    app.include_router(relay_router)
    return app


app = create_app()

logger.info("FastAPI application initialized")
