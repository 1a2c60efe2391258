import uvicorn
import os

# Importing app configures logging from LOG_LEVEL / LOG_FILE
from app import app
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    logger.info(f"Starting HookSocket relay on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
