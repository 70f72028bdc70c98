from __future__ import annotations

import uvicorn

from .config import Config
from .logging_config import get_logger, setup_logging

setup_logging(log_level=Config.LOG_LEVEL, log_file=Config.LOG_FILE)
logger = get_logger("relay.main")


def main() -> None:
    logger.info(f"Starting relay server on {Config.HOST}:{Config.PORT}")
    uvicorn.run("relay.app:app", host=Config.HOST, port=Config.PORT, log_level=Config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
