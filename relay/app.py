from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Config
from .logging_config import get_logger, setup_logging
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .state import RelayState

logger = get_logger(__name__)


def create_app(config_class=Config) -> FastAPI:
    """Build an app with its own, empty room and connection registries."""
    setup_logging(log_level=config_class.LOG_LEVEL, log_file=config_class.LOG_FILE)

    application = FastAPI(title="Room Relay")
    application.state.relay = RelayState()
    application.state.config = config_class

    origins = list(config_class.CORS_ORIGINS) or ["*"]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    application.include_router(rooms_router.router)
    application.include_router(ws_router.router)

    logger.info("Relay application initialized")
    return application


app = create_app()

__all__ = ["app", "create_app"]
