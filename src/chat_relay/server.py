"""
Entry point of the 'chat-relay' console script.

    STORE_BACKEND=firebase FIREBASE_DATABASE_URL=https://<project>.firebaseio.com chat-relay
"""

import sys

import uvicorn
from loguru import logger

from chat_relay.api.app import create_app
from chat_relay.backend import build_backend
from chat_relay.config import load_settings


def main() -> None:
    settings = load_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    app = create_app(build_backend(settings), reconcile_interval=settings.reconcile_interval_seconds)
    logger.info(f"Serving on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
