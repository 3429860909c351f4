"""
FastAPI application.

The app serves the REST routes and the '/ws' fan-out endpoint on top of one
'ChatBackend'. On startup it starts the change relay and, when configured, the
periodic summary reconciliation; both stop with the app.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from chat_relay.api.routes import auth, chats, friends, messages, realtime, users
from chat_relay.backend import ChatBackend
from chat_relay.errors import ChatRelayError


def create_app(backend: ChatBackend, reconcile_interval: float = 0) -> FastAPI:
    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await backend.relay.start()
        sweep = None
        if reconcile_interval > 0:
            logger.info(f"Reconciling summaries every {reconcile_interval}s")
            sweep = asyncio.create_task(backend.reconciler.run_forever(reconcile_interval))
        try:
            yield
        finally:
            if sweep is not None:
                sweep.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweep
            backend.store.close()

    app = FastAPI(title="chat-relay", lifespan=lifespan)
    app.state.backend = backend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatRelayError)
    async def handle_domain_error(request: Request, exc: ChatRelayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    for module in (chats, messages, users, friends, auth, realtime):
        app.include_router(module.router)
    return app
