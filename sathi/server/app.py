"""FastAPI application factory for Sewa Sathi.

``create_app()`` is the single entry point used by the CLI and ``uvicorn``
alike.  The lifespan starts the Assistant (settings, engines, dispatch loop)
and stops it on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from sathi import __version__
from sathi.assistant import Assistant
from sathi.server.routes import router

logger = logging.getLogger(__name__)


def create_app(
    assistant: Assistant | None = None,
    *,
    tts_enabled: bool = True,
    always_listening: bool = False,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    The returned app has:
    * ``app.state.assistant`` - the :class:`Assistant` every route talks to
    * the routes from :mod:`sathi.server.routes`
    * lifespan hooks starting and stopping the assistant
    """
    if assistant is None:
        assistant = Assistant(tts_enabled=tts_enabled, always_listening=always_listening)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Sewa Sathi server starting up")
        await assistant.start()
        try:
            yield
        finally:
            logger.info("Sewa Sathi server shutting down")
            await assistant.stop()

    app = FastAPI(title="Sewa Sathi", version=__version__, lifespan=lifespan)
    app.state.assistant = assistant
    app.include_router(router)

    logger.info("FastAPI app created")
    return app
