"""FastAPI application entry point for Athas Assistant."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from athas_assistant import __version__
from athas_assistant.api.routes import router
from athas_assistant.config import get_settings
from athas_assistant.context import AppContext

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect tool providers on startup, disconnect on shutdown."""
    context: AppContext = app.state.context

    logger.info(f"Starting Athas Assistant v{__version__}")
    await context.start()

    yield

    logger.info("Shutting down Athas Assistant")
    await context.close()


def create_app(context: AppContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        context: Prebuilt application context; built from settings if omitted
    """
    if context is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        context = AppContext.from_settings(settings)
    settings = context.settings

    app = FastAPI(
        title="Athas Assistant",
        description="Campaign chat assistant with MCP tool routing",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.context = context

    app.include_router(router, prefix="/api")
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    public_dir = Path(settings.public_dir)
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="static")

    return app


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "athas_assistant.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        timeout_graceful_shutdown=10,
    )


if __name__ == "__main__":
    run()
