"""
Converter backend service: one FFmpeg-backed conversion session.
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from converter import __version__
from converter.execution import EngineLoader, FFmpegLoader
from converter.jobs import JobOrchestrator
from converter.presets import PresetRegistry
from converter.routes import control, health
from converter.settings import ConverterSettings

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[ConverterSettings] = None,
    loader: Optional[EngineLoader] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    The orchestrator is created on startup and begins waiting for the
    engine in the background; it is closed (working storage released)
    on shutdown.

    Args:
        settings: Converter settings (environment if omitted)
        loader: Engine loader (FFmpegLoader if omitted)
    """
    settings = settings or ConverterSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        orchestrator = JobOrchestrator(
            loader or FFmpegLoader(settings),
            settings,
            PresetRegistry(),
        )
        app.state.orchestrator = orchestrator
        orchestrator.initialize_in_background()
        logger.info("[LIFECYCLE] Converter service started")
        try:
            yield
        finally:
            await orchestrator.close()
            logger.info("[LIFECYCLE] Converter service stopped")

    app = FastAPI(title="Converter Backend", version=__version__, lifespan=lifespan)

    # CORS middleware for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],  # Vite dev server
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(control.router)

    @app.get("/")
    async def root():
        return {"service": "converter-backend", "status": "running"}

    return app


app = create_app()


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """
    Run the converter backend with uvicorn.

    Args:
        host: Host to bind to
        port: Port to listen on
    """
    import uvicorn

    logger.info(f"Starting converter backend on {host}:{port}")
    uvicorn.run(app, host=host, port=port)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the converter backend service")
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT})")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    run_server(args.host, args.port)


if __name__ == "__main__":
    main()
