"""
Main application module for the relay service.
"""

import asyncio
import logging
import signal
import socket
import sys
from contextlib import asynccontextmanager

import socketio
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.shared.utils.logging_config import setup_logging

from .api.routers import router
from .core.config import get_settings
from .core.relay_server import RelayServer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def create_app(relay: RelayServer) -> FastAPI:
    """Build the HTTP application that owns the relay's lifespan."""
    settings = relay.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup logic
        logger.info("Starting relay service...")
        await relay.initialize()
        logger.info("Relay service started successfully")

        yield  # This is where FastAPI serves requests

        # Shutdown logic
        logger.info("Shutting down relay service")
        app.state.closed_cleanly = await relay.shutdown()
        logger.info("Relay service shut down")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Relay for participant presence in a shared space",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.relay = relay
    app.state.closed_cleanly = True

    # Configure CORS
    origins = settings.SOCKET_IO_CORS_ALLOWED_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if origins == "*" else origins.split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(router, prefix=settings.API_PREFIX)
    return app


def create_asgi_app(relay: RelayServer, api: FastAPI) -> socketio.ASGIApp:
    """Serve Socket.IO in front of the HTTP application."""
    return socketio.ASGIApp(
        relay.sio,
        other_asgi_app=api,
        socketio_path=relay.settings.SOCKET_IO_PATH,
    )


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket, raising OSError on failure."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def _log_signal(signum, frame) -> None:
    # uvicorn re-raises the signal it stopped on once it has shut down
    logger.info(f"Received {signal.Signals(signum).name}")


settings = get_settings()
relay_server = RelayServer(settings)
api = create_app(relay_server)
app = create_asgi_app(relay_server, api)


async def main() -> int:
    """Serve until SIGINT/SIGTERM, returning the process exit code."""
    try:
        sock = bind_socket(settings.RELAY_HOST, settings.RELAY_PORT)
    except OSError as e:
        logger.error(f"error binding http server: {e}")
        await relay_server.shutdown()
        return 1

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _log_signal)

    config = uvicorn.Config(
        app,
        log_level=settings.LOG_LEVEL.lower(),
        lifespan="on",
    )
    server = uvicorn.Server(config)

    logger.info(
        f"http server listening on {settings.RELAY_HOST}:{settings.RELAY_PORT}"
    )
    try:
        await server.serve(sockets=[sock])
    finally:
        sock.close()

    # 0 = everything closed cleanly, 1 = a connection failed to close
    return 0 if api.state.closed_cleanly else 1


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    sys.exit(asyncio.run(main()))
