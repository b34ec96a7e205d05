from typing import Any, Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Relay service configuration settings"""

    # Service information
    PROJECT_NAME: str = "Presence Relay"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # Environment
    ENV: str = Field(
        default="development",
        description="Environment (development, staging, production)"
    )

    # Listening socket
    RELAY_HOST: str = "0.0.0.0"
    RELAY_PORT: int = Field(default=8835, description="Relay listening port")

    # Socket.IO settings
    SOCKET_IO_PATH: str = "socket.io"
    SOCKET_IO_ASYNC_MODE: str = "asgi"
    SOCKET_IO_CORS_ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Socket.IO CORS allowed origins"
    )
    SOCKET_IO_PING_TIMEOUT: int = 5
    SOCKET_IO_PING_INTERVAL: int = 25
    SOCKET_IO_MAX_HTTP_BUFFER_SIZE: int = 1000000  # 1MB

    # Presence policy
    LIVENESS_TIMEOUT: float = Field(
        default=15.0, gt=0,
        description="Seconds without a liveness signal before eviction"
    )
    LIVENESS_INTERVAL: float = Field(
        default=5.0, gt=0,
        description="Seconds between liveness sweeps"
    )
    INTRODUCE_THROTTLE: float = Field(
        default=1.0, ge=0,
        description="Per-connection window for automatic introductions"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )


# Create a singleton instance
settings = Settings()


def get_socket_io_config(config: Settings = settings) -> Dict[str, Any]:
    """Get Socket.IO server configuration."""
    return {
        "async_mode": config.SOCKET_IO_ASYNC_MODE,
        "cors_allowed_origins": config.SOCKET_IO_CORS_ALLOWED_ORIGINS,
        "ping_timeout": config.SOCKET_IO_PING_TIMEOUT,
        "ping_interval": config.SOCKET_IO_PING_INTERVAL,
        "max_http_buffer_size": config.SOCKET_IO_MAX_HTTP_BUFFER_SIZE,
        # websocket only, no long-polling fallback
        "transports": ["websocket"],
    }


def get_settings() -> Settings:
    return settings
