"""
Configuration settings for the scene client.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scene client configuration settings."""

    # Service information
    PROJECT_NAME: str = "Scene Client"
    VERSION: str = "0.1.0"

    # Relay connection
    RELAY_URL: str = Field(
        default="http://127.0.0.1:8835",
        description="URL of the presence relay"
    )
    SOCKET_IO_PATH: str = "socket.io"
    CONNECT_TIMEOUT: float = Field(
        default=10.0, gt=0,
        description="Seconds to wait for the Socket.IO handshake"
    )

    # Reconnection policy
    RECONNECTION_ATTEMPTS: int = Field(
        default=30, ge=1,
        description="Connection attempts before giving up"
    )
    RECONNECTION_DELAY: float = Field(
        default=1.0, ge=0,
        description="Initial delay between attempts, in seconds"
    )
    RECONNECTION_DELAY_MAX: float = Field(
        default=5.0, ge=0,
        description="Upper bound of the backoff delay, in seconds"
    )
    RECONNECTION_JITTER: float = Field(default=0.5, ge=0, le=1)

    # Local participant
    CHARACTER_NAME: str = Field(
        default="guest",
        description="Display name announced to other participants"
    )
    PING_INTERVAL: float = Field(
        default=5.0, gt=0,
        description="Seconds between liveness pings"
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


settings = Settings()


def get_settings() -> Settings:
    return settings
