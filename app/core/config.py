# core/config.py
from urllib.parse import quote

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from typing import Literal, Optional


class Settings(BaseSettings):
    """
    Centralized application configuration.
    Grouped logically for readability.
    """

    # ------------------------------------------------------------
    # Project / Runtime
    # ------------------------------------------------------------
    PROJECT_NAME: str = "Universal OS Chat Gateway"
    DEBUG: bool = False
    ENABLE_CORS: bool = True
    API_PREFIX: str = "/api"

    # HTTP / API
    FRONTEND_ENDPOINT: str = ""
    BACKEND_ENDPOINT: str = ""

    # ------------------------------------------------------------
    # Assistant (OpenAI Assistants API)
    # ------------------------------------------------------------
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")
    OPENAI_ASSISTANT_ID: str = Field(..., description="Assistant used for every chat run")
    OPENAI_TIMEOUT_SECS: float = 30.0
    OPENAI_MAX_RETRIES: int = 2

    """
    Run polling budget: the worker waits at most
    ASSISTANT_POLL_INTERVAL_SECS * ASSISTANT_MAX_POLL_ATTEMPTS for a run
    """
    ASSISTANT_POLL_INTERVAL_SECS: float = 1.0
    ASSISTANT_MAX_POLL_ATTEMPTS: int = 30

    # ------------------------------------------------------------
    # Job storage (queue, markers, results)
    # ------------------------------------------------------------
    STORE_BACKEND: Literal["redis", "memory"] = Field(
        default="redis",
        description="'redis' for shared durable storage, 'memory' for tests and local runs"
    )
    CHAT_KEY_PREFIX: str = "chat"
    RESULT_TTL_SECS: int = Field(
        default=3600,
        description="How long a finished result can be polled"
    )
    PROCESSING_MARKER_TTL_SECS: int = Field(
        default=120,
        description=(
            "Expiry of the processing marker. The worker refreshes it between "
            "assistant calls, so it must outlast one OpenAI call with retries"
        )
    )
    QUEUED_MARKER_TTL_SECS: int = 3600

    # ------------------------------------------------------------
    # Redis Configuration
    # ------------------------------------------------------------
    REDIS_HOST: str = Field(
        default="localhost",
        description="Redis server hostname"
    )
    REDIS_PORT: int = Field(
        default=6379,
        description="Redis server port"
    )
    REDIS_DB: int = Field(
        default=0,
        description="Redis database number (0-15)"
    )
    REDIS_PASSWORD: Optional[str] = Field(
        default=None,
        description="Redis password (optional)"
    )
    REDIS_SSL: bool = Field(
        default=False,
        description="Use TLS/SSL for the Redis connection"
    )
    REDIS_SSL_CERT_REQS: Literal["required", "optional", "none"] = Field(
        default="required",
        description="Server certificate verification when REDIS_SSL is on"
    )
    REDIS_SOCKET_TIMEOUT: int = Field(
        default=5,
        description="Socket timeout in seconds"
    )
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(
        default=5,
        description="Socket connect timeout in seconds"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=50,
        description="Maximum connections in the pool"
    )

    # ------------------------------------------------------------
    # Rate limiting (POST /chat only)
    # ------------------------------------------------------------
    RATE_LIMIT_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECS: int = 10
    RATE_LIMIT_STRATEGY: Literal["fixed-window", "moving-window"] = "fixed-window"
    RATE_LIMIT_STORAGE_URI: Optional[str] = Field(
        default=None,
        description="Explicit limits storage URI; derived from STORE_BACKEND when unset"
    )
    RATE_LIMIT_DEFAULT_CLIENT: str = "127.0.0.1"
    TRUST_FORWARDED_FOR: bool = True

    # ------------------------------------------------------------
    # Worker loop
    # ------------------------------------------------------------
    WORKER_ENABLED: bool = True
    WORKER_IDLE_SLEEP_SECS: float = 1.0
    WORKER_RESCHEDULE_DELAY_SECS: float = 1.0
    WORKER_SHUTDOWN_GRACE_SECS: float = 5.0

    # ------------------------------------------------------------
    # DEX data
    # ------------------------------------------------------------
    DEXSCREENER_BASE_URL: str = "https://api.dexscreener.com/latest"
    DEXTOOLS_BASE_URL: str = "https://api.dextools.io/v1"
    DEXTOOLS_API_KEY: Optional[str] = None
    DEX_HTTP_TIMEOUT_SECS: float = 10.0
    DEFAULT_TOKEN_ADDRESS: str = "79HZeHkX9A5WfBg72ankd1ppTXGepoSGpmkxW63wsrHY"
    DEFAULT_CHAIN_ID: str = "solana"

    @property
    def RATE_LIMIT(self) -> str:
        return f"{self.RATE_LIMIT_REQUESTS} per {self.RATE_LIMIT_WINDOW_SECS} seconds"

    @property
    def RATE_LIMIT_STORAGE(self) -> str:
        if self.RATE_LIMIT_STORAGE_URI:
            return self.RATE_LIMIT_STORAGE_URI
        if self.STORE_BACKEND == "memory":
            return "memory://"
        scheme = "rediss" if self.REDIS_SSL else "redis"
        auth = f":{quote(self.REDIS_PASSWORD, safe='')}@" if self.REDIS_PASSWORD else ""
        uri = f"{scheme}://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        if self.REDIS_SSL and self.REDIS_SSL_CERT_REQS != "required":
            uri += f"?ssl_cert_reqs={self.REDIS_SSL_CERT_REQS}"
        return uri

    @model_validator(mode="after")
    def _marker_outlives_assistant_call(self) -> "Settings":
        # Longest gap between two marker refreshes: one poll sleep plus one
        # OpenAI call including its retries.
        longest_gap = (
            self.ASSISTANT_POLL_INTERVAL_SECS
            + self.OPENAI_TIMEOUT_SECS * (self.OPENAI_MAX_RETRIES + 1)
        )
        if self.PROCESSING_MARKER_TTL_SECS <= longest_gap:
            raise ValueError(
                f"PROCESSING_MARKER_TTL_SECS ({self.PROCESSING_MARKER_TTL_SECS}) must exceed "
                f"{longest_gap:g}s (ASSISTANT_POLL_INTERVAL_SECS + "
                f"OPENAI_TIMEOUT_SECS * (OPENAI_MAX_RETRIES + 1))"
            )
        return self

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
