"""Runtime settings for the MCP host."""

from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .logger import get_logger
from .tools import DirectivePolicy

logger = get_logger(__name__)

ENV_PREFIX = "MCP_HOST_"


class HostSettings(BaseSettings):
    """Tunables for transport, discovery and the orchestration loop.

    Values are read from ``MCP_HOST_*`` environment variables and a ``.env``
    file; keyword arguments take precedence. All durations are in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    open_timeout: float = Field(default=10.0, gt=0)
    open_attempts: int = Field(default=3, ge=1)
    reconnect_interval: float = Field(default=5.0, gt=0)
    endpoint_timeout: float = Field(default=2.0, ge=0)
    discovery_timeout: float = Field(default=5.0, gt=0)
    request_timeout: Optional[float] = Field(default=60.0, gt=0)
    tool_timeout: float = Field(default=180.0, gt=0)
    max_rounds: int = Field(default=5, ge=1)
    directive_policy: DirectivePolicy = DirectivePolicy.STRICT
    server_endpoints: Annotated[List[str], NoDecode] = Field(default_factory=list)
    client_name: str = "mcp-host-lib"
    client_version: str = "0.1.0"

    @field_validator("server_endpoints", mode="before")
    @classmethod
    def _split_endpoints(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _disable_request_timeout(cls, value: object) -> object:
        # An explicit "none" disables the per-request timeout.
        if isinstance(value, str) and value.strip().lower() == "none":
            return None
        return value

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "HostSettings":
        """
        Builds settings from the environment only.

        Args:
            load_env_file: Whether to read the ``.env`` file as well.

        Returns:
            The validated settings. Unset variables keep their defaults.
        """
        if not load_env_file:
            return cls(_env_file=None)
        logger.debug("Loading settings from the environment and .env")
        return cls()
