"""Configuration schema definitions using Pydantic."""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BotConfig(BaseModel):
    # Environment overrides turn numeric-looking strings into numbers
    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    token: str = Field(default="", description="Bot token issued by the platform")
    api_base_url: str = Field(default="https://api.telegram.org")
    request_timeout_seconds: float = Field(default=10.0, gt=0)


class PollingConfig(BaseModel):
    """Long polling options."""

    model_config = ConfigDict(extra="forbid")

    limit: Optional[int] = Field(default=None, ge=1, le=100)
    timeout_seconds: int = Field(default=30, ge=0)
    allowed_updates: Optional[List[str]] = None
    drop_pending_updates: bool = False
    retry_interval_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Pause after a failed fetch before trying again",
    )

    @field_validator("allowed_updates", mode="before")
    @classmethod
    def split_single_value(cls, v: object) -> object:
        """Accept a single update type or a comma-separated string."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


class RetryConfig(BaseModel):
    """Backoff for startup calls.

    The first retry after a failure is immediate, then the delay doubles
    from ``initial_delay_seconds`` up to ``max_delay_seconds``.
    """

    model_config = ConfigDict(extra="forbid")

    initial_delay_seconds: float = Field(default=0.05, gt=0)
    max_delay_seconds: float = Field(default=50.0, gt=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "RetryConfig":
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError("max_delay_seconds must not be smaller than initial_delay_seconds")
        return self


class WebhookConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    path: str = "/webhook"
    secret_token: Optional[str] = None
    public_url: Optional[str] = None
    # Methods allowed to answer in the HTTP response; their result is always True
    reply_methods: List[str] = Field(default_factory=list)

    @field_validator("reply_methods", mode="before")
    @classmethod
    def split_methods(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [m.strip() for m in v.split(",") if m.strip()]
        return v

    @field_validator("path")
    @classmethod
    def leading_slash(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level"
    )
    format: Literal["simple", "detailed", "json"] = Field(
        default="simple",
        description="Log format type"
    )
    file: Optional[str] = Field(default=None, description="Optional log file path")
    max_file_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize log level to uppercase for case-insensitive input."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        """Normalize format to lowercase for case-insensitive input."""
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("file", mode="before")
    @classmethod
    def empty_file_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class Config(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    bot: BotConfig = Field(default_factory=BotConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
