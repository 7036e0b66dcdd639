"""Configuration management."""

from .loader import reload_config, ConfigLoader
from .schema import Config, BotConfig, PollingConfig, RetryConfig, WebhookConfig, LoggingConfig

__all__ = [
    "reload_config",
    "ConfigLoader",
    "Config",
    "BotConfig",
    "PollingConfig",
    "RetryConfig",
    "WebhookConfig",
    "LoggingConfig",
]
