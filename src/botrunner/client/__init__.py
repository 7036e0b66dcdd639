"""Outbound client: protocol, HTTP implementation and reply envelope."""

from .base import BotClient
from .envelope import EnvelopeClient, ReplyEnvelope, reply_methods
from .http import HttpBotClient

__all__ = ["BotClient", "EnvelopeClient", "HttpBotClient", "ReplyEnvelope", "reply_methods"]
