"""Per-update processing context."""

from typing import Any, Dict, Optional

from .client.base import BotClient
from .models import BotIdentity, Update


class Context:
    """Context passed through the middleware pipeline for one update.

    A fresh context is built for every dispatch and is never shared
    between updates. ``metadata`` is a scratch space middleware can use
    to hand data to units further down the chain.
    """

    def __init__(self, update: Update, api: BotClient, me: BotIdentity) -> None:
        self.update = update
        self.api = api
        self.me = me
        self.metadata: Dict[str, Any] = {}

    @property
    def update_id(self) -> int:
        return self.update.update_id

    @property
    def update_type(self) -> Optional[str]:
        return self.update.update_type

    def has(self, update_type: str) -> bool:
        """Check whether the update carries the given payload type."""
        return update_type in self.update.data

    def add_metadata(self, key: str, value: Any) -> None:
        """Add metadata to context."""
        self.metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        """Get metadata from context."""
        return self.metadata.get(key, default)

    def __repr__(self) -> str:
        return f"Context(update_id={self.update_id}, update_type={self.update_type!r})"
