"""Inbound payload types."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Update:
    """One inbound event delivered by the platform.

    ``update_id`` increases monotonically. Everything else the platform
    sent is kept in ``data``, which is read-only.
    """

    update_id: int
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Update":
        """Build an update from the platform's JSON object."""
        if "update_id" not in payload:
            raise ValueError("Update payload has no 'update_id'")
        data = {k: v for k, v in payload.items() if k != "update_id"}
        return cls(update_id=int(payload["update_id"]), data=data)

    @property
    def update_type(self) -> Optional[str]:
        """Name of the payload carried by this update, e.g. ``message``."""
        for key in self.data:
            return key
        return None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"update_id": self.update_id, **self.data}


@dataclass(frozen=True)
class BotIdentity:
    """The running bot's own account, as returned by the handshake."""

    id: int
    is_bot: bool = True
    first_name: str = ""
    username: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "BotIdentity":
        return cls(
            id=int(payload["id"]),
            is_bot=bool(payload.get("is_bot", True)),
            first_name=payload.get("first_name", ""),
            username=payload.get("username"),
        )
