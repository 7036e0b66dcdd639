"""Outbound client interface consumed by the runtime."""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ..models import BotIdentity, Update

if TYPE_CHECKING:
    from ..runtime.abort import CancellationHandle


@runtime_checkable
class BotClient(Protocol):
    """Structural interface for talking to the platform.

    The runtime only needs the three calls used by polling and startup
    plus a generic ``call`` that every outbound command goes through.
    Each accepts an optional cancellation handle.
    """

    async def get_updates(
        self,
        offset: int,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[Sequence[str]] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> List[Update]: ...

    async def get_me(self, signal: Optional["CancellationHandle"] = None) -> BotIdentity: ...

    async def delete_webhook(
        self,
        drop_pending_updates: Optional[bool] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> bool: ...

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> Any: ...
