"""Webhook reply envelope.

When updates are pushed over HTTP, the platform lets the bot answer the
request itself with one outbound call instead of opening a second
connection. The envelope captures the first call made through a method
the bot opted in for, so the delivery driver can put it in the HTTP
response.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from ..models import BotIdentity, Update
from .base import BotClient

if TYPE_CHECKING:
    from ..runtime.abort import CancellationHandle


class ReplyEnvelope:
    """Holds at most one outbound call to be returned as an HTTP reply."""

    def __init__(self) -> None:
        self.payload: Optional[Dict[str, Any]] = None

    @property
    def used(self) -> bool:
        return self.payload is not None

    def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> bool:
        """Take the call if the envelope is still empty.

        Returns ``True`` when the call was captured.
        """
        if self.used:
            return False
        self.payload = {"method": method, **(params or {})}
        return True


def never_reply(method: str) -> bool:
    return False


def reply_methods(methods: Sequence[str]) -> Callable[[str], bool]:
    """Predicate allowing webhook replies for the named methods only."""
    allowed = frozenset(methods)

    def can_use_webhook_reply(method: str) -> bool:
        return method in allowed

    return can_use_webhook_reply


class EnvelopeClient:
    """Client wrapper that routes the first eligible ``call`` into an envelope.

    A call is eligible only when ``can_use_webhook_reply(method)`` is true;
    without a predicate nothing is captured. A captured call returns
    ``True`` because its result never comes back to the bot, so methods
    whose result matters should not be allowed. All other traffic goes
    to the wrapped client unchanged.
    """

    def __init__(
        self,
        client: BotClient,
        envelope: ReplyEnvelope,
        can_use_webhook_reply: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.client = client
        self.envelope = envelope
        self.can_use_webhook_reply = can_use_webhook_reply or never_reply

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> Any:
        if self.can_use_webhook_reply(method) and self.envelope.send(method, params):
            return True
        return await self.client.call(method, params, signal=signal)

    async def get_updates(
        self,
        offset: int,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[Sequence[str]] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> List[Update]:
        return await self.client.get_updates(
            offset, limit=limit, timeout=timeout, allowed_updates=allowed_updates, signal=signal
        )

    async def get_me(self, signal: Optional["CancellationHandle"] = None) -> BotIdentity:
        return await self.client.get_me(signal=signal)

    async def delete_webhook(
        self,
        drop_pending_updates: Optional[bool] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> bool:
        return await self.client.delete_webhook(drop_pending_updates, signal=signal)
