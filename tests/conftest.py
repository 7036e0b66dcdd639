"""Shared fixtures: a scripted in-memory client."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from botrunner.context import Context
from botrunner.models import BotIdentity, Update

# Marker in a script: wait until the cancellation handle fires
BLOCK = object()


def make_update(update_id: int, text: str = "hi", chat_id: int = 42) -> Update:
    return Update.from_dict(
        {
            "update_id": update_id,
            "message": {"message_id": update_id, "chat": {"id": chat_id}, "text": text},
        }
    )


class FakeClient:
    """In-memory ``BotClient`` driven by scripted responses.

    Each script entry is returned, or raised if it is an exception. When
    the ``get_updates`` script runs out, the call blocks until cancelled,
    like an idle long poll. Calls without a signal (the offset flush on
    stop) return an empty batch.
    """

    def __init__(
        self,
        batches: Optional[List[Any]] = None,
        me: Optional[BotIdentity] = None,
    ) -> None:
        self.batches = list(batches or [])
        self.identity = me or BotIdentity(id=1, first_name="Test", username="test_bot")
        self.me_script: List[Any] = []
        self.webhook_script: List[Any] = []
        self.get_updates_calls: List[Dict[str, Any]] = []
        self.get_me_calls = 0
        self.delete_webhook_calls: List[Optional[bool]] = []
        self.calls: List[Any] = []
        self.call_results: Dict[str, Any] = {}
        self.idle = asyncio.Event()

    async def _block(self, signal: Any, method: str) -> Any:
        self.idle.set()
        return await signal.run(asyncio.Event().wait(), method=method)

    async def get_updates(self, offset, limit=None, timeout=None, allowed_updates=None, signal=None):
        self.get_updates_calls.append(
            {"offset": offset, "limit": limit, "timeout": timeout, "allowed_updates": allowed_updates}
        )
        if signal is None:
            return []
        item = self.batches.pop(0) if self.batches else BLOCK
        if item is BLOCK:
            return await self._block(signal, "getUpdates")
        if isinstance(item, BaseException):
            raise item
        return list(item)

    async def get_me(self, signal=None):
        self.get_me_calls += 1
        item = self.me_script.pop(0) if self.me_script else self.identity
        if item is BLOCK:
            return await self._block(signal, "getMe")
        if isinstance(item, BaseException):
            raise item
        return item

    async def delete_webhook(self, drop_pending_updates=None, signal=None):
        self.delete_webhook_calls.append(drop_pending_updates)
        item = self.webhook_script.pop(0) if self.webhook_script else True
        if item is BLOCK:
            return await self._block(signal, "deleteWebhook")
        if isinstance(item, BaseException):
            raise item
        return item

    async def call(self, method, params=None, signal=None):
        self.calls.append((method, dict(params or {})))
        return self.call_results.get(method, True)


@pytest.fixture
def identity():
    return BotIdentity(id=1, first_name="Test", username="test_bot")


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def ctx(client, identity):
    return Context(make_update(1), client, identity)
