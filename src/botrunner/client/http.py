"""HTTP implementation of the outbound client."""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import httpx

from ..errors import PlatformError, TransportError
from ..logging_config import get_logger
from ..models import BotIdentity, Update

if TYPE_CHECKING:
    from ..runtime.abort import CancellationHandle

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.telegram.org"


class HttpBotClient:
    """Bot API client on top of ``httpx.AsyncClient``.

    Every method is sent as ``POST {base_url}/bot{token}/{method}`` with
    a JSON body. Responses are unwrapped: ``{"ok": true, "result": ...}``
    returns ``result`` and ``{"ok": false, ...}`` raises
    :class:`PlatformError`. Network failures raise :class:`TransportError`.

    Example:
        client = HttpBotClient("123:abc")
        me = await client.get_me()
        await client.call("sendMessage", {"chat_id": 42, "text": "hi"})
        await client.aclose()
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        signal: Optional["CancellationHandle"] = None,
        request_timeout: Optional[float] = None,
    ) -> Any:
        payload = {k: v for k, v in (params or {}).items() if v is not None}
        request = self._send(method, payload, request_timeout)
        if signal is not None:
            return await signal.run(request, method=method)
        return await request

    async def _send(self, method: str, payload: Dict[str, Any], request_timeout: Optional[float]) -> Any:
        url = f"{self.base_url}/bot{self.token}/{method}"
        logger.debug(
            "Calling platform method",
            extra={"extra_fields": {"method": method}},
        )

        try:
            response = await self._http.post(
                url,
                json=payload,
                timeout=request_timeout if request_timeout is not None else self.timeout,
            )
            data = response.json()
        except httpx.HTTPError as e:
            raise TransportError(method, e) from e
        except ValueError as e:
            # Body was not JSON, typically a proxy error page
            raise TransportError(method, e) from e

        if not isinstance(data, dict):
            raise TransportError(method, ValueError(f"Unexpected response body: {data!r}"))

        if data.get("ok"):
            return data.get("result")

        raise PlatformError(
            method,
            error_code=int(data.get("error_code", response.status_code)),
            description=data.get("description", ""),
            parameters=data.get("parameters"),
        )

    async def get_updates(
        self,
        offset: int,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[Sequence[str]] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> List[Update]:
        params: Dict[str, Any] = {
            "offset": offset,
            "limit": limit,
            "timeout": timeout,
            "allowed_updates": list(allowed_updates) if allowed_updates is not None else None,
        }
        # Long polling holds the connection open for `timeout` seconds
        request_timeout = self.timeout + (timeout or 0)
        result = await self.call("getUpdates", params, signal=signal, request_timeout=request_timeout)
        return [Update.from_dict(item) for item in result or []]

    async def get_me(self, signal: Optional["CancellationHandle"] = None) -> BotIdentity:
        result = await self.call("getMe", signal=signal)
        return BotIdentity.from_dict(result)

    async def delete_webhook(
        self,
        drop_pending_updates: Optional[bool] = None,
        signal: Optional["CancellationHandle"] = None,
    ) -> bool:
        result = await self.call(
            "deleteWebhook",
            {"drop_pending_updates": drop_pending_updates},
            signal=signal,
        )
        return bool(result)
