"""JSON-over-HTTP transport used by the feed and the Slack notifier."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pylaundry._redact import redact_headers
from pylaundry.exceptions import LaundryTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, headers: Mapping[str, str]) -> Any: ...

    async def post_json(self, url: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> Any: ...


class HttpTransport:
    """aiohttp-backed transport that decodes every response body as JSON."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str, headers: Mapping[str, str]) -> Any:
        _logger.debug("GET %s headers=%s", url, redact_headers(headers))
        return await self._request("GET", url, headers=headers)

    async def post_json(self, url: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> Any:
        _logger.debug("POST %s headers=%s", url, redact_headers(headers))
        return await self._request("POST", url, headers=headers, body=json.dumps(payload))

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: str | None = None,
    ) -> Any:
        request_headers = dict(headers)
        if body is not None:
            request_headers.setdefault("Content-Type", "application/json; charset=utf-8")

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                payload = await resp.read()
                charset = resp.charset or "utf-8"
                if resp.status != 200:
                    snippet = payload[:200].decode("utf-8", errors="replace")
                    raise LaundryTransportError(
                        f"HTTP {resp.status} from {url}: {snippet}",
                        status_code=resp.status,
                        url=url,
                    )
        except LaundryTransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise LaundryTransportError(f"Request to {url} timed out", url=url) from exc
        except aiohttp.ClientError as exc:
            raise LaundryTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            text = payload.decode(charset)
        except (LookupError, UnicodeDecodeError) as exc:
            raise LaundryTransportError(f"Undecodable {charset} response body from {url}", url=url) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise LaundryTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                url=url,
            ) from exc
