"""Interaction endpoint.

A small aiohttp web app that receives Slack interactivity requests
(button clicks, posted as a form field ``payload`` holding JSON) and slash
commands (plain form fields) and hands them to an
:class:`~pylaundry.interactions.InteractionHandler`.

Slack expects an answer within three seconds, so requests are
acknowledged right away and handled in a background task.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Coroutine
from typing import Any
from urllib.parse import parse_qs

from aiohttp import web

from pylaundry.interactions import InteractionHandler

_logger = logging.getLogger(__name__)

# Requests older than this are treated as replays.
_MAX_REQUEST_AGE = 300


def slack_signature(signing_secret: str, timestamp: str, body: str) -> str:
    """Compute the ``X-Slack-Signature`` value for a request body."""
    base = f"v0:{timestamp}:{body}".encode()
    digest = hmac.new(signing_secret.encode(), base, hashlib.sha256).hexdigest()
    return f"v0={digest}"


class InteractionServer:
    """Serve ``POST <path>`` for Slack interactivity and slash commands.

    Usage::

        server = InteractionServer(handler, port=3000, signing_secret=secret)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(
        self,
        handler: InteractionHandler,
        *,
        host: str = "0.0.0.0",
        port: int = 3000,
        path: str = "/slack/events",
        signing_secret: str | None = None,
    ) -> None:
        self._handler = handler
        self._host = host
        self._port = port
        self._path = path
        self._signing_secret = signing_secret
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self._path, self._handle_request)
        return app

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        if self._runner is not None:
            return
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        _logger.info("Interaction endpoint listening on http://%s:%d%s", self._host, self._port, self._path)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self.wait_idle()
        await self._runner.cleanup()
        self._runner = None
        self._site = None
        _logger.info("Interaction endpoint stopped")

    async def wait_idle(self) -> None:
        """Wait for every acknowledged request to finish processing."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _verify(self, request: web.Request, body: str) -> bool:
        if self._signing_secret is None:
            return True
        timestamp = request.headers.get("X-Slack-Request-Timestamp", "")
        signature = request.headers.get("X-Slack-Signature", "")
        try:
            age = abs(time.time() - int(timestamp))
        except ValueError:
            return False
        if age > _MAX_REQUEST_AGE:
            return False
        expected = slack_signature(self._signing_secret, timestamp, body)
        return hmac.compare_digest(expected, signature)

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            _logger.error("Interaction handling failed", exc_info=task.exception())

    async def _handle_request(self, request: web.Request) -> web.Response:
        body = await request.text()
        if not self._verify(request, body):
            _logger.warning("Rejected interaction request with a bad signature")
            return web.Response(status=401, text="invalid signature")

        form = {key: values[0] for key, values in parse_qs(body).items() if values}
        if "payload" in form:
            try:
                payload = json.loads(form["payload"])
            except json.JSONDecodeError:
                return web.Response(status=400, text="invalid payload")
            if not isinstance(payload, dict):
                return web.Response(status=400, text="invalid payload")
            self._schedule(self._handler.handle_action(payload))
        elif "command" in form:
            self._schedule(self._handler.handle_slash_command(form))
        else:
            return web.Response(status=400, text="unsupported request")
        return web.Response(status=200)
