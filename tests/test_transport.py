from __future__ import annotations

import asyncio
import socket

import aiohttp
import pytest
from aiohttp import test_utils, web

from pylaundry._transport import HttpTransport
from pylaundry.exceptions import LaundryTransportError


async def _machines(request: web.Request) -> web.Response:
    return web.json_response([{"id": "m-1"}])


async def _echo(request: web.Request) -> web.Response:
    return web.json_response({"ok": True, "received": await request.json(), "auth": request.headers["Authorization"]})


async def _unavailable(request: web.Request) -> web.Response:
    return web.Response(status=503, text="maintenance")


async def _not_json(request: web.Request) -> web.Response:
    return web.Response(text="<html>login</html>", content_type="text/html")


async def _bad_utf8(request: web.Request) -> web.Response:
    return web.Response(body=b'[{"id": "\xff"}]', headers={"Content-Type": "application/json; charset=utf-8"})


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response([])


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/machines", _machines)
    app.router.add_post("/echo", _echo)
    app.router.add_get("/unavailable", _unavailable)
    app.router.add_get("/not-json", _not_json)
    app.router.add_get("/bad-utf8", _bad_utf8)
    app.router.add_get("/slow", _slow)
    return app


def _closed_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_get_json_decodes_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        assert await transport.get_json(str(server.make_url("/machines")), {}) == [{"id": "m-1"}]


@pytest.mark.asyncio
async def test_post_json_sends_payload_and_headers() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        response = await transport.post_json(
            str(server.make_url("/echo")),
            {"channel": "C1", "text": "hi"},
            {"Authorization": "Bearer t"},
        )

    assert response == {"ok": True, "received": {"channel": "C1", "text": "hi"}, "auth": "Bearer t"}


@pytest.mark.asyncio
async def test_non_200_raises_with_status_code() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        with pytest.raises(LaundryTransportError) as exc_info:
            await transport.get_json(str(server.make_url("/unavailable")), {})

    assert exc_info.value.status_code == 503
    assert "maintenance" in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_json_raises() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        with pytest.raises(LaundryTransportError, match="Invalid JSON"):
            await transport.get_json(str(server.make_url("/not-json")), {})


@pytest.mark.asyncio
async def test_undecodable_body_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)
        with pytest.raises(LaundryTransportError, match="Undecodable"):
            await transport.get_json(str(server.make_url("/bad-utf8")), {})


@pytest.mark.asyncio
async def test_timeout_raises() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session, timeout=0.1)
        with pytest.raises(LaundryTransportError, match="timed out"):
            await transport.get_json(str(server.make_url("/slow")), {})


@pytest.mark.asyncio
async def test_connection_error_raises() -> None:
    async with aiohttp.ClientSession() as session:
        transport = HttpTransport(session, timeout=2.0)
        with pytest.raises(LaundryTransportError, match="failed"):
            await transport.get_json(f"http://127.0.0.1:{_closed_port()}/machines", {})
