from __future__ import annotations

import json
import time
from collections.abc import Sequence
from urllib.parse import urlencode

import pytest
from aiohttp import test_utils

from pylaundry.interactions import InteractionHandler
from pylaundry.models.machine import MachineSnapshot, MachineStatus
from pylaundry.server import InteractionServer, slack_signature
from pylaundry.state.tracker import EngagementTracker

_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
_FORM = {"Content-Type": "application/x-www-form-urlencoded"}


class _RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, tuple[str, ...]]] = []

    async def send(self, text: str, *, mentions: Sequence[str] = ()) -> None:
        self.messages.append((text, tuple(mentions)))


def _machines() -> dict[str, MachineSnapshot]:
    dryer = MachineSnapshot(id="m-21", number="D1", is_washer=False, status=MachineStatus.IN_USE)
    return {dryer.id: dryer}


def _server(signing_secret: str | None = _SECRET) -> tuple[InteractionServer, EngagementTracker, _RecordingNotifier]:
    tracker = EngagementTracker()
    notifier = _RecordingNotifier()
    handler = InteractionHandler(tracker, notifier, machines=_machines)
    return InteractionServer(handler, signing_secret=signing_secret), tracker, notifier


def _signed(body: str, *, secret: str = _SECRET, timestamp: int | None = None) -> dict[str, str]:
    stamp = str(int(time.time()) if timestamp is None else timestamp)
    return {
        **_FORM,
        "X-Slack-Request-Timestamp": stamp,
        "X-Slack-Signature": slack_signature(secret, stamp, body),
    }


def _button_body(action_id: str) -> str:
    payload = {
        "type": "block_actions",
        "user": {"id": "U1", "username": "alice"},
        "actions": [{"action_id": action_id}],
    }
    return urlencode({"payload": json.dumps(payload)})


def test_slack_signature_matches_documented_format() -> None:
    signature = slack_signature("secret", "1531420618", "token=abc")

    assert signature.startswith("v0=")
    assert len(signature) == 3 + 64
    assert signature == slack_signature("secret", "1531420618", "token=abc")
    assert signature != slack_signature("secret", "1531420619", "token=abc")


@pytest.mark.asyncio
async def test_signed_button_click_claims_machine() -> None:
    server, tracker, notifier = _server()
    body = _button_body("claim_machine_m-21")

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        resp = await client.post("/slack/events", data=body, headers=_signed(body))
        assert resp.status == 200
        await server.wait_idle()

    claim = tracker.get_claim("m-21")
    assert claim is not None and claim.user_id == "U1"
    assert notifier.messages == [("Machine D1 claimed by <@U1>", ("U1",))]


@pytest.mark.asyncio
async def test_slash_command_snoops_machine() -> None:
    server, tracker, notifier = _server()
    body = urlencode({"command": "/laundry", "text": "snoop D1", "user_id": "U7", "user_name": "gina"})

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        resp = await client.post("/slack/events", data=body, headers=_signed(body))
        assert resp.status == 200
        await server.wait_idle()

    assert [s.user_id for s in tracker.get_snoops("m-21")] == ["U7"]
    assert "will be notified when machine D1 is done" in notifier.messages[0][0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [
        _FORM,
        {**_FORM, "X-Slack-Request-Timestamp": "yesterday", "X-Slack-Signature": "v0=00"},
    ],
)
async def test_unsigned_request_is_rejected(headers: dict[str, str]) -> None:
    server, tracker, notifier = _server()
    body = _button_body("claim_machine_m-21")

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        resp = await client.post("/slack/events", data=body, headers=headers)
        assert resp.status == 401

    assert tracker.get_claim("m-21") is None
    assert notifier.messages == []


@pytest.mark.asyncio
async def test_wrong_secret_and_stale_timestamp_are_rejected() -> None:
    server, tracker, _ = _server()
    body = _button_body("claim_machine_m-21")

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        wrong = await client.post("/slack/events", data=body, headers=_signed(body, secret="other"))
        stale = await client.post(
            "/slack/events", data=body, headers=_signed(body, timestamp=int(time.time()) - 600)
        )

    assert wrong.status == 401
    assert stale.status == 401
    assert tracker.get_claim("m-21") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        urlencode({"payload": "{not json"}),
        urlencode({"payload": "[1, 2]"}),
        urlencode({"token": "abc"}),
    ],
)
async def test_malformed_requests_return_400(body: str) -> None:
    server, _, notifier = _server()

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        resp = await client.post("/slack/events", data=body, headers=_signed(body))
        assert resp.status == 400

    assert notifier.messages == []


@pytest.mark.asyncio
async def test_signature_check_skipped_without_secret() -> None:
    server, tracker, _ = _server(signing_secret=None)
    body = _button_body("snoop_machine_m-21")

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        resp = await client.post("/slack/events", data=body, headers=_FORM)
        assert resp.status == 200
        await server.wait_idle()

    assert [s.user_id for s in tracker.get_snoops("m-21")] == ["U1"]


@pytest.mark.asyncio
async def test_start_and_stop_bind_the_port() -> None:
    server = InteractionServer(
        InteractionHandler(EngagementTracker(), _RecordingNotifier()),
        host="127.0.0.1",
        port=test_utils.unused_port(),
    )

    await server.start()
    assert server.is_running
    await server.stop()
    assert not server.is_running
