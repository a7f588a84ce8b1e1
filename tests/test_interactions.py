from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from pylaundry.exceptions import NotificationError
from pylaundry.interactions import InteractionHandler, command_from_action, command_from_slash, reply_text
from pylaundry.models.commands import (
    ClaimRequested,
    CommandResult,
    ReleaseRequested,
    SnoopRequested,
    UnsnoopRequested,
)
from pylaundry.models.machine import MachineSnapshot, MachineStatus
from pylaundry.state.tracker import EngagementTracker


class _RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[tuple[str, tuple[str, ...]]] = []

    async def send(self, text: str, *, mentions: Sequence[str] = ()) -> None:
        if self.fail:
            raise NotificationError("slack down", reason="transport")
        self.messages.append((text, tuple(mentions)))


def _action(action_id: str, **user: Any) -> dict[str, Any]:
    return {
        "type": "block_actions",
        "user": {"id": "U1", "username": "alice", **user},
        "actions": [{"action_id": action_id}],
    }


def _machines() -> dict[str, MachineSnapshot]:
    washer = MachineSnapshot(id="m-17", number="W3", is_washer=True, status=MachineStatus.IN_USE)
    return {washer.id: washer}


@pytest.mark.parametrize(
    ("action_id", "expected_type"),
    [
        ("claim_machine_m-17", ClaimRequested),
        ("snoop_machine_m-17", SnoopRequested),
        ("release_machine_m-17", ReleaseRequested),
        ("unsnoop_machine_m-17", UnsnoopRequested),
    ],
)
def test_command_from_action_maps_buttons(action_id: str, expected_type: type) -> None:
    command = command_from_action(_action(action_id))

    assert isinstance(command, expected_type)
    assert command.machine_id == "m-17"


def test_command_from_action_falls_back_to_display_name() -> None:
    command = command_from_action(_action("claim_machine_m-17", username=None, name="Alice B"))

    assert isinstance(command, ClaimRequested)
    assert command.user_id == "U1"
    assert command.username == "Alice B"


@pytest.mark.parametrize(
    "payload",
    [
        _action("vote_lunch_pizza"),
        {"type": "block_actions", "actions": [{"action_id": "claim_machine_m-17"}]},
        {"type": "block_actions", "user": {"id": "U1"}, "actions": []},
        _action("claim_machine_"),
        {"type": "view_submission", "user": {"id": "U1"}},
    ],
)
def test_command_from_action_ignores_unrelated_payloads(payload: dict[str, Any]) -> None:
    assert command_from_action(payload) is None


def test_command_from_slash_parses_verb_and_machine() -> None:
    command = command_from_slash({"text": "Claim W3", "user_id": "U2", "user_name": "bob"})

    assert isinstance(command, ClaimRequested)
    assert command.machine_id == "W3"
    assert command.username == "bob"


@pytest.mark.parametrize("text", ["", "claim", "wash W3", "claim W3 now"])
def test_command_from_slash_rejects_other_text(text: str) -> None:
    assert command_from_slash({"text": text, "user_id": "U2"}) is None


def test_reply_text_for_each_outcome() -> None:
    claim = ClaimRequested(machine_id="m-17", user_id="U1", username="alice")
    snoop = SnoopRequested(machine_id="m-17", user_id="U2", username="bob")

    assert reply_text(CommandResult(command=claim, accepted=True), "W3") == "Machine W3 claimed by <@U1>"
    assert reply_text(CommandResult(command=claim, accepted=False), "W3") == "Machine W3 is already claimed!"
    assert "will be notified" in reply_text(CommandResult(command=snoop, accepted=True))
    assert "already snooping machine m-17" in reply_text(CommandResult(command=snoop, accepted=False))
    release = ReleaseRequested(machine_id="m-17")
    assert reply_text(CommandResult(command=release, accepted=False)) == "Machine m-17 is not claimed"


@pytest.mark.asyncio
async def test_slash_claim_by_machine_number_uses_machine_id() -> None:
    tracker = EngagementTracker()
    notifier = _RecordingNotifier()
    handler = InteractionHandler(tracker, notifier, machines=_machines)

    result = await handler.handle_slash_command({"text": "claim w3", "user_id": "U1", "user_name": "alice"})

    assert result is not None and result.accepted
    claim = tracker.get_claim("m-17")
    assert claim is not None and claim.username == "alice"
    assert notifier.messages == [("Machine W3 claimed by <@U1>", ("U1",))]


@pytest.mark.asyncio
async def test_second_claim_is_refused_in_channel() -> None:
    tracker = EngagementTracker()
    notifier = _RecordingNotifier()
    handler = InteractionHandler(tracker, notifier, machines=_machines)

    await handler.handle_action(_action("claim_machine_m-17"))
    result = await handler.handle_action(_action("claim_machine_m-17", id="U2", username="bob"))

    assert result is not None and not result.accepted
    assert notifier.messages[-1] == ("Machine W3 is already claimed!", ("U2",))
    claim = tracker.get_claim("m-17")
    assert claim is not None and claim.user_id == "U1"


@pytest.mark.asyncio
async def test_unknown_machine_is_refused_without_touching_tracker() -> None:
    tracker = EngagementTracker()
    notifier = _RecordingNotifier()
    handler = InteractionHandler(tracker, notifier, machines=_machines)

    result = await handler.handle_action(_action("snoop_machine_m-99"))

    assert result is None
    assert notifier.messages == [("<@U1> there is no machine m-99", ("U1",))]
    assert tracker.engaged_machine_ids() == []
    assert tracker._locks == {}


@pytest.mark.asyncio
async def test_without_machine_lookup_commands_apply_to_given_id() -> None:
    tracker = EngagementTracker()
    handler = InteractionHandler(tracker, _RecordingNotifier())

    result = await handler.handle_action(_action("snoop_machine_m-5"))

    assert result is not None and result.accepted
    assert [s.user_id for s in tracker.get_snoops("m-5")] == ["U1"]


@pytest.mark.asyncio
async def test_reply_failure_keeps_the_command_applied() -> None:
    tracker = EngagementTracker()
    handler = InteractionHandler(tracker, _RecordingNotifier(fail=True), machines=_machines)

    result = await handler.handle_action(_action("claim_machine_m-17"))

    assert result is not None and result.accepted
    assert tracker.get_claim("m-17") is not None


@pytest.mark.asyncio
async def test_unrelated_action_is_ignored() -> None:
    notifier = _RecordingNotifier()
    handler = InteractionHandler(EngagementTracker(), notifier, machines=_machines)

    assert await handler.handle_action(_action("vote_lunch_pizza")) is None
    assert await handler.handle_slash_command({"text": "help"}) is None
    assert notifier.messages == []
