"""User interactions: chat actions in, engagement commands out.

Two inbound shapes are understood:

* ``block_actions`` payloads from message buttons whose ``action_id`` is
  ``claim_machine_<id>``, ``snoop_machine_<id>``, ``release_machine_<id>``
  or ``unsnoop_machine_<id>``.
* slash commands such as ``/laundry claim W3``, where the machine may be
  named by id or by the number shown on it.

Each becomes an :data:`EngagementCommand` for the tracker, and the
outcome is posted back to the channel through the notifier.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pylaundry.exceptions import NotificationError
from pylaundry.models.commands import (
    ClaimRequested,
    CommandResult,
    EngagementCommand,
    ReleaseRequested,
    SnoopRequested,
    UnsnoopRequested,
)
from pylaundry.models.machine import MachineSnapshot
from pylaundry.notify import Notifier, mention
from pylaundry.state.tracker import EngagementTracker

_logger = logging.getLogger(__name__)

CLAIM_ACTION_PREFIX = "claim_machine_"
SNOOP_ACTION_PREFIX = "snoop_machine_"
RELEASE_ACTION_PREFIX = "release_machine_"
UNSNOOP_ACTION_PREFIX = "unsnoop_machine_"

_VERBS = ("claim", "snoop", "release", "unsnoop")

MachineLookup = Callable[[], Mapping[str, MachineSnapshot]]


def _build_command(verb: str, machine_id: str, user_id: str, username: str) -> EngagementCommand | None:
    try:
        if verb == "claim":
            return ClaimRequested(machine_id=machine_id, user_id=user_id, username=username)
        if verb == "snoop":
            return SnoopRequested(machine_id=machine_id, user_id=user_id, username=username)
        if verb == "release":
            return ReleaseRequested(machine_id=machine_id)
        if verb == "unsnoop":
            return UnsnoopRequested(machine_id=machine_id, user_id=user_id)
    except ValidationError as exc:
        _logger.warning("Ignoring %s request with invalid identifiers: %s", verb, exc.error_count())
        return None
    return None


def command_from_action(payload: Mapping[str, Any]) -> EngagementCommand | None:
    """Translate a button click into a command.

    Returns ``None`` for payloads that are not one of the machine actions.
    """
    user = payload.get("user")
    actions = payload.get("actions")
    if not isinstance(user, Mapping) or not isinstance(actions, list) or not actions:
        return None
    action = actions[0]
    action_id = action.get("action_id") if isinstance(action, Mapping) else None
    if not isinstance(action_id, str):
        return None

    user_id = str(user.get("id") or "")
    username = str(user.get("username") or user.get("name") or "Unknown")
    for verb, prefix in (
        ("claim", CLAIM_ACTION_PREFIX),
        ("snoop", SNOOP_ACTION_PREFIX),
        ("release", RELEASE_ACTION_PREFIX),
        ("unsnoop", UNSNOOP_ACTION_PREFIX),
    ):
        if action_id.startswith(prefix):
            return _build_command(verb, action_id[len(prefix) :], user_id, username)
    return None


def command_from_slash(form: Mapping[str, str]) -> EngagementCommand | None:
    """Translate ``/laundry <verb> <machine>`` into a command."""
    words = (form.get("text") or "").split()
    if len(words) != 2 or words[0].lower() not in _VERBS:
        return None
    return _build_command(
        words[0].lower(),
        words[1],
        form.get("user_id") or "",
        form.get("user_name") or "Unknown",
    )


def reply_text(result: CommandResult, label: str | None = None) -> str:
    """Channel reply confirming or refusing a command."""
    command = result.command
    machine = label or command.machine_id
    if isinstance(command, ClaimRequested):
        if result.accepted:
            return f"Machine {machine} claimed by {mention(command.user_id)}"
        return f"Machine {machine} is already claimed!"
    if isinstance(command, SnoopRequested):
        if result.accepted:
            return f"{mention(command.user_id)} will be notified when machine {machine} is done"
        return f"{mention(command.user_id)} is already snooping machine {machine}!"
    if isinstance(command, ReleaseRequested):
        if result.accepted:
            return f"Claim on machine {machine} released"
        return f"Machine {machine} is not claimed"
    if result.accepted:
        return f"{mention(command.user_id)} stopped snooping machine {machine}"
    return f"{mention(command.user_id)} is not snooping machine {machine}"


def _requester(command: EngagementCommand) -> str | None:
    return getattr(command, "user_id", None)


class InteractionHandler:
    """Apply user interactions to the tracker and answer in the channel.

    *machines* returns the machines currently known (usually the
    monitor's generation). When given, commands naming an unknown machine
    are refused, and machines can be named by their number as well as
    their id.
    """

    def __init__(
        self,
        tracker: EngagementTracker,
        notifier: Notifier,
        *,
        machines: MachineLookup | None = None,
    ) -> None:
        self._tracker = tracker
        self._notifier = notifier
        self._machines = machines

    def resolve(self, reference: str) -> MachineSnapshot | None:
        """Find a current machine by id, or by number ignoring case."""
        if self._machines is None:
            return None
        machines = self._machines()
        machine = machines.get(reference)
        if machine is not None:
            return machine
        wanted = reference.casefold()
        for candidate in machines.values():
            if candidate.number and candidate.number.casefold() == wanted:
                return candidate
        return None

    async def submit(self, command: EngagementCommand) -> CommandResult | None:
        """Run *command* against the tracker and post the reply.

        Returns ``None`` when the command names a machine that is not
        currently known.
        """
        label = command.machine_id
        if self._machines is not None:
            machine = self.resolve(command.machine_id)
            if machine is None:
                _logger.info("Refusing %s for unknown machine %s", command.type, command.machine_id)
                user_id = _requester(command)
                prefix = f"{mention(user_id)} " if user_id else ""
                await self._reply(f"{prefix}there is no machine {command.machine_id}", user_id)
                return None
            command = command.model_copy(update={"machine_id": machine.id})
            label = machine.number or machine.display_name

        result = self._tracker.handle(command)
        await self._reply(reply_text(result, label), _requester(command))
        return result

    async def handle_action(self, payload: Mapping[str, Any]) -> CommandResult | None:
        command = command_from_action(payload)
        if command is None:
            _logger.debug("Ignoring unrelated interaction payload of type %r", payload.get("type"))
            return None
        return await self.submit(command)

    async def handle_slash_command(self, form: Mapping[str, str]) -> CommandResult | None:
        command = command_from_slash(form)
        if command is None:
            _logger.debug("Ignoring slash command text %r", form.get("text"))
            return None
        return await self.submit(command)

    async def _reply(self, text: str, user_id: str | None) -> None:
        try:
            await self._notifier.send(text, mentions=(user_id,) if user_id else ())
        except NotificationError as exc:
            _logger.error("Could not post interaction reply: %s", exc)
