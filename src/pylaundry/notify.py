"""Notification delivery and message text.

Messages are plain text; mentions use Slack's ``<@USER>`` syntax.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from typing import Protocol

from pylaundry._constants import SLACK_POST_MESSAGE_URL
from pylaundry._transport import Transport
from pylaundry.exceptions import LaundryTransportError, NotificationError
from pylaundry.models.machine import MachineSnapshot, MachineStatus
from pylaundry.state.tracker import EngagementTracker

_logger = logging.getLogger(__name__)

_STATUS_LABELS: dict[MachineStatus, str] = {
    MachineStatus.AVAILABLE: "Available",
    MachineStatus.IN_USE: "In use",
    MachineStatus.FINISHED: "Finished",
    MachineStatus.OUT_OF_ORDER: "Out of order",
    MachineStatus.UNKNOWN: "Unknown",
}


class Notifier(Protocol):
    async def send(self, text: str, *, mentions: Sequence[str] = ()) -> None: ...


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_time_remaining(seconds: int | None) -> str:
    """Render remaining seconds as rounded-up minutes and hours.

    ``0`` → ``"0 minutes"``, ``61`` → ``"2 minutes"``, ``3600`` →
    ``"1 hour"``, ``7500`` → ``"2 hours 5 minutes"``.
    """
    if not seconds or seconds <= 0:
        return "0 minutes"
    minutes = math.ceil(seconds / 60)
    if minutes < 60:
        return _plural(minutes, "minute")
    hours, remaining_minutes = divmod(minutes, 60)
    if remaining_minutes == 0:
        return _plural(hours, "hour")
    return f"{_plural(hours, 'hour')} {_plural(remaining_minutes, 'minute')}"


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def finished_message(machine: MachineSnapshot, mentions: Sequence[str] = ()) -> str:
    text = f"{machine.display_name} ({machine.kind}) is done! Cycle: {machine.selected_cycle}."
    if mentions:
        text = f"{' '.join(mention(user_id) for user_id in mentions)} {text}"
    return text


def status_line(machine: MachineSnapshot, tracker: EngagementTracker | None = None) -> str:
    label = _STATUS_LABELS[machine.status]
    if machine.status == MachineStatus.IN_USE:
        label = f"{label}, {format_time_remaining(machine.remaining_seconds)} left"
    line = f"{machine.number or machine.display_name}: {label}"
    if tracker is not None:
        claim = tracker.get_claim(machine.id)
        if claim is not None:
            line = f"{line} (claimed by {mention(claim.user_id)})"
    return line


def status_summary(machines: Iterable[MachineSnapshot], tracker: EngagementTracker | None = None) -> str:
    """Washers and dryers with their status, one line per machine."""
    machines = list(machines)
    sections: list[str] = []
    for title, group in (
        ("Dryers", [m for m in machines if m.is_dryer]),
        ("Washers", [m for m in machines if m.is_washer]),
    ):
        if group:
            lines = [f"*{title}:*"] + [f"• {status_line(m, tracker)}" for m in group]
            sections.append("\n".join(lines))
    return "\n\n".join(sections)


class LogNotifier:
    """Notifier that only logs; used for dry runs and when Slack is not configured."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, text: str, *, mentions: Sequence[str] = ()) -> None:
        self.sent.append(text)
        _logger.info("Notification (not sent): %s", text)


class SlackNotifier:
    """Post plain-text messages to one Slack channel via ``chat.postMessage``."""

    def __init__(self, transport: Transport, *, bot_token: str, channel_id: str) -> None:
        self._transport = transport
        self._channel_id = channel_id
        self._headers = {"Authorization": f"Bearer {bot_token}"}

    async def send(self, text: str, *, mentions: Sequence[str] = ()) -> None:
        """Post *text* to the channel.

        Raises
        ------
        NotificationError
            If the request fails or Slack answers ``ok: false``.
        """
        payload = {"channel": self._channel_id, "text": text}
        try:
            response = await self._transport.post_json(SLACK_POST_MESSAGE_URL, payload, self._headers)
        except LaundryTransportError as exc:
            raise NotificationError(f"Slack request failed: {exc}", reason="transport") from exc

        if not isinstance(response, dict) or not response.get("ok"):
            reason = str(response.get("error", "unknown")) if isinstance(response, dict) else "invalid response"
            raise NotificationError(f"Slack rejected message: {reason}", reason=reason)
        _logger.debug("Posted message to %s (%d mention(s))", self._channel_id, len(mentions))
