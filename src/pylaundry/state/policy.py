"""Dispatch policy.

Pure decisions the dispatcher applies to transition events. The tracker
itself never decides when engagement ends.
"""

from __future__ import annotations

from pylaundry.models.engagement import Engagement, NotificationKind
from pylaundry.models.machine import MachineStatus
from pylaundry.state.events import TransitionEvent


def should_clear_engagement(event: TransitionEvent) -> bool:
    """Engagement ends once a machine is AVAILABLE again after any other status."""
    return event.returned_to_available


def should_drop_notified(event: TransitionEvent) -> bool:
    """A FINISHED machine went straight into a new IN_USE cycle.

    The next user unloaded it and started their own load, so whoever was
    already told about the finished load is done with this machine.
    Records not yet told (for example a claim placed for the new load
    before this poll) stay.
    """
    return event.previous_status == MachineStatus.FINISHED and event.machine.status == MachineStatus.IN_USE


def pending_recipients(engagement: Engagement, kind: NotificationKind) -> list[str]:
    """Users on *engagement* not yet told about *kind*."""
    return engagement.recipients(kind)


def should_announce(event: TransitionEvent, recipients: list[str]) -> bool:
    """Decide whether a finished event is worth a channel message.

    A machine that keeps reporting FINISHED produces a finished event on
    every cycle. Only the first of those is announced, unless someone is
    still waiting to be told.
    """
    if not event.finished:
        return False
    return bool(recipients) or event.status_changed
