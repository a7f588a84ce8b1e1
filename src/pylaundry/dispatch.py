"""Notification dispatch for transition events.

The dispatcher is the monitor's :class:`TransitionHandler`. For every
finished machine it tells the claimant and snoopers who have not been told
yet, records that through the tracker's markers, and ends engagement once
a machine is AVAILABLE again or a finished load made way for a new one.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pylaundry.exceptions import NotificationError
from pylaundry.models.engagement import NotificationKind
from pylaundry.notify import Notifier, finished_message, status_summary
from pylaundry.state.events import Generation, TransitionEvent
from pylaundry.state.policy import (
    pending_recipients,
    should_announce,
    should_clear_engagement,
    should_drop_notified,
)
from pylaundry.state.tracker import EngagementTracker

_logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, tracker: EngagementTracker, notifier: Notifier) -> None:
        self._tracker = tracker
        self._notifier = notifier

    @property
    def tracker(self) -> EngagementTracker:
        return self._tracker

    async def handle_transitions(self, events: Sequence[TransitionEvent], generation: Generation) -> None:
        for event in events:
            if event.finished:
                await self.notify_completion(event)
            if should_clear_engagement(event):
                self._tracker.clear_machine(event.machine_id)
            elif should_drop_notified(event):
                self._tracker.drop_notified(event.machine_id, NotificationKind.COMPLETION)

    async def notify_completion(self, event: TransitionEvent) -> bool:
        """Announce a finished machine and mark who was told.

        Returns ``True`` when a message went out. Delivery failures are
        logged and leave the markers unset so a later cycle retries.
        """
        machine_id = event.machine_id
        engagement = self._tracker.get_engagement(machine_id)
        recipients = pending_recipients(engagement, NotificationKind.COMPLETION)
        if not should_announce(event, recipients):
            return False

        _logger.info(
            "Machine %s has finished! Status: %s -> %s",
            event.machine.display_name,
            event.previous_status.value if event.previous_status is not None else None,
            event.machine.status.value,
        )
        try:
            await self._notifier.send(finished_message(event.machine, recipients), mentions=recipients)
        except NotificationError as exc:
            _logger.error("Could not send completion notification for %s: %s", machine_id, exc)
            return False

        # Only users named in the message are marked.
        self._tracker.mark_claim_notified(machine_id, NotificationKind.COMPLETION, user_ids=recipients)
        self._tracker.mark_snoops_notified(machine_id, NotificationKind.COMPLETION, user_ids=recipients)
        return True

    async def send_status_update(self, generation: Generation) -> None:
        """Post the current status of every machine."""
        if not generation:
            return
        try:
            await self._notifier.send(status_summary(generation.machines(), self._tracker))
        except NotificationError as exc:
            _logger.error("Could not send status update: %s", exc)
