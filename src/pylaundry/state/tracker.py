"""In-memory engagement tracker.

Keeps, per machine, the single claim (if any) and the ordered set of
snoops, plus the notification markers on each record. Nothing here
performs I/O or waits on a timer.

Every public operation runs inside the critical section of the machine it
touches, so interaction events delivered from another thread (for example
a chat client's socket thread) never interleave with a dispatch pass on
the same machine.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Collection
from datetime import UTC, datetime

from pylaundry.models.commands import (
    ClaimRequested,
    CommandResult,
    EngagementCommand,
    ReleaseRequested,
    SnoopRequested,
    UnsnoopRequested,
)
from pylaundry.models.engagement import Claim, Engagement, NotificationKind, Snoop

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EngagementTracker:
    """Who cares about which machine.

    Conflicts (already claimed, already snooping, nothing to remove) are
    expected and reported through return values; no operation raises for
    them.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._claims: dict[str, Claim] = {}
        # machine id -> user id -> snoop; dict order is subscription order.
        self._snoops: dict[str, dict[str, Snoop]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock(self, machine_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(machine_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[machine_id] = lock
            return lock

    def _existing_lock(self, machine_id: str) -> threading.Lock | None:
        with self._registry_lock:
            return self._locks.get(machine_id)

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def claim(self, machine_id: str, user_id: str, username: str) -> bool:
        """Claim *machine_id* for *user_id*.

        Returns ``False`` and leaves the existing claim untouched when the
        machine is already claimed.
        """
        with self._lock(machine_id):
            if machine_id in self._claims:
                return False
            self._claims[machine_id] = Claim(
                machine_id=machine_id,
                user_id=user_id,
                username=username,
                claimed_at=self._clock(),
            )
        _logger.info("Machine %s claimed by %s (%s)", machine_id, username, user_id)
        return True

    def release_claim(self, machine_id: str) -> Claim | None:
        """Remove and return the claim on *machine_id*, if there is one."""
        lock = self._existing_lock(machine_id)
        if lock is None:
            return None
        with lock:
            claim = self._claims.pop(machine_id, None)
        if claim is not None:
            _logger.info("Claim removed from machine %s", machine_id)
        return claim

    def get_claim(self, machine_id: str) -> Claim | None:
        lock = self._existing_lock(machine_id)
        if lock is None:
            return None
        with lock:
            return self._claims.get(machine_id)

    # ------------------------------------------------------------------
    # Snoops
    # ------------------------------------------------------------------

    def snoop(self, machine_id: str, user_id: str, username: str) -> bool:
        """Subscribe *user_id* to completion of *machine_id*.

        Returns ``False`` without changing anything when the user already
        snoops on this machine.
        """
        with self._lock(machine_id):
            subscribers = self._snoops.get(machine_id)
            if subscribers is not None and user_id in subscribers:
                return False
            if subscribers is None:
                subscribers = {}
                self._snoops[machine_id] = subscribers
            subscribers[user_id] = Snoop(
                machine_id=machine_id,
                user_id=user_id,
                username=username,
                snooped_at=self._clock(),
            )
        _logger.info("User %s (%s) added snoop to machine %s", username, user_id, machine_id)
        return True

    def unsnoop(self, machine_id: str, user_id: str) -> bool:
        """Remove *user_id*'s snoop on *machine_id*; report whether one existed."""
        lock = self._existing_lock(machine_id)
        if lock is None:
            return False
        with lock:
            subscribers = self._snoops.get(machine_id)
            if subscribers is None or subscribers.pop(user_id, None) is None:
                return False
            if not subscribers:
                del self._snoops[machine_id]
        _logger.info("Snoop removed from machine %s for user %s", machine_id, user_id)
        return True

    def get_snoops(self, machine_id: str) -> tuple[Snoop, ...]:
        """Current snoops on *machine_id* in subscription order."""
        lock = self._existing_lock(machine_id)
        if lock is None:
            return ()
        with lock:
            subscribers = self._snoops.get(machine_id)
            return tuple(subscribers.values()) if subscribers else ()

    # ------------------------------------------------------------------
    # Notification markers
    # ------------------------------------------------------------------

    def mark_claim_notified(
        self,
        machine_id: str,
        kind: NotificationKind,
        *,
        user_ids: Collection[str] | None = None,
    ) -> bool:
        """Mark the claim on *machine_id* as told about *kind*.

        With *user_ids* given, the claim is only marked when its claimant
        is among them. Returns ``False`` when nothing was marked.
        """
        lock = self._existing_lock(machine_id)
        if lock is None:
            return False
        with lock:
            claim = self._claims.get(machine_id)
            if claim is None or (user_ids is not None and claim.user_id not in user_ids):
                return False
            self._claims[machine_id] = claim.with_notified(kind, self._clock())
        return True

    def mark_snoops_notified(
        self,
        machine_id: str,
        kind: NotificationKind,
        *,
        user_ids: Collection[str] | None = None,
    ) -> int:
        """Mark the snoops on *machine_id* as told about *kind*.

        With *user_ids* given, only those subscribers are marked. Returns
        the number of snoops marked.
        """
        lock = self._existing_lock(machine_id)
        if lock is None:
            return 0
        with lock:
            subscribers = self._snoops.get(machine_id)
            if not subscribers:
                return 0
            now = self._clock()
            marked = 0
            for user_id, snoop in subscribers.items():
                if user_ids is not None and user_id not in user_ids:
                    continue
                subscribers[user_id] = snoop.with_notified(kind, now)
                marked += 1
            return marked

    # ------------------------------------------------------------------
    # Whole-machine views
    # ------------------------------------------------------------------

    def get_engagement(self, machine_id: str) -> Engagement:
        """Claim and snoops of *machine_id*, read in one critical section."""
        lock = self._existing_lock(machine_id)
        if lock is None:
            return Engagement(machine_id=machine_id)
        with lock:
            subscribers = self._snoops.get(machine_id)
            return Engagement(
                machine_id=machine_id,
                claim=self._claims.get(machine_id),
                snoops=tuple(subscribers.values()) if subscribers else (),
            )

    def clear_machine(self, machine_id: str) -> Engagement:
        """Drop the claim and every snoop of *machine_id* in one step.

        Returns what was removed. When to call this is the dispatcher's
        decision, not the tracker's.
        """
        lock = self._existing_lock(machine_id)
        if lock is None:
            return Engagement(machine_id=machine_id)
        with lock:
            claim = self._claims.pop(machine_id, None)
            subscribers = self._snoops.pop(machine_id, None)
        removed = Engagement(
            machine_id=machine_id,
            claim=claim,
            snoops=tuple(subscribers.values()) if subscribers else (),
        )
        if not removed.is_empty:
            _logger.info("Cleared all user data for machine %s", machine_id)
        return removed

    def drop_notified(self, machine_id: str, kind: NotificationKind) -> Engagement:
        """Drop the claim and snoops of *machine_id* already told about *kind*.

        Records without a sent *kind* marker stay. Returns what was removed.
        """
        lock = self._existing_lock(machine_id)
        if lock is None:
            return Engagement(machine_id=machine_id)
        with lock:
            claim = self._claims.get(machine_id)
            if claim is not None and claim.is_notified(kind):
                del self._claims[machine_id]
            else:
                claim = None
            dropped: list[Snoop] = []
            subscribers = self._snoops.get(machine_id)
            if subscribers:
                for user_id, snoop in list(subscribers.items()):
                    if snoop.is_notified(kind):
                        dropped.append(subscribers.pop(user_id))
                if not subscribers:
                    del self._snoops[machine_id]
        removed = Engagement(machine_id=machine_id, claim=claim, snoops=tuple(dropped))
        if not removed.is_empty:
            _logger.info("Dropped %s-notified users from machine %s", kind.value, machine_id)
        return removed

    def engaged_machine_ids(self) -> list[str]:
        with self._registry_lock:
            machine_ids = list(self._locks)
        return [machine_id for machine_id in machine_ids if not self.get_engagement(machine_id).is_empty]

    def all_claims(self) -> list[Claim]:
        claims: list[Claim] = []
        for machine_id in self.engaged_machine_ids():
            claim = self.get_claim(machine_id)
            if claim is not None:
                claims.append(claim)
        return claims

    def all_snoops(self) -> list[Snoop]:
        snoops: list[Snoop] = []
        for machine_id in self.engaged_machine_ids():
            snoops.extend(self.get_snoops(machine_id))
        return snoops

    def clear(self) -> None:
        """Drop all engagement state (used on monitor shutdown)."""
        with self._registry_lock:
            machine_ids = list(self._locks)
        for machine_id in machine_ids:
            with self._lock(machine_id):
                self._claims.pop(machine_id, None)
                self._snoops.pop(machine_id, None)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle(self, command: EngagementCommand) -> CommandResult:
        """Apply an engagement command and report whether it was accepted."""
        if isinstance(command, ClaimRequested):
            accepted = self.claim(command.machine_id, command.user_id, command.username)
        elif isinstance(command, SnoopRequested):
            accepted = self.snoop(command.machine_id, command.user_id, command.username)
        elif isinstance(command, ReleaseRequested):
            accepted = self.release_claim(command.machine_id) is not None
        elif isinstance(command, UnsnoopRequested):
            accepted = self.unsnoop(command.machine_id, command.user_id)
        else:
            raise TypeError(f"Unsupported engagement command: {type(command).__name__}")
        return CommandResult(command=command, accepted=accepted)
