"""Claim and snoop records.

Records are frozen. The engagement tracker is the only component that
produces updated copies of them (see
:meth:`pylaundry.state.tracker.EngagementTracker.mark_claim_notified`).
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field


class NotificationKind(enum.StrEnum):
    EARLY_WARNING = "early_warning"
    COMPLETION = "completion"


class NotificationMarker(BaseModel):
    """Per-kind notification status: not sent, or sent at ``sent_at``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sent_at: datetime | None = None

    @property
    def is_sent(self) -> bool:
        return self.sent_at is not None

    @classmethod
    def sent(cls, at: datetime) -> NotificationMarker:
        if at.tzinfo is None:
            at = at.replace(tzinfo=UTC)
        return cls(sent_at=at)


_NOT_SENT = NotificationMarker()


class EngagementRecord(BaseModel):
    """Fields shared by claims and snoops."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    machine_id: str
    user_id: str
    username: str = ""
    early_warning: NotificationMarker = Field(default=_NOT_SENT)
    completion: NotificationMarker = Field(default=_NOT_SENT)

    def marker(self, kind: NotificationKind) -> NotificationMarker:
        """Return the marker for *kind*."""
        if kind == NotificationKind.EARLY_WARNING:
            return self.early_warning
        return self.completion

    def is_notified(self, kind: NotificationKind) -> bool:
        return self.marker(kind).is_sent

    def with_notified(self, kind: NotificationKind, at: datetime) -> Self:
        """Return a copy with the *kind* marker set to sent at *at*."""
        return self.model_copy(update={kind.value: NotificationMarker.sent(at)})


class Claim(EngagementRecord):
    """A single user's declared ownership of a machine's current cycle."""

    claimed_at: datetime


class Snoop(EngagementRecord):
    """A passive completion subscription, independent of ownership."""

    snooped_at: datetime


class Engagement(BaseModel):
    """Everything the tracker knows about one machine at one instant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    machine_id: str
    claim: Claim | None = None
    snoops: tuple[Snoop, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.claim is None and not self.snoops

    def recipients(self, kind: NotificationKind | None = None) -> list[str]:
        """User ids to tell, claimant first, then snoopers in subscription order.

        With *kind* given, users whose record already carries a sent marker
        for that kind are left out. A user who both claimed and snooped is
        listed once.
        """
        users: list[str] = []
        records: list[EngagementRecord] = []
        if self.claim is not None:
            records.append(self.claim)
        records.extend(self.snoops)
        for record in records:
            if kind is not None and record.is_notified(kind):
                continue
            if record.user_id not in users:
                users.append(record.user_id)
        return users
