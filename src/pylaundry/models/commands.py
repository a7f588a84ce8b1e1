"""Engagement command messages.

User interactions (buttons, slash commands, tests) are translated into
these messages and handed to
:meth:`pylaundry.state.tracker.EngagementTracker.handle`, which keeps the
tracker free of any chat platform's event shapes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    machine_id: str

    @field_validator("machine_id", "user_id", check_fields=False)
    @classmethod
    def _normalize_identifier(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("identifier must be non-empty")
        return text


class ClaimRequested(_Command):
    type: Literal["claim"] = "claim"
    user_id: str
    username: str = ""


class SnoopRequested(_Command):
    type: Literal["snoop"] = "snoop"
    user_id: str
    username: str = ""


class ReleaseRequested(_Command):
    type: Literal["release"] = "release"


class UnsnoopRequested(_Command):
    type: Literal["unsnoop"] = "unsnoop"
    user_id: str


EngagementCommand = ClaimRequested | SnoopRequested | ReleaseRequested | UnsnoopRequested


class CommandResult(BaseModel):
    """Outcome of a handled command.

    ``accepted`` is ``False`` for the expected conflict paths (already
    claimed, already snooping, nothing to release or remove).
    """

    model_config = ConfigDict(frozen=True)

    command: EngagementCommand = Field(discriminator="type")
    accepted: bool
