"""Machine models.

Two layers live here: the raw records exactly as the status feed sends
them (``RawMachineRecord`` and its nested parts) and the normalized,
immutable :class:`MachineSnapshot` the rest of the library works with.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pylaundry._constants import UNKNOWN_CYCLE
from pylaundry.ingestion.normalize import non_negative_or_zero, safe_bool, safe_int, safe_str
from pylaundry.models._base import LaundryBaseModel, LaundryEnum


class MachineStatus(LaundryEnum):
    """Normalized machine status."""

    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    FINISHED = "FINISHED"
    OUT_OF_ORDER = "OUT_OF_ORDER"
    UNKNOWN = "UNKNOWN"


# ------------------------------------------------------------------
# Raw feed records
# ------------------------------------------------------------------


class RawMachineType(LaundryBaseModel):
    """Capability flags of a machine."""

    is_washer: bool = False
    is_dryer: bool = False

    @field_validator("is_washer", "is_dryer", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> bool:
        return bool(safe_bool(value))


class RawSelectedCycle(LaundryBaseModel):
    name: str | None = None


class RawMachineStatus(LaundryBaseModel):
    """Decoded ``currentStatus`` payload of a machine record."""

    status_id: str = ""
    remaining_seconds: int = 0
    is_door_open: bool = False
    selected_cycle: RawSelectedCycle | None = None
    remaining_vend: int | None = None

    @field_validator("status_id", mode="before")
    @classmethod
    def _coerce_status_id(cls, value: Any) -> str:
        return safe_str(value) or ""

    @field_validator("remaining_seconds", mode="before")
    @classmethod
    def _coerce_remaining_seconds(cls, value: Any) -> int:
        return non_negative_or_zero(value) or 0

    @field_validator("is_door_open", mode="before")
    @classmethod
    def _coerce_door(cls, value: Any) -> bool:
        return bool(safe_bool(value))

    @field_validator("remaining_vend", mode="before")
    @classmethod
    def _coerce_vend(cls, value: Any) -> int | None:
        return safe_int(value)


class RawMachineRecord(LaundryBaseModel):
    """One entry of the status feed's machine list.

    ``currentStatus`` arrives as a JSON *string* holding another object;
    it is decoded here so a broken status fails validation of this record
    only.
    """

    id: str
    machine_name: str = ""
    machine_number: str = ""
    machine_type: RawMachineType = Field(default_factory=RawMachineType)
    current_status: RawMachineStatus

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None or not text.strip():
            raise ValueError("machine id must be non-empty")
        return text.strip()

    @field_validator("machine_name", "machine_number", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""

    @field_validator("current_status", mode="before")
    @classmethod
    def _decode_current_status(cls, value: Any) -> Any:
        if isinstance(value, (str, bytes)):
            decoded = json.loads(value)
            if not isinstance(decoded, dict):
                raise ValueError(f"currentStatus must decode to an object, got {type(decoded).__name__}")
            return decoded
        return value


# ------------------------------------------------------------------
# Normalized snapshot
# ------------------------------------------------------------------


class MachineSnapshot(BaseModel):
    """One machine's normalized state as of a single poll.

    Snapshots are frozen; every poll cycle produces a brand-new set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    """Stable machine identifier from the feed."""
    name: str = ""
    """Human-readable machine name."""
    number: str = ""
    """Slot number shown on the machine."""
    is_washer: bool = False
    is_dryer: bool = False
    status: MachineStatus = MachineStatus.UNKNOWN
    remaining_seconds: int = Field(default=0, ge=0)
    """Seconds left in the running cycle; ``0`` when not running."""
    is_door_open: bool = False
    selected_cycle: str = UNKNOWN_CYCLE
    remaining_vend: int | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
    """Original feed record."""

    @property
    def kind(self) -> str:
        """``"washer"`` or ``"dryer"`` for display purposes."""
        return "washer" if self.is_washer else "dryer"

    @property
    def display_name(self) -> str:
        return self.name or self.number or self.id

    @property
    def is_running(self) -> bool:
        return self.status == MachineStatus.IN_USE

    def describe(self) -> str:
        """Short one-line status description used in logs."""
        return f"{self.display_name} ({self.kind}): {self.status.value}, {self.remaining_seconds}s remaining"


def raw_record_summary(record: RawMachineRecord) -> dict[str, Any]:
    """Fields worth logging at DEBUG level for a decoded record."""
    status = record.current_status
    return {
        "statusId": status.status_id,
        "remainingSeconds": status.remaining_seconds,
        "isDoorOpen": status.is_door_open,
        "selectedCycle": status.selected_cycle.name if status.selected_cycle else None,
        "remainingVend": status.remaining_vend,
    }

