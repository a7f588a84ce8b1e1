"""Data models for machines, engagement records and commands."""

from pylaundry.models._base import LaundryBaseModel, LaundryEnum
from pylaundry.models.commands import (
    ClaimRequested,
    CommandResult,
    EngagementCommand,
    ReleaseRequested,
    SnoopRequested,
    UnsnoopRequested,
)
from pylaundry.models.engagement import (
    Claim,
    Engagement,
    EngagementRecord,
    NotificationKind,
    NotificationMarker,
    Snoop,
)
from pylaundry.models.machine import (
    MachineSnapshot,
    MachineStatus,
    RawMachineRecord,
    RawMachineStatus,
    RawMachineType,
    RawSelectedCycle,
)

__all__ = [
    "Claim",
    "ClaimRequested",
    "CommandResult",
    "Engagement",
    "EngagementCommand",
    "EngagementRecord",
    "LaundryBaseModel",
    "LaundryEnum",
    "MachineSnapshot",
    "MachineStatus",
    "NotificationKind",
    "NotificationMarker",
    "RawMachineRecord",
    "RawMachineStatus",
    "RawMachineType",
    "RawSelectedCycle",
    "ReleaseRequested",
    "Snoop",
    "SnoopRequested",
    "UnsnoopRequested",
]
