"""Poll-cycle values: generations and transition events.

A :class:`Generation` is built once per poll cycle and never patched; the
monitor swaps the whole value when the cycle is done.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from datetime import UTC, datetime
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from pylaundry.models.machine import MachineSnapshot, MachineStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Generation(Mapping[str, MachineSnapshot]):
    """Read-only mapping of machine id to that machine's latest snapshot."""

    __slots__ = ("_machines", "created_at")

    def __init__(self, machines: Mapping[str, MachineSnapshot] | None = None, *, created_at: datetime | None = None):
        self._machines: Mapping[str, MachineSnapshot] = MappingProxyType(dict(machines or {}))
        self.created_at = created_at or _utcnow()

    @classmethod
    def empty(cls) -> Generation:
        return cls()

    @classmethod
    def from_snapshots(cls, snapshots: Iterable[MachineSnapshot], *, created_at: datetime | None = None) -> Generation:
        """Build a generation; for a duplicated id the last snapshot wins."""
        machines: dict[str, MachineSnapshot] = {}
        for snapshot in snapshots:
            machines[snapshot.id] = snapshot
        return cls(machines, created_at=created_at)

    def __getitem__(self, machine_id: str) -> MachineSnapshot:
        return self._machines[machine_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._machines)

    def __len__(self) -> int:
        return len(self._machines)

    def __repr__(self) -> str:
        return f"Generation({len(self._machines)} machines, created_at={self.created_at.isoformat()})"

    def machines(self) -> list[MachineSnapshot]:
        return list(self._machines.values())

    def washers(self) -> list[MachineSnapshot]:
        return [m for m in self._machines.values() if m.is_washer]

    def dryers(self) -> list[MachineSnapshot]:
        return [m for m in self._machines.values() if m.is_dryer]


class TransitionEvent(BaseModel):
    """The engine's verdict on one machine for one poll cycle."""

    model_config = ConfigDict(frozen=True)

    machine: MachineSnapshot
    previous: MachineSnapshot | None = None
    finished: bool = False
    observed_at: datetime = Field(default_factory=_utcnow)

    @property
    def machine_id(self) -> str:
        return self.machine.id

    @property
    def previous_status(self) -> MachineStatus | None:
        return self.previous.status if self.previous is not None else None

    @property
    def status_changed(self) -> bool:
        """Whether the status differs from the previous cycle (first sightings count)."""
        return self.previous is None or self.previous.status != self.machine.status

    @property
    def returned_to_available(self) -> bool:
        """AVAILABLE now after a seen, non-AVAILABLE status last cycle."""
        return (
            self.previous is not None
            and self.previous.status != MachineStatus.AVAILABLE
            and self.machine.status == MachineStatus.AVAILABLE
        )
