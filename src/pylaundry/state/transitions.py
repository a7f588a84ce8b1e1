"""Finish detection.

Both functions are pure: they read snapshots and return new values, so
machines can be evaluated independently and in any order.
"""

from __future__ import annotations

from collections.abc import Iterable

from pylaundry.models.machine import MachineSnapshot, MachineStatus
from pylaundry.state.events import Generation, TransitionEvent


def has_finished(previous: MachineSnapshot | None, current: MachineSnapshot) -> bool:
    """Return whether *current* represents a finished cycle.

    A machine has finished when:

    1. it went from IN_USE to AVAILABLE,
    2. it went from IN_USE to FINISHED, or
    3. it reports FINISHED now, whatever it was before (including never
       seen before).

    UNKNOWN and OUT_OF_ORDER never finish a cycle by themselves.
    """
    if current.status == MachineStatus.FINISHED:
        return True
    if previous is None:
        return False
    return previous.status == MachineStatus.IN_USE and current.status == MachineStatus.AVAILABLE


def detect_transition(previous: MachineSnapshot | None, current: MachineSnapshot) -> TransitionEvent:
    """Classify one machine for this poll cycle."""
    return TransitionEvent(machine=current, previous=previous, finished=has_finished(previous, current))


def evaluate_generation(
    previous: Generation,
    snapshots: Iterable[MachineSnapshot],
) -> tuple[Generation, list[TransitionEvent]]:
    """Build the next generation and this cycle's events.

    Every machine in the new set is compared against *previous*, which is
    never modified. Machines missing from *snapshots* get no event and are
    not carried over.
    """
    generation = Generation.from_snapshots(snapshots)
    events = [detect_transition(previous.get(machine_id), snapshot) for machine_id, snapshot in generation.items()]
    return generation, events
