"""State layer.

This package owns the per-cycle machine generations, the finish detection
that compares them, and the in-memory engagement tracker.
"""

from pylaundry.state.events import Generation, TransitionEvent
from pylaundry.state.tracker import EngagementTracker
from pylaundry.state.transitions import detect_transition, evaluate_generation, has_finished

__all__ = [
    "EngagementTracker",
    "Generation",
    "TransitionEvent",
    "detect_transition",
    "evaluate_generation",
    "has_finished",
]
