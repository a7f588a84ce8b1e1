"""pylaundry - Async laundry machine monitor with claim and snoop notifications."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylaundry")
except PackageNotFoundError:
    __version__ = "0+local"
from pylaundry.config import LaundryConfig
from pylaundry.dispatch import NotificationDispatcher
from pylaundry.exceptions import (
    LaundryConfigError,
    LaundryError,
    LaundryFeedError,
    LaundryTransportError,
    MalformedMachineError,
    NotificationError,
)
from pylaundry.ingestion.feed import LaundryFeed
from pylaundry.interactions import InteractionHandler
from pylaundry.models import (
    Claim,
    ClaimRequested,
    CommandResult,
    Engagement,
    MachineSnapshot,
    MachineStatus,
    NotificationKind,
    NotificationMarker,
    ReleaseRequested,
    Snoop,
    SnoopRequested,
    UnsnoopRequested,
)
from pylaundry.monitor import MachineMonitor
from pylaundry.notify import LogNotifier, SlackNotifier
from pylaundry.server import InteractionServer
from pylaundry.state import EngagementTracker, Generation, TransitionEvent, detect_transition, evaluate_generation

__all__ = [
    "__version__",
    "Claim",
    "ClaimRequested",
    "CommandResult",
    "Engagement",
    "EngagementTracker",
    "Generation",
    "InteractionHandler",
    "InteractionServer",
    "LaundryConfig",
    "LaundryConfigError",
    "LaundryError",
    "LaundryFeed",
    "LaundryFeedError",
    "LaundryTransportError",
    "LogNotifier",
    "MachineMonitor",
    "MachineSnapshot",
    "MachineStatus",
    "MalformedMachineError",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationKind",
    "NotificationMarker",
    "ReleaseRequested",
    "SlackNotifier",
    "Snoop",
    "SnoopRequested",
    "TransitionEvent",
    "UnsnoopRequested",
    "detect_transition",
    "evaluate_generation",
]
