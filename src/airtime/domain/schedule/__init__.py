"""Schedule domain - deciding what plays now.

This domain handles:
- Recurring weekly slots and one-time broadcasts (CRUD + validation)
- Precedence resolution (broadcast > recurring slot > queue > idle)
- Interruption and restore of the playlist queue
- Playlist cursor positions
- Conflict detection between overlapping events
- The scheduler service and day previews
"""

# Models
from .models import (
    Idle,
    OneTimeBroadcast,
    OverrideKind,
    PlayBroadcast,
    PlayRecurring,
    RecurringSlot,
    ResumePlaylist,
    ScheduledEvent,
    SchedulingDirective,
    describe_directive,
    directive_key,
)
from .exceptions import (
    DanglingReferenceError,
    EmptyPlaylistError,
    InvalidTimeWindow,
    SchedulingError,
    SnapshotFetchTimeout,
    StoreUnavailableError,
)

# Event CRUD
from .events import (
    add_broadcast,
    add_recurring_slot,
    delete_broadcast,
    delete_recurring_slot,
    get_broadcast,
    get_broadcasts,
    get_recurring_slot,
    get_recurring_slots,
    make_broadcast,
    make_recurring_slot,
    mark_broadcast_consumed,
    purge_consumed_broadcasts,
    set_slot_active,
    update_broadcast,
    update_recurring_slot,
)

# Engine
from .conflicts import Conflict, ConflictReport, Severity, check_conflict
from .controller import DirectiveChanged, InterruptionController
from .cursor import PlaylistCursor
from .preview import PreviewEntry, preview_day
from .resolver import QueueState, Resolution, resolve
from .state import ControllerState, PlaybackState, SavedPosition, StateKind

# Service
from .scheduler import Scheduler, SchedulerStats
from .snapshot import ScheduleSnapshot, SnapshotProvider
from .store import EntityStore, SqlEntityStore

__all__ = [
    # Models
    "RecurringSlot",
    "OneTimeBroadcast",
    "ScheduledEvent",
    "OverrideKind",
    "PlayBroadcast",
    "PlayRecurring",
    "ResumePlaylist",
    "Idle",
    "SchedulingDirective",
    "directive_key",
    "describe_directive",
    # Exceptions
    "SchedulingError",
    "DanglingReferenceError",
    "EmptyPlaylistError",
    "SnapshotFetchTimeout",
    "StoreUnavailableError",
    "InvalidTimeWindow",
    # Event CRUD
    "make_recurring_slot",
    "add_recurring_slot",
    "get_recurring_slot",
    "get_recurring_slots",
    "update_recurring_slot",
    "set_slot_active",
    "delete_recurring_slot",
    "make_broadcast",
    "add_broadcast",
    "get_broadcast",
    "get_broadcasts",
    "update_broadcast",
    "delete_broadcast",
    "mark_broadcast_consumed",
    "purge_consumed_broadcasts",
    # Engine
    "resolve",
    "Resolution",
    "QueueState",
    "InterruptionController",
    "DirectiveChanged",
    "PlaylistCursor",
    "ControllerState",
    "PlaybackState",
    "SavedPosition",
    "StateKind",
    "check_conflict",
    "Conflict",
    "ConflictReport",
    "Severity",
    "preview_day",
    "PreviewEntry",
    # Service
    "Scheduler",
    "SchedulerStats",
    "ScheduleSnapshot",
    "SnapshotProvider",
    "EntityStore",
    "SqlEntityStore",
]
