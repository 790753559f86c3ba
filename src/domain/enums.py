"""Domain enumerations and state-transition rules."""

import enum


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"  # suspended
    BANNED = "banned"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"


class ActionType(str, enum.Enum):
    WARNING = "warning"
    SUSPENSION = "suspension"
    BAN = "ban"


# Action types that take an account offline
RESTRICTIVE_ACTIONS: tuple[ActionType, ...] = (ActionType.SUSPENSION, ActionType.BAN)


class ActionState(str, enum.Enum):
    """Lifecycle of a suspension or ban, derived from its timestamps."""

    SCHEDULED = "SCHEDULED"
    PAUSED = "PAUSED"
    APPLIED = "APPLIED"
    LIFTED = "LIFTED"


# State machine: maps current state -> set of valid next states
ACTION_TRANSITIONS: dict[ActionState, set[ActionState]] = {
    ActionState.SCHEDULED: {ActionState.PAUSED, ActionState.APPLIED},
    ActionState.PAUSED: {ActionState.APPLIED, ActionState.LIFTED},
    ActionState.APPLIED: {ActionState.LIFTED},
    ActionState.LIFTED: set(),
}


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class DisputeStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class DisputeParty(str, enum.Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"


class NotificationType(str, enum.Enum):
    DISPUTE_WARNING = "dispute_warning"
    SUSPENSION_SCHEDULED = "suspension_scheduled"
    SUSPENSION_PAUSED = "suspension_paused"
    SUSPENSION_STARTED = "suspension_started"
    SUSPENSION_RESUMED = "suspension_resumed"
    BAN_SCHEDULED = "ban_scheduled"
    BAN_APPLIED = "ban_applied"
    DISPUTE_RAISED = "dispute_raised"
    DISPUTE_RESOLVED = "dispute_resolved"
