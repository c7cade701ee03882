"""Contact lifecycle states and allowed transitions."""

from enum import Enum


class ContactStatus(str, Enum):
    NEW = "new"
    READY = "ready"
    CONTACTED = "contacted"
    REPLIED = "replied"
    FAILED = "failed"
    MEETING_SCHEDULED = "meeting_scheduled"


_ANY_BUT_MEETING = {
    ContactStatus.NEW,
    ContactStatus.READY,
    ContactStatus.CONTACTED,
    ContactStatus.REPLIED,
    ContactStatus.FAILED,
}

ALLOWED_TRANSITIONS: dict[ContactStatus, set[ContactStatus]] = {
    ContactStatus.NEW: {ContactStatus.READY},
    ContactStatus.READY: {ContactStatus.CONTACTED, ContactStatus.FAILED},
    ContactStatus.CONTACTED: {ContactStatus.REPLIED},
    ContactStatus.REPLIED: {ContactStatus.MEETING_SCHEDULED},
    ContactStatus.FAILED: set(),
    ContactStatus.MEETING_SCHEDULED: set(),
}

# Unsubscribe replies land in 'replied' from anywhere except a booked meeting
UNSUBSCRIBE_FROM = _ANY_BUT_MEETING

# Manual booking skips the reply step
MANUAL_BOOKING_FROM = _ANY_BUT_MEETING


def can_transition(current: str, target: str) -> bool:
    """True if the regular lifecycle allows current -> target."""
    return ContactStatus(target) in ALLOWED_TRANSITIONS[ContactStatus(current)]
