import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value):
        """Return the member for a raw status string, or None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ActorRole(str, enum.Enum):
    RENTER = "renter"
    OWNER = "owner"
    SYSTEM = "system"  # scheduled completion job

    def __str__(self):
        return self.value


# Statuses that reserve the car for the booking's date range.
# "active" is treated exactly like "confirmed" here.
SLOT_HOLDING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.CONFIRMED,
    BookingStatus.ACTIVE,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REJECTED,
})

# (from, to) -> actor roles allowed to perform it
TRANSITIONS = {
    (BookingStatus.PENDING, BookingStatus.APPROVED): frozenset({ActorRole.OWNER}),
    (BookingStatus.PENDING, BookingStatus.REJECTED): frozenset({ActorRole.OWNER}),
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({ActorRole.RENTER}),
    (BookingStatus.APPROVED, BookingStatus.CONFIRMED): frozenset({ActorRole.OWNER}),
    (BookingStatus.APPROVED, BookingStatus.CANCELLED): frozenset({ActorRole.RENTER}),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): frozenset({ActorRole.OWNER, ActorRole.SYSTEM}),
    (BookingStatus.ACTIVE, BookingStatus.COMPLETED): frozenset({ActorRole.OWNER, ActorRole.SYSTEM}),
}


def allowed_roles(current: BookingStatus, target: BookingStatus) -> frozenset:
    return TRANSITIONS.get((current, target), frozenset())


def holds_slot(status) -> bool:
    return BookingStatus.parse(status) in SLOT_HOLDING_STATUSES
