"""Status state machines for reservations and orders."""
import logging

from ..errors import InvalidTransition, ValidationError

logger = logging.getLogger(__name__)


class StatusMachine:
    def __init__(self, name: str, initial: str, transitions: dict[str, set[str]]):
        self.name = name
        self.initial = initial
        self.transitions = transitions

    @property
    def statuses(self) -> tuple[str, ...]:
        return tuple(self.transitions)

    def is_terminal(self, status: str) -> bool:
        return not self.transitions[status]

    def can_transition(self, current: str, new: str) -> bool:
        return new in self.transitions.get(current, set())

    def check(self, current: str, new: str) -> bool:
        """
        Returns True when `new` is a real move, False for a same-status no-op.
        Raises InvalidTransition for moves outside the graph.
        """
        if new not in self.transitions:
            raise ValidationError(f"Unknown {self.name} status '{new}'.")
        if new == current:
            return False
        if not self.can_transition(current, new):
            logger.warning("Rejected %s transition %s -> %s", self.name, current, new)
            raise InvalidTransition(current, new)
        return True


RESERVATION_LIFECYCLE = StatusMachine(
    "reservation",
    initial="pending",
    transitions={
        "pending": {"confirmed", "cancelled"},
        "confirmed": {"completed", "cancelled"},
        "completed": set(),
        "cancelled": set(),
    },
)

ORDER_LIFECYCLE = StatusMachine(
    "order",
    initial="pending",
    transitions={
        "pending": {"confirmed", "cancelled"},
        "confirmed": {"preparing", "cancelled"},
        "preparing": {"ready", "cancelled"},
        "ready": {"completed", "cancelled"},
        "completed": set(),
        "cancelled": set(),
    },
)

# Reservations in these states hold seats in their slot.
CAPACITY_HOLDING = ("pending", "confirmed")


def transition(reservation, new_status: str, now):
    """Moves a reservation to `new_status` in place. The record is untouched on failure."""
    if RESERVATION_LIFECYCLE.check(reservation.status, new_status):
        reservation.status = new_status
        reservation.status_changed_at = now
    return reservation
