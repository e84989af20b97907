"""
Per-slot capacity for a calendar date.

Consumption is always recomputed from the reservations passed in; only
`pending` and `confirmed` bookings hold seats. Table usage rounds up, so a
party that needs part of a table consumes the whole table.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from ..errors import ValidationError
from ..utils.time import to_utc
from .catalog import TimeSlot, TimeSlotCatalog
from .lifecycle import CAPACITY_HOLDING


@dataclass(frozen=True)
class SlotAvailability:
    time: str
    is_available: bool
    available_tables: int
    remaining_capacity: int

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "isAvailable": self.is_available,
            "availableTables": self.available_tables,
            "remainingCapacity": self.remaining_capacity,
        }


@dataclass(frozen=True)
class Availability:
    slots: list[SlotAvailability]
    all_time_slots: list[str]

    def for_time(self, label: str) -> SlotAvailability | None:
        return next((s for s in self.slots if s.time == label), None)


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def slot_availability(slot: TimeSlot, consumed_seats: int, party_size: int) -> SlotAvailability:
    remaining = slot.total_seats - consumed_seats
    tables_used = _ceil_div(consumed_seats, slot.seats_per_table) if slot.seats_per_table else slot.total_tables
    available_tables = max(slot.total_tables - tables_used, 0)
    return SlotAvailability(
        time=slot.label,
        is_available=remaining >= party_size and available_tables > 0,
        available_tables=available_tables,
        remaining_capacity=remaining,
    )


def consumed_by_slot(day: date, reservations: Iterable) -> dict[str, int]:
    consumed: dict[str, int] = {}
    for r in reservations:
        if r.date != day or r.status not in CAPACITY_HOLDING:
            continue
        consumed[r.time] = consumed.get(r.time, 0) + r.guests
    return consumed


def compute_availability(catalog: TimeSlotCatalog, day: date, party_size: int, reservations: Iterable) -> Availability:
    if isinstance(day, datetime):
        day = to_utc(day).date()
    if not isinstance(day, date):
        raise ValidationError("A valid calendar date is required.")
    if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1:
        raise ValidationError("Party size must be a positive whole number.")

    consumed = consumed_by_slot(day, reservations)
    slots = catalog.slots_for(day)
    return Availability(
        slots=[slot_availability(slot, consumed.get(slot.label, 0), party_size) for slot in slots],
        all_time_slots=[slot.label for slot in slots],
    )
