from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..utils.time import clock_label, parse_clock


@dataclass(frozen=True)
class TimeSlot:
    label: str
    total_tables: int
    seats_per_table: int

    @property
    def total_seats(self) -> int:
        return self.total_tables * self.seats_per_table


def generate_labels(opening: str, last_seating: str, minutes: int) -> list[str]:
    """Every slot label from opening to last seating inclusive, `minutes` apart."""
    if minutes <= 0:
        raise ValueError("Slot interval must be positive.")
    start = datetime.combine(date.min, parse_clock(opening))
    end = datetime.combine(date.min, parse_clock(last_seating))
    labels = []
    while start <= end:
        labels.append(clock_label(start.time()))
        start += timedelta(minutes=minutes)
    return labels


class TimeSlotCatalog:
    """
    Read-only set of bookable slots. The default slot set applies to every
    date; `overrides` replaces it for specific dates (an empty list closes
    the date).
    """

    def __init__(self, slots: list[TimeSlot], overrides: dict[date, list[TimeSlot]] | None = None):
        self._slots = tuple(slots)
        self._overrides = {day: tuple(day_slots) for day, day_slots in (overrides or {}).items()}

    @classmethod
    def from_config(cls, config) -> "TimeSlotCatalog":
        labels = generate_labels(config["OPENING_TIME"], config["LAST_SEATING"], config["SLOT_MINUTES"])
        slots = [TimeSlot(label, config["TABLES_PER_SLOT"], config["SEATS_PER_TABLE"]) for label in labels]
        closed = [s.strip() for s in (config.get("CLOSED_DATES") or "").split(",") if s.strip()]
        return cls(slots, overrides={date.fromisoformat(day): [] for day in closed})

    def slots_for(self, day: date) -> tuple[TimeSlot, ...]:
        return self._overrides.get(day, self._slots)

    def labels(self, day: date) -> list[str]:
        return [slot.label for slot in self.slots_for(day)]

    def slot(self, day: date, label: str) -> TimeSlot | None:
        for slot in self.slots_for(day):
            if slot.label == label:
                return slot
        return None
