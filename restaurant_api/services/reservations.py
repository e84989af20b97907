import logging
import secrets
import string
from datetime import date, datetime

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import CapacityExceeded, ConcurrentUpdate, NotFound, SlotConflict, ValidationError, store_errors
from ..extensions import db
from ..models import Reservation, SlotLedger
from ..schemas import CreateReservationRequest
from ..utils.time import db_utc_naive, utcnow
from .availability import Availability, compute_availability, slot_availability
from .catalog import TimeSlotCatalog
from .lifecycle import CAPACITY_HOLDING, RESERVATION_LIFECYCLE, transition

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_ATTEMPTS = 5


def get_catalog() -> TimeSlotCatalog:
    return TimeSlotCatalog.from_config(current_app.config)


def reservations_for_day(day: date) -> list[Reservation]:
    with store_errors():
        return db.session.execute(
            select(Reservation)
            .where(Reservation.date == day)
            .order_by(Reservation.time.asc(), Reservation.created_at.asc())
        ).scalars().all()


def check_availability(day: date, party_size: int, catalog: TimeSlotCatalog | None = None) -> Availability:
    catalog = catalog or get_catalog()
    with store_errors():
        holding = db.session.execute(
            select(Reservation).where(Reservation.date == day, Reservation.status.in_(CAPACITY_HOLDING))
        ).scalars().all()
    return compute_availability(catalog, day, party_size, holding)


def _new_code(now: datetime) -> str:
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
    return f"RES{now.year}{suffix}"


def _unique_code(now: datetime) -> str:
    for _ in range(_CODE_ATTEMPTS):
        code = _new_code(now)
        taken = db.session.execute(
            select(Reservation.id).where(Reservation.reservation_code == code)
        ).first()
        if taken is None:
            return code
    raise SlotConflict("Could not allocate a reservation code. Please try again.")


def _select_ledger(day: date, label: str):
    return select(SlotLedger).where(SlotLedger.date == day, SlotLedger.time == label).with_for_update()


def _lock_slot(day: date, label: str, now: datetime) -> SlotLedger:
    """Row-locks the ledger entry for a slot, creating it on first booking."""
    ledger = db.session.execute(_select_ledger(day, label)).scalar_one_or_none()
    if ledger is not None:
        return ledger
    db.session.add(SlotLedger(date=day, time=label, bookings=0, updated_at=now))
    try:
        db.session.flush()
    except IntegrityError:
        # another request created it first
        db.session.rollback()
    return db.session.execute(_select_ledger(day, label)).scalar_one()


def _seats_held(day: date, label: str) -> int:
    held = db.session.execute(
        select(func.coalesce(func.sum(Reservation.guests), 0)).where(
            Reservation.date == day,
            Reservation.time == label,
            Reservation.status.in_(CAPACITY_HOLDING),
        )
    ).scalar_one()
    return int(held)


def create_reservation(data: CreateReservationRequest, catalog: TimeSlotCatalog | None = None,
                       max_party_size: int | None = None, now: datetime | None = None) -> Reservation:
    """
    Books a slot. The capacity check and the insert happen in one transaction
    holding the slot's ledger row; the ledger's version column makes a
    concurrent writer that slipped past the lock fail with SlotConflict.
    """
    catalog = catalog or get_catalog()
    max_party_size = max_party_size or current_app.config["MAX_PARTY_SIZE"]
    now = db_utc_naive(now or utcnow())

    if not 1 <= data.guests <= max_party_size:
        raise ValidationError(f"Number of guests must be between 1 and {max_party_size}.")
    slot = catalog.slot(data.date, data.time)
    if slot is None:
        raise ValidationError(f"{data.time} on {data.date.isoformat()} is not a bookable time slot.")

    with store_errors():
        ledger = _lock_slot(data.date, data.time, now)
        state = slot_availability(slot, _seats_held(data.date, data.time), data.guests)
        if not state.is_available:
            db.session.rollback()
            logger.warning("Slot %s %s cannot fit %d guests (remaining %d)",
                           data.date, data.time, data.guests, state.remaining_capacity)
            raise CapacityExceeded(
                "Time slot fully booked for this party size.",
                details={"remainingCapacity": state.remaining_capacity, "availableTables": state.available_tables},
            )

        reservation = Reservation(
            reservation_code=_unique_code(now),
            name=data.name,
            email=data.email,
            phone=data.phone,
            date=data.date,
            time=data.time,
            guests=data.guests,
            special_requests=data.special_requests,
            status=RESERVATION_LIFECYCLE.initial,
            created_at=now,
            updated_at=now,
        )
        db.session.add(reservation)
        ledger.bookings += 1
        ledger.updated_at = now

        try:
            db.session.commit()
        except (IntegrityError, StaleDataError):
            db.session.rollback()
            logger.warning("Lost booking race for %s %s", data.date, data.time)
            raise SlotConflict("Just booked out. Pick another time.")

    logger.info("Reservation %s created for %s %s (%d guests)",
                reservation.reservation_code, reservation.date, reservation.time, reservation.guests)
    return reservation


def get_reservation(reservation_id: int) -> Reservation:
    with store_errors():
        reservation = db.session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFound("Reservation not found.")
    return reservation


def get_by_code(code: str) -> Reservation:
    with store_errors():
        reservation = db.session.execute(
            select(Reservation).where(func.upper(Reservation.reservation_code) == code.strip().upper())
        ).scalar_one_or_none()
    if reservation is None:
        raise NotFound("Reservation not found.")
    return reservation


def list_reservations(day: date | None, page: int = 1, page_size: int = 20) -> tuple[int, list[Reservation]]:
    q = select(Reservation)
    if day is not None:
        q = q.where(Reservation.date == day)
    with store_errors():
        total = db.session.execute(select(func.count()).select_from(q.subquery())).scalar_one()
        rows = db.session.execute(
            q.order_by(Reservation.date.asc(), Reservation.time.asc(), Reservation.created_at.asc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        ).scalars().all()
    return int(total), rows


def update_status(reservation_id: int, new_status: str, now: datetime | None = None) -> Reservation:
    reservation = get_reservation(reservation_id)
    previous = reservation.status
    transition(reservation, new_status, db_utc_naive(now or utcnow()))

    with store_errors():
        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            raise ConcurrentUpdate("Reservation was changed by someone else. Reload and retry.")

    if previous != reservation.status:
        logger.info("Reservation %s: %s -> %s", reservation.reservation_code, previous, reservation.status)
    return reservation
