from flask import Blueprint, request, jsonify, current_app
from datetime import datetime, timezone
from ..http import jerror, validation_details
from ..auth import require_role
from ..schemas import CreateReservationRequest, ReservationStatusUpdate
from ..services import reservations as store
from ..utils.time import parse_day
from pydantic import ValidationError

bp = Blueprint("reservations", __name__)

_rate_state: dict[str, tuple[int, int]] = {}
_RATE_WINDOW = 60


def _allow(ip: str) -> bool:
    now = int(datetime.now(tz=timezone.utc).timestamp())
    window = now // _RATE_WINDOW
    for stale in [k for k, (_, w) in _rate_state.items() if w != window]:
        del _rate_state[stale]
    count, win = _rate_state.get(ip, (0, window))
    if win != window:
        count, win = 0, window
    count += 1
    _rate_state[ip] = (count, win)
    return count <= current_app.config["RESERVATION_RATE_LIMIT"]


def _client_ip() -> str:
    fwd = request.headers.get("X-Forwarded-For")
    return (fwd.split(",")[0].strip() if fwd else request.remote_addr or "0.0.0.0")


@bp.post("")
def create_reservation():
    ip = _client_ip()
    if not _allow(ip):
        return jerror(429, "RATE_LIMITED", "Too many requests. Try again shortly.")

    payload = request.get_json(silent=True)
    if not payload:
        return jerror(400, "INVALID_PAYLOAD", "Missing or invalid JSON payload.")

    try:
        data = CreateReservationRequest.model_validate(payload)
    except ValidationError as e:
        return jerror(422, "VALIDATION_ERROR", "Invalid input.", details=validation_details(e))

    res = store.create_reservation(data)

    return jsonify(
        message="Reservation submitted successfully",
        reservationCode=res.reservation_code,
        status=res.status,
        reservation=res.to_dict(),
    ), 201


@bp.get("")
@require_role()
def list_reservations():
    """
    Staff list, optionally for a single day, with pagination.
    Query: ?date=YYYY-MM-DD&page=1&page_size=20
    """
    day = None
    date_str = request.args.get("date")
    if date_str:
        try:
            day = parse_day(date_str)
        except ValueError as e:
            return jerror(422, "BAD_DATE", "Invalid date format. Use YYYY-MM-DD.", str(e))

    page = max(request.args.get("page", 1, type=int), 1)
    page_size = min(max(request.args.get("page_size", 20, type=int), 1), 100)

    total, rows = store.list_reservations(day, page, page_size)

    return jsonify(
        page=page,
        pageSize=page_size,
        total=total,
        reservations=[r.to_dict() for r in rows],
    )


@bp.get("/<int:reservation_id>")
@require_role()
def get_reservation(reservation_id: int):
    return jsonify(reservation=store.get_reservation(reservation_id).to_dict())


@bp.get("/code/<code>")
def get_by_code(code: str):
    return jsonify(reservation=store.get_by_code(code).to_dict())


@bp.patch("/<int:reservation_id>")
@require_role()
def update_status(reservation_id: int):
    payload = request.get_json(silent=True)
    if not payload:
        return jerror(400, "INVALID_PAYLOAD", "Missing or invalid JSON payload.")

    try:
        data = ReservationStatusUpdate.model_validate(payload)
    except ValidationError as e:
        return jerror(422, "VALIDATION_ERROR", "Invalid status.", details=validation_details(e))

    res = store.update_status(reservation_id, data.status)
    return jsonify(message="Reservation status updated successfully", reservation=res.to_dict())
