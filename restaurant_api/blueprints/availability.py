from flask import Blueprint, request, jsonify
from ..http import jerror
from ..services.reservations import check_availability
from ..utils.time import parse_day

bp = Blueprint("availability", __name__)


@bp.get("")
def availability():
    date_str = request.args.get("date")
    if not date_str:
        return jerror(400, "MISSING_DATE", "Missing 'date' query parameter (YYYY-MM-DD).")
    try:
        day = parse_day(date_str)
    except ValueError as e:
        return jerror(422, "BAD_DATE", "Invalid date format. Use YYYY-MM-DD.", str(e))

    try:
        guests = int(request.args.get("guests", "2"))
    except ValueError:
        guests = 0
    if guests < 1:
        return jerror(422, "BAD_GUESTS", "Number of guests must be a positive whole number.")

    result = check_availability(day, guests)

    return jsonify(
        date=day.isoformat(),
        guests=guests,
        availability=[slot.to_dict() for slot in result.slots],
        allTimeSlots=result.all_time_slots,
    )
