from flask import Blueprint, request, jsonify
from pydantic import ValidationError
from ..http import jerror, validation_details
from ..auth import require_role
from ..schemas import CreateOrderRequest, OrderStatusUpdate
from ..services import orders as order_store
from datetime import datetime, time
from ..utils.time import parse_iso, parse_day, api_iso_z

bp = Blueprint("orders", __name__)


def _end_of_range(value: str) -> datetime:
    """A bare YYYY-MM-DD end date covers that whole day."""
    if len(value.strip()) == 10:
        return datetime.combine(parse_day(value), time.max)
    return parse_iso(value)


@bp.post("")
def create_order():
    payload = request.get_json(silent=True)
    if not payload:
        return jerror(400, "INVALID_PAYLOAD", "Missing or invalid JSON payload.")

    try:
        data = CreateOrderRequest.model_validate(payload)
    except ValidationError as e:
        return jerror(422, "VALIDATION_ERROR", "Invalid input.", details=validation_details(e))

    order = order_store.create_order(data)
    return jsonify(
        message="Order placed successfully",
        order=order.to_dict(),
        estimatedReadyTime=api_iso_z(order.estimated_ready_at),
    ), 201


@bp.get("")
@require_role()
def list_orders():
    """
    Staff order list.
    Query: ?email=&status=&startDate=&endDate=&page=1&limit=20
    """
    try:
        start = parse_iso(request.args["startDate"]) if request.args.get("startDate") else None
        end = _end_of_range(request.args["endDate"]) if request.args.get("endDate") else None
    except ValueError as e:
        return jerror(422, "BAD_DATE", "Invalid date range, expected ISO 8601.", str(e))

    page = max(request.args.get("page", 1, type=int), 1)
    limit = min(max(request.args.get("limit", 20, type=int), 1), 100)

    total, rows = order_store.list_orders(
        email=request.args.get("email"),
        status=request.args.get("status"),
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    return jsonify(
        orders=[o.to_dict() for o in rows],
        pagination={"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
    )


@bp.get("/<int:order_id>")
def get_order(order_id: int):
    return jsonify(order=order_store.get_order(order_id).to_dict())


@bp.get("/by-number/<order_number>")
def get_by_number(order_number: str):
    return jsonify(order=order_store.get_by_number(order_number).to_dict())


@bp.patch("/<int:order_id>/status")
@require_role()
def update_status(order_id: int):
    payload = request.get_json(silent=True)
    if not payload:
        return jerror(400, "INVALID_PAYLOAD", "Missing or invalid JSON payload.")

    try:
        data = OrderStatusUpdate.model_validate(payload)
    except ValidationError as e:
        return jerror(422, "VALIDATION_ERROR", "Invalid status.", details=validation_details(e))

    order = order_store.update_order_status(order_id, data.status)
    return jsonify(message="Order status updated successfully", order=order.to_dict())
