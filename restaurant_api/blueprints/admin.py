from flask import Blueprint, jsonify, current_app
from sqlalchemy import select
from ..auth import require_role
from ..errors import store_errors
from ..extensions import db
from ..models import Reservation
from ..services.aggregation import compute_customers, compute_dashboard_stats, reservation_stats
from ..services.orders import all_orders
from ..utils.time import utcnow

bp = Blueprint("admin", __name__)


@bp.get("/dashboard")
@require_role("admin", "manager")
def dashboard():
    now = utcnow()
    orders = all_orders()
    with store_errors():
        reservations = db.session.execute(select(Reservation)).scalars().all()

    stats = compute_dashboard_stats(
        orders,
        window_days=current_app.config["DASHBOARD_WINDOW_DAYS"],
        now=now,
        popular_limit=current_app.config["POPULAR_ITEMS_LIMIT"],
    )
    return jsonify({**stats.to_dict(), **reservation_stats(reservations, now.date())})


@bp.get("/customers")
@require_role("admin", "manager")
def customers():
    result = compute_customers(all_orders())
    return jsonify(customers=[c.to_dict() for c in result], count=len(result))
