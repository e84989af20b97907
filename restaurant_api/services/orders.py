import logging
import re
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentUpdate, NotFound, ValidationError, store_errors
from ..extensions import db
from ..models import MenuItem, Order, OrderItem
from ..schemas import CreateOrderRequest
from ..utils.time import db_utc_naive, utcnow
from .lifecycle import ORDER_LIFECYCLE

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
_NUMBER_ATTEMPTS = 5

# status -> timestamp column stamped on entry
_STATUS_STAMPS = {
    "ready": "ready_at",
    "completed": "completed_at",
    "cancelled": "cancelled_at",
}


def _next_order_number() -> str:
    latest = db.session.execute(
        select(Order.order_number).order_by(Order.id.desc()).limit(1)
    ).scalar_one_or_none()
    next_number = 1
    if latest:
        match = re.search(r"\d+", latest)
        if match:
            next_number = int(match.group()) + 1
    return f"ORD{next_number:04d}"


def _price_lines(data: CreateOrderRequest) -> tuple[list[OrderItem], Decimal]:
    max_quantity = current_app.config["MAX_ITEM_QUANTITY"]
    lines = []
    items_total = Decimal("0.00")
    for line in data.items:
        menu_item = db.session.get(MenuItem, line.menu_item_id)
        if menu_item is None:
            raise ValidationError(f"Menu item not found: {line.menu_item_id}")
        if not menu_item.is_available:
            raise ValidationError(f'Menu item "{menu_item.name}" is currently unavailable')
        if line.quantity > max_quantity:
            raise ValidationError(f'Maximum quantity per item is {max_quantity} for "{menu_item.name}"')

        price = Decimal(menu_item.price)
        lines.append(OrderItem(
            menu_item_id=menu_item.id,
            name=menu_item.name,
            price=price,
            quantity=line.quantity,
            special_instructions=line.special_instructions,
        ))
        items_total += price * line.quantity
    return lines, items_total.quantize(CENTS)


def create_order(data: CreateOrderRequest, now: datetime | None = None) -> Order:
    config = current_app.config
    now = db_utc_naive(now or utcnow())

    with store_errors():
        lines, items_total = _price_lines(data)

        minimum = Decimal(config["MINIMUM_ORDER"])
        if items_total < minimum:
            raise ValidationError(f"Minimum order amount is ${minimum:.2f}")

        delivery = data.type == "delivery"
        fee = Decimal(config["DELIVERY_FEE"]).quantize(CENTS) if delivery else Decimal("0.00")
        ready_minutes = config["DELIVERY_READY_MINUTES"] if delivery else config["PICKUP_READY_MINUTES"]
        address = data.delivery_address

        order = Order(
            customer_name=data.customer.name,
            customer_email=data.customer.email.strip().lower(),
            customer_phone=data.customer.phone,
            fulfillment_type=data.type,
            items=lines,
            delivery_fee=fee,
            total=items_total + fee,
            status=ORDER_LIFECYCLE.initial,
            delivery_street=address.street if address else None,
            delivery_city=address.city if address else None,
            delivery_state=address.state if address else None,
            delivery_zip_code=address.zip_code if address else None,
            special_instructions=data.special_instructions,
            payment_method=data.payment.method,
            payment_last_four=data.payment.last_four,
            estimated_ready_at=now + timedelta(minutes=ready_minutes),
            created_at=now,
            updated_at=now,
        )

        for _ in range(_NUMBER_ATTEMPTS):
            order.order_number = _next_order_number()
            db.session.add(order)
            try:
                db.session.commit()
                break
            except IntegrityError:
                db.session.rollback()
        else:
            raise ConcurrentUpdate("Could not allocate an order number. Please try again.")

    logger.info("Order %s created (%s, total %s)", order.order_number, order.fulfillment_type, order.total)
    return order


def get_order(order_id: int) -> Order:
    with store_errors():
        order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found.")
    return order


def get_by_number(order_number: str) -> Order:
    with store_errors():
        order = db.session.execute(
            select(Order).where(func.upper(Order.order_number) == order_number.strip().upper())
        ).scalar_one_or_none()
    if order is None:
        raise NotFound("Order not found.")
    return order


def list_orders(email: str | None = None, status: str | None = None,
                start: datetime | None = None, end: datetime | None = None,
                page: int = 1, limit: int = 20) -> tuple[int, list[Order]]:
    q = select(Order)
    if email:
        q = q.where(Order.customer_email == email.strip().lower())
    if status:
        q = q.where(Order.status == status)
    if start:
        q = q.where(Order.created_at >= db_utc_naive(start))
    if end:
        q = q.where(Order.created_at <= db_utc_naive(end))

    with store_errors():
        total = db.session.execute(select(func.count()).select_from(q.subquery())).scalar_one()
        rows = db.session.execute(
            q.options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).scalars().all()
    return int(total), rows


def all_orders() -> list[Order]:
    """Every order, oldest first, with line items loaded."""
    with store_errors():
        return db.session.execute(
            select(Order).options(selectinload(Order.items)).order_by(Order.created_at.asc(), Order.id.asc())
        ).scalars().all()


def update_order_status(order_id: int, new_status: str, now: datetime | None = None) -> Order:
    order = get_order(order_id)
    previous = order.status
    if ORDER_LIFECYCLE.check(previous, new_status):
        order.status = new_status
        stamp = _STATUS_STAMPS.get(new_status)
        if stamp:
            setattr(order, stamp, db_utc_naive(now or utcnow()))

    with store_errors():
        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            raise ConcurrentUpdate("Order was changed by someone else. Reload and retry.")

    if previous != order.status:
        logger.info("Order %s: %s -> %s", order.order_number, previous, order.status)
    return order
