
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import UniqueConstraint, func
from .extensions import db
from .utils.time import api_iso_z


def _utcnow_naive() -> datetime:
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def _money(value) -> float:
    return float(Decimal(value or 0).quantize(Decimal("0.01")))


class Reservation(db.Model):
    __tablename__ = "reservations"
    id = db.Column(db.Integer, primary_key=True)
    reservation_code = db.Column(db.String(24), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    time = db.Column(db.String(5), nullable=False)
    guests = db.Column(db.Integer, nullable=False)
    special_requests = db.Column(db.String(500))
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    status_changed_at = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow_naive, server_default=func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow_naive, onupdate=_utcnow_naive)

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reservationCode": self.reservation_code,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "date": self.date.isoformat(),
            "time": self.time,
            "guests": self.guests,
            "specialRequests": self.special_requests,
            "status": self.status,
            "createdAt": api_iso_z(self.created_at),
            "updatedAt": api_iso_z(self.updated_at),
        }


class SlotLedger(db.Model):
    """One row per booked (date, time) pair; serialises capacity checks for that slot."""
    __tablename__ = "slot_ledger"
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(5), nullable=False)
    bookings = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow_naive)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("date", "time", name="uq_slot_ledger_date_time"),
    )


class MenuItem(db.Model):
    __tablename__ = "menu_items"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(80), nullable=False)
    description = db.Column(db.String(500))
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_available = db.Column(db.Boolean, nullable=False, default=True)


class Order(db.Model):
    __tablename__ = "orders"
    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(16), nullable=False, unique=True, index=True)
    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(32), nullable=False)
    fulfillment_type = db.Column(db.String(16), nullable=False)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    delivery_street = db.Column(db.String(200))
    delivery_city = db.Column(db.String(100))
    delivery_state = db.Column(db.String(100))
    delivery_zip_code = db.Column(db.String(20))
    special_instructions = db.Column(db.String(500))

    payment_method = db.Column(db.String(32), nullable=False, default="card")
    payment_last_four = db.Column(db.String(4), nullable=False)

    estimated_ready_at = db.Column(db.DateTime)
    ready_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow_naive, server_default=func.now())
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow_naive, onupdate=_utcnow_naive)

    items = db.relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")

    __mapper_args__ = {"version_id_col": version}

    @property
    def delivery_address(self) -> dict | None:
        if self.fulfillment_type != "delivery":
            return None
        return {
            "street": self.delivery_street,
            "city": self.delivery_city,
            "state": self.delivery_state,
            "zipCode": self.delivery_zip_code,
        }

    def summary(self) -> dict:
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "total": _money(self.total),
            "status": self.status,
            "type": self.fulfillment_type,
            "createdAt": api_iso_z(self.created_at),
        }

    def to_dict(self) -> dict:
        return {
            **self.summary(),
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
            },
            "items": [item.to_dict() for item in self.items],
            "deliveryFee": _money(self.delivery_fee),
            "deliveryAddress": self.delivery_address,
            "specialInstructions": self.special_instructions,
            "payment": {"method": self.payment_method, "lastFour": self.payment_last_four},
            "estimatedReadyTime": api_iso_z(self.estimated_ready_at),
            "readyAt": api_iso_z(self.ready_at),
            "completedAt": api_iso_z(self.completed_at),
            "cancelledAt": api_iso_z(self.cancelled_at),
            "updatedAt": api_iso_z(self.updated_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey("menu_items.id", ondelete="SET NULL"), index=True)
    name = db.Column(db.String(120), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    special_instructions = db.Column(db.String(200))

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "menuItemId": self.menu_item_id,
            "name": self.name,
            "price": _money(self.price),
            "quantity": self.quantity,
            "specialInstructions": self.special_instructions,
        }
