"""
Read-only dashboard derivations.

Everything here is a pure function of a snapshot the caller already fetched:
no queries, no module-level caches. Orders and reservations are duck-typed,
so ORM rows and plain objects with the same attributes both work.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from ..errors import DuplicateCustomer
from ..utils.time import api_iso_z, to_utc, utcnow
from .lifecycle import CAPACITY_HOLDING

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
PENDING_ORDER_STATUSES = ("pending", "confirmed", "preparing")


def _amount(value) -> Decimal:
    return Decimal(str(value or 0))


def _created(record) -> datetime:
    return to_utc(record.created_at)


def normalise_email(email: str) -> str:
    return (email or "").strip().lower()


@dataclass
class PopularItem:
    key: object
    name: str
    order_count: int = 0
    quantity: int = 0
    revenue: Decimal = Decimal("0.00")

    def to_dict(self) -> dict:
        return {
            "id": self.key,
            "name": self.name,
            "orderCount": self.order_count,
            "quantity": self.quantity,
            "totalRevenue": float(self.revenue.quantize(CENTS)),
        }


@dataclass
class DashboardStats:
    total_revenue: Decimal
    monthly_revenue: Decimal
    total_orders: int
    pending_orders: int
    popular_items: list[PopularItem]

    def to_dict(self) -> dict:
        return {
            "totalRevenue": float(self.total_revenue),
            "monthlyRevenue": float(self.monthly_revenue),
            "totalOrders": self.total_orders,
            "pendingOrders": self.pending_orders,
            "popularItems": [item.to_dict() for item in self.popular_items],
        }


def popular_items(orders: Iterable, limit: int = 5) -> list[PopularItem]:
    """
    Ranks line items by how many orders they appear in. Cancelled orders are
    skipped. Ties keep first-seen order, so callers should pass orders oldest
    first.
    """
    ranked: dict[object, PopularItem] = {}
    for order in orders:
        if order.status == "cancelled":
            continue
        seen = set()
        for item in order.items:
            key = item.menu_item_id if item.menu_item_id is not None else item.name
            entry = ranked.setdefault(key, PopularItem(key=key, name=item.name))
            entry.quantity += item.quantity
            entry.revenue += _amount(item.price) * item.quantity
            if key not in seen:
                entry.order_count += 1
                seen.add(key)
    return sorted(ranked.values(), key=lambda e: e.order_count, reverse=True)[:limit]


def compute_dashboard_stats(orders: Iterable, window_days: int = 30, now: datetime | None = None,
                            popular_limit: int = 5) -> DashboardStats:
    orders = list(orders)
    cutoff = to_utc(now or utcnow()) - timedelta(days=window_days)

    total_revenue = sum((_amount(o.total) for o in orders), Decimal("0"))
    monthly_revenue = sum((_amount(o.total) for o in orders if _created(o) >= cutoff), Decimal("0"))

    return DashboardStats(
        total_revenue=total_revenue.quantize(CENTS),
        monthly_revenue=monthly_revenue.quantize(CENTS),
        total_orders=len(orders),
        pending_orders=sum(1 for o in orders if o.status in PENDING_ORDER_STATUSES),
        popular_items=popular_items(orders, popular_limit),
    )


def reservation_stats(reservations: Iterable, today: date, recent: int = 5) -> dict:
    reservations = list(reservations)
    newest = sorted(reservations, key=_created, reverse=True)[:recent]
    return {
        "totalReservations": len(reservations),
        "activeReservations": sum(1 for r in reservations if r.date >= today and r.status in CAPACITY_HOLDING),
        "recentReservations": [
            {
                "id": r.id,
                "reservationCode": r.reservation_code,
                "name": r.name,
                "date": r.date.isoformat(),
                "time": r.time,
                "guests": r.guests,
                "status": r.status,
            }
            for r in newest
        ],
    }


@dataclass
class Customer:
    email: str
    name: str
    phone: str
    total_orders: int
    total_spent: Decimal
    first_order: datetime
    last_order: datetime
    orders: list = field(default_factory=list)
    email_variants: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        payload = {
            "id": self.email,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "totalOrders": self.total_orders,
            "totalSpent": float(self.total_spent),
            "firstOrder": api_iso_z(self.first_order),
            "lastOrder": api_iso_z(self.last_order),
            "orders": [
                {
                    "id": o.id,
                    "orderNumber": o.order_number,
                    "total": float(_amount(o.total).quantize(CENTS)),
                    "status": o.status,
                    "type": o.fulfillment_type,
                    "createdAt": api_iso_z(o.created_at),
                }
                for o in self.orders
            ],
        }
        if len(self.email_variants) > 1:
            payload["emailVariants"] = self.email_variants
        return payload


def ensure_unique_customers(customers: Iterable[Customer]) -> None:
    seen = set()
    duplicates = []
    for customer in customers:
        key = normalise_email(customer.email)
        if key in seen:
            duplicates.append(key)
        seen.add(key)
    if duplicates:
        logger.error("Derived customers share emails: %s", duplicates)
        raise DuplicateCustomer("Customer aggregation produced duplicate emails.", details=duplicates)


def compute_customers(orders: Iterable) -> list[Customer]:
    """Groups orders into customers keyed by lowercased, trimmed email."""
    groups: dict[str, list] = {}
    variants: dict[str, set[str]] = {}
    for order in orders:
        key = normalise_email(order.customer_email)
        groups.setdefault(key, []).append(order)
        variants.setdefault(key, set()).add(order.customer_email)

    customers = []
    for email, group in groups.items():
        group.sort(key=_created, reverse=True)
        if len(variants[email]) > 1:
            logger.warning("Merged %d spellings of %s into one customer", len(variants[email]), email)
        customers.append(Customer(
            email=email,
            name=group[0].customer_name,
            phone=group[0].customer_phone,
            total_orders=len(group),
            total_spent=sum((_amount(o.total) for o in group), Decimal("0")).quantize(CENTS),
            first_order=_created(group[-1]),
            last_order=_created(group[0]),
            orders=group,
            email_variants=sorted(variants[email]),
        ))

    customers.sort(key=lambda c: (-c.total_spent, c.email))
    ensure_unique_customers(customers)
    return customers
