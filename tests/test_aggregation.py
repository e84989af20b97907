from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from restaurant_api.errors import DuplicateCustomer
from restaurant_api.services.aggregation import (
    Customer,
    compute_customers,
    compute_dashboard_stats,
    ensure_unique_customers,
    popular_items,
    reservation_stats,
)

NOW = datetime(2024, 3, 25, 12, 0, tzinfo=timezone.utc)
_ids = iter(range(1, 1000))


def _item(name, price, quantity=1, menu_item_id=None):
    return SimpleNamespace(name=name, price=Decimal(price), quantity=quantity, menu_item_id=menu_item_id)


def _order(total, status="completed", email="john@example.com", name="John Doe", days_ago=1, items=()):
    oid = next(_ids)
    return SimpleNamespace(
        id=oid,
        order_number=f"ORD{oid:04d}",
        customer_name=name,
        customer_email=email,
        customer_phone="1234567890",
        total=Decimal(total),
        status=status,
        fulfillment_type="pickup",
        created_at=(NOW - timedelta(days=days_ago)).replace(tzinfo=None),
        items=list(items),
    )


def test_revenue_for_recent_orders():
    orders = [_order("55.75", status="pending"), _order("45.25", status="preparing")]

    stats = compute_dashboard_stats(orders, window_days=30, now=NOW)

    assert stats.total_revenue == Decimal("101.00")
    assert stats.monthly_revenue == Decimal("101.00")
    assert stats.total_orders == 2
    assert stats.pending_orders == 2
    assert stats.to_dict()["totalRevenue"] == 101.0


def test_monthly_revenue_only_counts_window():
    orders = [_order("10.00", days_ago=5), _order("20.00", days_ago=45)]

    stats = compute_dashboard_stats(orders, window_days=30, now=NOW)

    assert stats.total_revenue == Decimal("30.00")
    assert stats.monthly_revenue == Decimal("10.00")


def test_pending_orders_counts_pending_like_statuses():
    statuses = ["pending", "confirmed", "preparing", "ready", "completed", "cancelled"]
    stats = compute_dashboard_stats([_order("1.00", status=s) for s in statuses], now=NOW)

    assert stats.pending_orders == 3


def test_empty_snapshot():
    stats = compute_dashboard_stats([], now=NOW)

    assert stats.total_revenue == Decimal("0.00")
    assert stats.popular_items == []


def test_popular_items_rank_by_order_frequency():
    orders = [
        _order("30.00", items=[_item("Pizza", "14.00", 1, 1), _item("Soda", "2.00", 8, 2)]),
        _order("28.00", items=[_item("Pizza", "14.00", 2, 1)]),
        _order("14.00", items=[_item("Pizza", "14.00", 1, 1), _item("Pizza", "14.00", 1, 1)]),
        _order("99.00", status="cancelled", items=[_item("Soda", "2.00", 1, 2)] * 5),
    ]

    ranked = popular_items(orders)

    assert [(p.name, p.order_count) for p in ranked] == [("Pizza", 3), ("Soda", 1)]
    assert ranked[0].quantity == 5
    assert ranked[0].revenue == Decimal("70.00")


def test_popular_item_ties_keep_first_seen_order():
    orders = [
        _order("5.00", items=[_item("Tiramisu", "5.00")]),
        _order("5.00", items=[_item("Panna Cotta", "5.00")]),
        _order("5.00", items=[_item("Bruschetta", "5.00")]),
    ]

    assert [p.name for p in popular_items(orders, limit=2)] == ["Tiramisu", "Panna Cotta"]


def test_customers_merge_on_normalised_email():
    orders = [
        _order("20.00", email="Jane@X.com", name="Jane", days_ago=10),
        _order("30.00", email="jane@x.com ", name="Jane Smith", days_ago=2),
    ]

    customers = compute_customers(orders)

    assert len(customers) == 1
    jane = customers[0]
    assert jane.email == "jane@x.com"
    assert jane.total_orders == 2
    assert jane.total_spent == Decimal("50.00")
    assert jane.name == "Jane Smith"
    assert jane.first_order == NOW - timedelta(days=10)
    assert jane.last_order == NOW - timedelta(days=2)
    assert [o.total for o in jane.orders] == [Decimal("30.00"), Decimal("20.00")]
    assert jane.to_dict()["emailVariants"] == ["Jane@X.com", "jane@x.com "]


def test_customers_sorted_by_spend():
    orders = [
        _order("10.00", email="a@example.com"),
        _order("50.00", email="b@example.com"),
        _order("15.00", email="a@example.com"),
    ]

    customers = compute_customers(orders)

    assert [c.email for c in customers] == ["b@example.com", "a@example.com"]
    assert "emailVariants" not in customers[0].to_dict()


def test_customers_of_empty_input():
    assert compute_customers([]) == []


def test_duplicate_customers_are_reported():
    when = NOW
    twins = [
        Customer("jane@x.com", "Jane", "1", 1, Decimal("1.00"), when, when),
        Customer("JANE@x.com", "Jane", "1", 1, Decimal("1.00"), when, when),
    ]

    with pytest.raises(DuplicateCustomer) as exc:
        ensure_unique_customers(twins)
    assert exc.value.details == ["jane@x.com"]


def test_reservation_stats():
    def res(i, day, status, hours_ago):
        return SimpleNamespace(
            id=i, reservation_code=f"RES2024{i:03d}", name=f"Guest {i}", date=day, time="19:00",
            guests=2, status=status, created_at=(NOW - timedelta(hours=hours_ago)).replace(tzinfo=None),
        )

    today = NOW.date()
    reservations = [
        res(1, today, "pending", 5),
        res(2, today + timedelta(days=1), "confirmed", 4),
        res(3, today, "cancelled", 3),
        res(4, today - timedelta(days=1), "confirmed", 2),
        res(5, today, "completed", 1),
        res(6, today, "confirmed", 6),
    ]

    stats = reservation_stats(reservations, today)

    assert stats["totalReservations"] == 6
    assert stats["activeReservations"] == 3
    assert [r["id"] for r in stats["recentReservations"]] == [5, 4, 3, 2, 1]
