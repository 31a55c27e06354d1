from datetime import datetime, timedelta, timezone

import pytest

from app.constants.order_status import OrderStatus
from app.services import order_ledger
from tests.conftest import auth_headers


def _order(session, user_id, lines, status=OrderStatus.COMPLETED, created_at=None):
    snapshot = [{"asset_id": a.id, "price": price, "title": a.title} for a, price in lines]
    order = order_ledger.create_order(
        session, user_id, snapshot, total=sum(price for _, price in lines), status=status
    )
    if created_at is not None:
        order.created_at = created_at
        session.add(order)
    session.commit()
    session.refresh(order)
    return order


def _at(day, hour=12, month=3):
    return datetime(2026, month, day, hour, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("path", ["/admin/analytics", "/admin/sales-report", "/admin/users"])
def test_admin_reports_forbidden_for_users(client, user, path):
    assert client.get(path, headers=auth_headers(user)).status_code == 403


def test_analytics_overview(client, session, admin, make_user, make_asset):
    buyer = make_user(name="buyer")
    icons = make_asset("Icons", price=10, category="Graphics", downloads=4)
    kit = make_asset("Kit", price=5.5, downloads=3)
    make_asset("Snippets", downloads=0)

    old = _order(session, buyer.id, [(kit, 5.5)], created_at=datetime.now(timezone.utc) - timedelta(days=70))
    recent = _order(session, buyer.id, [(icons, 10)])
    _order(session, buyer.id, [(kit, 99)], status=OrderStatus.PENDING)

    resp = client.get("/admin/analytics", headers=auth_headers(admin))

    assert resp.status_code == 200
    body = resp.json()
    # admin, buyer and the asset author
    assert body["total_users"] == 3
    assert body["total_assets"] == 3
    assert body["total_revenue"] == 15.5
    assert body["monthly_revenue"] == 10
    assert body["total_downloads"] == 7
    assert body["popular_categories"] == [
        {"category": "Code", "count": 2},
        {"category": "Graphics", "count": 1},
    ]
    assert [s["id"] for s in body["recent_sales"]] == [recent.id, old.id]
    assert body["recent_sales"][0]["user"] == {"name": "buyer", "email": buyer.email}
    assert body["recent_sales"][0]["assets"] == [{"asset_id": icons.id, "title": "Icons", "price": 10}]

    summary = body["sales_summary"]
    assert summary["total_orders"] == 2
    assert summary["average_order_value"] == 7.75
    assert summary["conversion_rate"] == pytest.approx(200 / 3)


def test_analytics_on_empty_store(client, admin):
    body = client.get("/admin/analytics", headers=auth_headers(admin)).json()

    assert body["total_revenue"] == 0
    assert body["total_downloads"] == 0
    assert body["recent_sales"] == []
    assert body["sales_summary"] == {"total_orders": 0, "average_order_value": 0, "conversion_rate": 0}


@pytest.fixture(name="march_sales")
def march_sales_fixture(session, make_user, make_asset):
    buyer = make_user()
    a = make_asset("Alpha", price=10)
    b = make_asset("Beta", price=20)
    c = make_asset("Gamma", price=1)

    _order(session, buyer.id, [(a, 10)], created_at=_at(1, hour=10))
    _order(session, buyer.id, [(a, 5)], created_at=_at(1, hour=18))
    _order(session, buyer.id, [(b, 20)], created_at=_at(5))
    _order(session, buyer.id, [(c, 1)], created_at=_at(31, hour=23))
    # outside the range or not paid
    _order(session, buyer.id, [(b, 50)], created_at=_at(10, month=4))
    _order(session, buyer.id, [(a, 99)], status=OrderStatus.PENDING, created_at=_at(2))
    return a, b, c


def test_sales_report_by_day(client, admin, march_sales):
    a, b, c = march_sales

    resp = client.get(
        "/admin/sales-report",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31", "period": "day"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [(d["year"], d["month"], d["day"]) for d in body["sales_data"]] == [
        (2026, 3, 1), (2026, 3, 5), (2026, 3, 31),
    ]
    first = body["sales_data"][0]
    assert (first["total_revenue"], first["order_count"], first["avg_order_value"]) == (15, 2, 7.5)

    assert body["top_selling_assets"][0] == {
        "asset_id": a.id, "title": "Alpha", "total_sold": 2, "total_revenue": 15,
    }
    assert [t["asset_id"] for t in body["top_selling_assets"]] == [a.id, b.id, c.id]
    assert body["summary"] == {"total_revenue": 36, "total_orders": 4, "average_order_value": 9}


def test_sales_report_by_month(client, admin, march_sales):
    resp = client.get(
        "/admin/sales-report",
        params={"start_date": "2026-03-01", "end_date": "2026-04-30"},
        headers=auth_headers(admin),
    )

    body = resp.json()
    assert [(d["year"], d["month"], d["day"]) for d in body["sales_data"]] == [
        (2026, 3, None), (2026, 4, None),
    ]
    assert body["sales_data"][0]["total_revenue"] == 36
    assert body["summary"]["total_orders"] == 5


def test_sales_report_rejects_bad_ranges(client, admin):
    headers = auth_headers(admin)

    half = client.get("/admin/sales-report", params={"start_date": "2026-03-01"}, headers=headers)
    assert half.status_code == 400

    backwards = client.get(
        "/admin/sales-report",
        params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
        headers=headers,
    )
    assert backwards.status_code == 400
    assert backwards.json()["detail"] == "start_date must not be after end_date"


def test_sales_report_defaults_to_current_month(client, session, admin, make_user, make_asset):
    buyer = make_user()
    asset = make_asset("Now", price=4)
    _order(session, buyer.id, [(asset, 4)])

    body = client.get("/admin/sales-report", headers=auth_headers(admin)).json()

    assert body["summary"]["total_revenue"] == 4
    assert body["period"] == "month"


def test_user_list_is_paginated_without_passwords(client, admin, make_user):
    first, second = make_user(), make_user()

    resp = client.get("/admin/users", params={"limit": 2}, headers=auth_headers(admin))

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_items"] == 3
    assert body["total_pages"] == 2
    assert [u["id"] for u in body["results"]] == [second.id, first.id]
    assert all("password" not in u for u in body["results"])
    assert body["results"][0]["can_login"] is True

    last = client.get("/admin/users", params={"limit": 2, "page": 2}, headers=auth_headers(admin))
    assert [u["id"] for u in last.json()["results"]] == [admin.id]
