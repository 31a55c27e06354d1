from datetime import datetime, timedelta, timezone

from app.constants.order_status import OrderStatus
from app.models.order import Order
from app.services import order_ledger
from tests.conftest import auth_headers


def _order(session, user_id, total=5.0, status=OrderStatus.PENDING, created_at=None, asset=None):
    snapshot = [{"asset_id": asset.id, "price": asset.price, "title": asset.title}] if asset else []
    order = order_ledger.create_order(session, user_id, snapshot, total=total, status=status)
    if created_at is not None:
        order.created_at = created_at
        session.add(order)
    session.commit()
    session.refresh(order)
    return order


def test_other_users_order_is_not_found(client, session, make_user, make_asset):
    owner, stranger = make_user(), make_user()
    order = _order(session, owner.id, asset=make_asset("Private", price=5))

    resp = client.get(f"/orders/{order.id}", headers=auth_headers(stranger))

    assert resp.status_code == 404
    assert resp.json() == {"detail": "Order not found"}

    missing = client.get("/orders/99999", headers=auth_headers(stranger))
    assert missing.status_code == 404
    assert missing.json() == resp.json()

    track = client.get(f"/orders/{order.id}/track", headers=auth_headers(stranger))
    assert track.status_code == 404


def test_owner_sees_order_with_snapshot(client, session, user, make_asset):
    asset = make_asset("Icons", price=12.5)
    order = _order(session, user.id, total=12.5, asset=asset)

    resp = client.get(f"/orders/{order.id}", headers=auth_headers(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == order.id
    assert body["status"] == OrderStatus.PENDING
    assert body["assets"] == [{"asset_id": asset.id, "title": "Icons", "price": 12.5}]


def test_history_is_newest_first_and_scoped(client, session, make_user):
    user, other = make_user(), make_user()
    now = datetime.now(timezone.utc)
    old = _order(session, user.id, created_at=now - timedelta(days=2))
    new = _order(session, user.id, created_at=now - timedelta(hours=1))
    _order(session, other.id)

    resp = client.get("/orders", headers=auth_headers(user))

    assert resp.status_code == 200
    assert [o["id"] for o in resp.json()["orders"]] == [new.id, old.id]


def test_track_lists_timeline(client, session, user):
    order = _order(session, user.id)
    order_ledger.transition_status(session, order.id, OrderStatus.COMPLETED, created_by="stripe")
    session.commit()

    resp = client.get(f"/orders/{order.id}/track", headers=auth_headers(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == OrderStatus.COMPLETED
    assert [e["event"] for e in body["timeline"]] == ["created", "completed"]
    assert body["timeline"][1]["by"] == "stripe"


def test_admin_lists_orders_by_status(client, session, admin, make_user):
    user = make_user()
    pending = _order(session, user.id)
    _order(session, user.id, status=OrderStatus.COMPLETED)

    resp = client.get("/admin/orders/", params={"status": "pending"}, headers=auth_headers(admin))

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_items"] == 1
    assert body["results"][0]["id"] == pending.id


def test_admin_orders_forbidden_for_users(client, user):
    resp = client.get("/admin/orders/", headers=auth_headers(user))
    assert resp.status_code == 403


def test_admin_expire_stale_cancels_old_pending(client, session, admin, make_user):
    user = make_user()
    now = datetime.now(timezone.utc)
    stale = _order(session, user.id, created_at=now - timedelta(hours=3))
    fresh = _order(session, user.id, created_at=now - timedelta(minutes=5))
    done = _order(session, user.id, status=OrderStatus.COMPLETED, created_at=now - timedelta(hours=3))

    resp = client.post("/admin/orders/expire-stale", headers=auth_headers(admin))

    assert resp.status_code == 200
    assert resp.json() == {"cancelled": 1, "order_ids": [stale.id]}

    session.expire_all()
    assert session.get(Order, stale.id).status == OrderStatus.CANCELLED
    assert session.get(Order, fresh.id).status == OrderStatus.PENDING
    assert session.get(Order, done.id).status == OrderStatus.COMPLETED
