import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BASE_URL", "http://localhost:5173")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401
from app.database import enable_sqlite_foreign_keys, get_session
from app.main import app as fastapi_app
from app.models.asset import Asset
from app.models.user import User
from app.services.payment_gateway import CheckoutSession, PaymentGateway, get_payment_gateway
from app.utils.errors import ExternalServiceError
from app.utils.hash import hash_password
from app.utils.token import create_access_token

WEBHOOK_SECRET = "whsec_test"


class FakeGateway(PaymentGateway):
    """Real webhook verification, canned outbound sessions."""

    def __init__(self):
        super().__init__(api_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET, currency="usd")
        self.sessions = []
        self.fail = False

    def create_checkout_session(self, order, assets):
        if self.fail:
            raise ExternalServiceError("Payment provider unavailable")
        checkout = CheckoutSession(
            id=f"cs_test_{order.id}",
            url=f"https://checkout.stripe.test/pay/cs_test_{order.id}",
        )
        self.sessions.append({"order_id": order.id, "asset_ids": [a.id for a in assets]})
        return checkout


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="gateway")
def gateway_fixture():
    return FakeGateway()


@pytest.fixture(name="client")
def client_fixture(engine, gateway):
    def get_session_override():
        with Session(engine) as session:
            yield session

    fastapi_app.dependency_overrides[get_session] = get_session_override
    fastapi_app.dependency_overrides[get_payment_gateway] = lambda: gateway

    with TestClient(fastapi_app) as client:
        yield client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session):
    counter = {"n": 0}

    def make_user(role="user", name=None, can_login=True):
        counter["n"] += 1
        user = User(
            name=name or f"user{counter['n']}",
            email=f"user{counter['n']}@example.com",
            password=hash_password("secret123"),
            role=role,
            can_login=can_login,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return make_user


@pytest.fixture(name="user")
def user_fixture(make_user):
    return make_user()


@pytest.fixture(name="admin")
def admin_fixture(make_user):
    return make_user(role="admin", name="admin")


@pytest.fixture(name="make_asset")
def make_asset_fixture(session, make_user):
    author = {}

    def make_asset(title="Asset", price=0.0, **kwargs):
        if "user" not in author:
            author["user"] = make_user(role="admin", name="author")
        asset = Asset(
            title=title,
            description=kwargs.pop("description", f"{title} description"),
            category=kwargs.pop("category", "Code"),
            price=price,
            is_premium=price > 0,
            image=kwargs.pop("image", "https://cdn.example.com/cover.png"),
            file_url=kwargs.pop("file_url", f"https://cdn.example.com/{title}.zip"),
            author_id=author["user"].id,
            author_name=author["user"].name,
            **kwargs,
        )
        session.add(asset)
        session.commit()
        session.refresh(asset)
        return asset

    return make_asset


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def webhook_event(event_type, obj, event_id="evt_test_1") -> bytes:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }).encode("utf-8")


def completed_session(order_id, user_id, session_id=None, payment_intent="pi_test_1"):
    return {
        "id": session_id or f"cs_test_{order_id}",
        "object": "checkout.session",
        "payment_intent": payment_intent,
        "payment_status": "paid",
        "metadata": {"order_id": str(order_id), "user_id": str(user_id)},
    }


@pytest.fixture(name="post_webhook")
def post_webhook_fixture(client):
    def post_webhook(payload: bytes, signature=None, sign=True):
        headers = {"Content-Type": "application/json"}
        if signature is not None:
            headers["Stripe-Signature"] = signature
        elif sign:
            headers["Stripe-Signature"] = sign_payload(payload)
        return client.post("/payments/webhook", content=payload, headers=headers)

    return post_webhook
