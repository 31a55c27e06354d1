from sqlalchemy.exc import OperationalError

from app.database import SUPPORTED_DIALECTS, get_session
from app.main import app as fastapi_app
from app.services import entitlement_service


def test_database_outage_returns_503(client):
    def unavailable_session():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    previous = fastapi_app.dependency_overrides[get_session]
    fastapi_app.dependency_overrides[get_session] = unavailable_session
    try:
        resp = client.get("/assets")
    finally:
        fastapi_app.dependency_overrides[get_session] = previous

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Database unavailable"}


def test_every_supported_dialect_has_an_insert_ignore():
    assert set(entitlement_service._INSERTS) == set(SUPPORTED_DIALECTS)
