import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.core.db import get_db
from app.main import app as fastapi_app


class UnavailableSession:
    """Stands in for a session whose database has gone away."""

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))


@pytest.fixture
def broken_client():
    def override_get_db():
        yield UnavailableSession()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.mark.parametrize("path", [
    "/api/admin/accounting/bfr",
    "/api/admin/accounting/forecast",
    "/api/admin/accounting/positions",
    "/api/admin/accounting/journal",
])
def test_database_failure_is_a_generic_500(broken_client, path):
    resp = broken_client.get(path)

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Database error, please retry later"}


def test_service_errors_keep_their_status(client):
    resp = client.get("/api/admin/accounting/recurring-expenses/missing")

    assert resp.status_code == 404
    assert "not found" in resp.json()["detail"]
