from datetime import timedelta
from typing import Any, AsyncIterator

import pytest
from event_reservations.config import get_settings
from event_reservations.deps import get_session
from event_reservations.models import UserRole
from event_reservations.routers import reservations as reservations_router
from event_reservations.utils.auth import create_access_token
from fastapi import FastAPI
from fastapi.testclient import TestClient


class DummySession:
    def __init__(self, user_exists: bool) -> None:
        self.user_exists = user_exists

    async def scalar(self, *args: Any, **kwargs: Any) -> int | None:
        return 1 if self.user_exists else None

    async def rollback(self) -> None:
        return None


def _make_app(monkeypatch: pytest.MonkeyPatch, user_exists: bool) -> TestClient:
    app = FastAPI()

    async def override_get_session() -> AsyncIterator[DummySession]:
        yield DummySession(user_exists=user_exists)

    async def fake_get_stats(res_repo: object) -> dict[str, int]:
        return {"total": 3, "pending": 1, "confirmed": 1, "refused": 0, "canceled": 1}

    async def fake_find_by_user(res_repo: object, *, user_id: int) -> list:
        return []

    app.dependency_overrides[get_session] = override_get_session
    monkeypatch.setattr(reservations_router.reservation_usecase, "get_stats", fake_get_stats)
    monkeypatch.setattr(reservations_router.reservation_usecase, "find_by_user", fake_find_by_user)
    app.include_router(reservations_router.router)
    return TestClient(app)


def _token(*, role: UserRole = UserRole.PARTICIPANT, expired: bool = False) -> str:
    delta = timedelta(seconds=-1) if expired else timedelta(minutes=30)
    return create_access_token(user_id=123, role=role, secret="testsecret", expires_delta=delta)


@pytest.fixture(autouse=True)
def _auth_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_SECRET", "testsecret")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_accepts_valid_token(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    res = client.get("/reservations/my-reservations", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 200
    assert res.json() == []


def test_rejects_missing_header(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    res = client.get("/reservations/my-reservations")
    assert res.status_code == 401
    assert res.headers.get("www-authenticate", "").lower().startswith("bearer")


def test_rejects_invalid_token(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    res = client.get("/reservations/my-reservations", headers={"Authorization": "Bearer invalid"})
    assert res.status_code == 401


def test_rejects_expired_token(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    token = _token(expired=True)
    res = client.get("/reservations/my-reservations", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_rejects_when_user_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=False)
    res = client.get("/reservations/my-reservations", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 401


def test_stats_forbidden_for_participant(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    res = client.get("/reservations/stats/all", headers={"Authorization": f"Bearer {_token()}"})
    assert res.status_code == 403


def test_stats_available_to_admin(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_app(monkeypatch, user_exists=True)
    token = _token(role=UserRole.ADMIN)
    res = client.get("/reservations/stats/all", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json() == {"total": 3, "pending": 1, "confirmed": 1, "refused": 0, "canceled": 1}
