import pytest
from fastapi.testclient import TestClient

from idealcar.app import create_app
from idealcar.backend_settings import Settings

ADMIN_PASSWORD = "correct-horse"

# 2025-10-09T08:55:23Z
START = 1_760_000_123.5

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


class FakeClock:
    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENVIRONMENT="test",
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        ADMIN_TOKEN_TTL_SECONDS=3600,
        STORE_BACKEND="json",
        DATA_DIR=str(tmp_path / "data"),
        UPLOAD_DIR=str(tmp_path / "uploads"),
        RATE_LIMIT_MAX_REQUESTS=1000,
        LOGIN_RATE_LIMIT_MAX=1000,
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def token(client):
    r = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return r.json()["token"]


@pytest.fixture
def auth(token):
    return {"Authorization": f"Bearer {token}"}
