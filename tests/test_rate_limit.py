import pytest
from fastapi.testclient import TestClient

from conftest import ADMIN_PASSWORD, FakeClock
from idealcar.app import create_app
from idealcar.exceptions import RateLimited
from idealcar.rate_limit import SlidingWindowLimiter


def test_limiter_window_slides():
    clock = FakeClock(0.0)
    limiter = SlidingWindowLimiter(2, 60, clock)
    limiter.hit("1.2.3.4")
    clock.advance(30)
    limiter.hit("1.2.3.4")
    with pytest.raises(RateLimited) as e:
        limiter.hit("1.2.3.4")
    assert e.value.headers == {"Retry-After": "30"}

    limiter.hit("5.6.7.8")  # other addresses have their own budget

    clock.advance(30)
    limiter.hit("1.2.3.4")


def test_api_requests_are_limited_per_address(settings, clock):
    settings.RATE_LIMIT_MAX_REQUESTS = 3
    client = TestClient(create_app(settings, clock=clock))
    for _ in range(3):
        assert client.get("/api/cars").status_code == 200
    r = client.get("/api/blog")
    assert r.status_code == 429
    assert r.json() == {"success": False, "error": "Too many requests. Please try again later."}
    assert "retry-after" in r.headers

    # only /api/ is limited
    assert client.get("/").status_code == 200


def test_login_attempts_are_limited(settings, clock):
    settings.LOGIN_RATE_LIMIT_MAX = 2
    client = TestClient(create_app(settings, clock=clock))
    assert client.post("/api/admin/login", json={"password": "x"}).status_code == 401
    assert client.post("/api/admin/login", json={"password": "x"}).status_code == 401
    r = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert r.status_code == 429


def test_forwarded_for_is_ignored_by_default(settings, clock):
    settings.LOGIN_RATE_LIMIT_MAX = 2
    client = TestClient(create_app(settings, clock=clock))
    codes = {
        client.post("/api/admin/login", json={"password": "x"},
                    headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
        for i in range(5)
    }
    assert codes == {401, 429}


def test_forwarded_for_behind_trusted_proxy(settings, clock):
    settings.RATE_LIMIT_MAX_REQUESTS = 1
    settings.TRUST_FORWARDED_FOR = True
    client = TestClient(create_app(settings, clock=clock))
    assert client.get("/api/cars", headers={"X-Forwarded-For": "10.0.0.9, 10.0.0.1"}).status_code == 200
    assert client.get("/api/cars", headers={"X-Forwarded-For": "10.0.0.9"}).status_code == 429
    assert client.get("/api/cars", headers={"X-Forwarded-For": "10.0.0.7"}).status_code == 200
