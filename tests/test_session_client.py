# tests/test_session_client.py

import threading

import httpx
import pytest

from session_client import (
    NETWORK_ERROR,
    ApiError,
    SessionState,
    TaskClient,
    describe_error,
)

from .conftest import PASSWORD

BASE_URL = "http://testserver/api"


@pytest.fixture()
def session(app):
    expired = []
    client = TaskClient(
        BASE_URL,
        transport=httpx.WSGITransport(app=app),
        on_session_expired=lambda: expired.append(True),
    )
    client.expired_calls = expired
    yield client
    client.close()


def _sign_in(session, username="alice"):
    user = session.register(username.title(), username, f"{username}@example.com", PASSWORD)
    session.login(user["email"], PASSWORD)
    return user


def test_state_follows_login_and_logout(session):
    assert session.state is SessionState.ABSENT
    _sign_in(session)
    assert session.state is SessionState.VALID
    assert session.is_authenticated()
    session.logout()
    assert session.state is SessionState.ABSENT


def test_requests_carry_the_bearer_token(session):
    user = _sign_in(session)
    assert session.me()["id"] == user["id"]
    created = session.create_task(title="t1", status="todo", user_id=user["id"])
    tasks = session.list_tasks(status="todo", sort="asc")
    assert [t["id"] for t in tasks] == [created["id"]]
    assert session.get_task(created["id"])["title"] == "t1"


def test_unauthenticated_request_is_not_retried(session):
    with pytest.raises(ApiError) as excinfo:
        session.list_tasks()
    assert excinfo.value.status_code == 401
    assert session.auth.refresh_count == 0


def test_token_rejected_by_server_is_refreshed_and_replayed(session, clock, app):
    user = _sign_in(session)
    session.create_task(title="t1", status="todo", user_id=user["id"])
    old_token = session.slot.get()
    clock.advance(app.config["JWT_TTL"] * 60 + 1)

    tasks = session.list_tasks()

    assert [t["title"] for t in tasks] == ["t1"]
    assert session.auth.refresh_count == 1
    assert session.slot.get() != old_token
    assert session.state is SessionState.VALID
    assert session.expired_calls == []


def test_failed_refresh_clears_token_and_signals_expiry(session, clock, app):
    _sign_in(session)
    clock.advance(app.config["JWT_REFRESH_TTL"] * 60 + 1)

    with pytest.raises(ApiError) as excinfo:
        session.list_tasks()

    assert excinfo.value.status_code == 401
    assert session.auth.refresh_count == 1
    assert session.state is SessionState.ABSENT
    assert session.expired_calls == [True]


def test_explicit_refresh_replaces_token(session, clock):
    _sign_in(session)
    old_token = session.slot.get()
    clock.advance(5)
    bundle = session.refresh()
    assert bundle["token_type"] == "bearer"
    assert session.slot.get() == bundle["token"] != old_token


def test_client_side_expiry_keeps_token_for_refresh(app):
    now = [1000.0]
    client = TaskClient(BASE_URL, transport=httpx.WSGITransport(app=app), clock=lambda: now[0])
    _sign_in(client)
    token = client.slot.get()
    assert client.state is SessionState.VALID
    now[0] += app.config["JWT_TTL"] * 60
    assert client.state is SessionState.EXPIRED_PENDING_REFRESH
    assert client.slot.get() == token
    assert client.is_authenticated()
    client.close()


def test_token_expiring_on_schedule_is_refreshed(app, clock):
    expired = []
    client = TaskClient(BASE_URL, transport=httpx.WSGITransport(app=app), clock=clock,
                        on_session_expired=lambda: expired.append(True))
    user = _sign_in(client)
    client.create_task(title="t1", status="todo", user_id=user["id"])
    old_token = client.slot.get()

    clock.advance(app.config["JWT_TTL"] * 60 + 1)
    assert client.state is SessionState.EXPIRED_PENDING_REFRESH

    tasks = client.list_tasks()

    assert [t["title"] for t in tasks] == ["t1"]
    assert client.auth.refresh_count == 1
    assert client.slot.get() != old_token
    assert client.state is SessionState.VALID
    assert expired == []
    client.close()


def test_token_past_refresh_window_ends_session(app, clock):
    expired = []
    client = TaskClient(BASE_URL, transport=httpx.WSGITransport(app=app), clock=clock,
                        on_session_expired=lambda: expired.append(True))
    _sign_in(client)
    clock.advance(app.config["JWT_REFRESH_TTL"] * 60 + 1)

    with pytest.raises(ApiError) as excinfo:
        client.me()

    assert excinfo.value.status_code == 401
    assert client.auth.refresh_count == 1
    assert client.state is SessionState.ABSENT
    assert expired == [True]
    client.close()


def test_api_errors_carry_server_message(session):
    with pytest.raises(ApiError) as excinfo:
        session.login("nobody@example.com", PASSWORD)
    assert excinfo.value.status_code == 401
    assert describe_error(excinfo.value) == "Invalid email or password"


class FakeServer:
    """Answers 401 to the first token it sees and accepts the refreshed one.

    Refreshes block on ``gate`` so concurrent requests pile up behind them.
    """

    def __init__(self):
        self.refreshes = 0
        self.gate = threading.Event()
        self.lock = threading.Lock()

    def __call__(self, request):
        auth = request.headers.get("Authorization")
        if request.url.path == "/api/auth/refresh":
            self.gate.wait(timeout=5)
            with self.lock:
                self.refreshes += 1
            return httpx.Response(200, json={
                "status": True,
                "message": "Token refreshed",
                "data": {"token": "fresh", "token_type": "bearer", "expires_in": 3600},
            })
        if auth != "Bearer fresh":
            return httpx.Response(401, json={"status": False, "message": "Unauthenticated.", "errors": None})
        return httpx.Response(200, json={"status": True, "message": "ok", "data": []})


def test_concurrent_failures_share_one_refresh():
    server = FakeServer()
    client = TaskClient(BASE_URL, transport=httpx.MockTransport(server))
    client.slot.set("stale", 3600)

    results = []

    def worker():
        results.append(client.list_tasks())

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    server.gate.set()
    for t in threads:
        t.join(timeout=10)

    assert results == [[]] * 5
    assert server.refreshes == 1
    assert client.slot.get() == "fresh"
    client.close()


def test_malformed_refresh_response_counts_as_failure():
    def handler(request):
        if request.url.path == "/api/auth/refresh":
            return httpx.Response(500, content=b"boom")
        return httpx.Response(401, json={"status": False, "message": "Unauthenticated.", "errors": None})

    expired = []
    client = TaskClient(BASE_URL, transport=httpx.MockTransport(handler),
                        on_session_expired=lambda: expired.append(True))
    client.slot.set("stale", 3600)

    with pytest.raises(ApiError):
        client.me()
    assert expired == [True]
    assert client.state is SessionState.ABSENT
    client.close()


def test_describe_error_fallbacks():
    assert describe_error(None) == "An unexpected error occurred."
    assert describe_error(ApiError(None, 422, {"title": ["a"], "status": ["b", "c"]})) == "a, b, c"
    assert describe_error(httpx.ConnectError("refused")) == NETWORK_ERROR
    assert describe_error(ApiError(None, 500)) == "Something went wrong. Please try again later."


def test_network_failure_surfaces_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = TaskClient(BASE_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.TransportError) as excinfo:
        client.list_users()
    assert describe_error(excinfo.value) == NETWORK_ERROR
    client.close()
