"""HTTP client for the task API with transparent token refresh.

The client keeps a single token slot. Every request carries the token as a
bearer credential when one is held. When a request that carried a token is
answered with 401, the client refreshes once and replays the request once
with the new token. Refreshes are serialized: requests that fail while a
refresh is in flight wait for it and reuse its result. If the refresh fails
the slot is cleared and ``on_session_expired`` is called, which is where a UI
would send the user back to its login screen.

Logging out only forgets the token; the server keeps no session to revoke.
"""

import enum
import logging
import threading
import time

import httpx

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again later."
UNEXPECTED_ERROR = "An unexpected error occurred."
NETWORK_ERROR = "Unable to connect to the server. Check your internet connection."


class SessionState(enum.Enum):
    ABSENT = "absent"
    VALID = "valid"
    EXPIRED_PENDING_REFRESH = "expired_pending_refresh"


class ApiError(Exception):
    def __init__(self, message, status_code=None, errors=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors


class TokenSlot:
    """Holds the bearer token and the client-side expiry mirrored from
    the server's ``expires_in``.

    A token past that expiry is kept: it is still what the refresh call
    presents. Only logout or a failed refresh empties the slot.
    """

    def __init__(self, clock=time.time):
        self.clock = clock
        self._token = None
        self._expires_at = None

    def set(self, token, expires_in):
        self._token = token
        self._expires_at = self.clock() + expires_in

    def get(self):
        return self._token

    def expired(self):
        return (self._token is not None and self._expires_at is not None
                and self._expires_at <= self.clock())

    def clear(self):
        self._token = None
        self._expires_at = None


class RefreshingBearerAuth(httpx.Auth):
    requires_response_body = True

    def __init__(self, slot, refresh_url, on_session_expired=None):
        self.slot = slot
        self.refresh_url = refresh_url
        self.on_session_expired = on_session_expired
        self.refresh_count = 0
        self._refreshing = False
        self._lock = threading.Lock()

    @property
    def state(self):
        if self._refreshing:
            return SessionState.EXPIRED_PENDING_REFRESH
        if self.slot.get() is None:
            return SessionState.ABSENT
        if self.slot.expired():
            return SessionState.EXPIRED_PENDING_REFRESH
        return SessionState.VALID

    def auth_flow(self, request):
        token = self.slot.get()
        if token is not None:
            request.headers["Authorization"] = f"Bearer {token}"
        response = yield request

        if (response.status_code != 401 or token is None
                or request.extensions.get("session_retry")):
            return

        request.extensions["session_retry"] = True
        with self._lock:
            current = self.slot.get()
            if current is None:
                # Logged out, or a concurrent refresh already failed.
                fresh = None
            elif current != token:
                # Another request refreshed while this one waited.
                fresh = current
            else:
                self._refreshing = True
                try:
                    refresh_response = yield self._build_refresh_request(token)
                    fresh = self._store_refreshed(refresh_response)
                finally:
                    self._refreshing = False

        if fresh is None:
            return

        request.headers["Authorization"] = f"Bearer {fresh}"
        yield request

    def _build_refresh_request(self, token):
        return httpx.Request(
            "POST",
            self.refresh_url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )

    def _store_refreshed(self, response):
        self.refresh_count += 1
        try:
            payload = response.json() if response.status_code == 200 else None
            data = payload["data"] if payload and payload.get("status") else None
            token, expires_in = data["token"], data["expires_in"]
        except (ValueError, KeyError, TypeError):
            token = None

        if token is None:
            logger.info("Token refresh failed with status %s", response.status_code)
            self.slot.clear()
            if self.on_session_expired is not None:
                self.on_session_expired()
            return None

        self.slot.set(token, expires_in)
        logger.debug("Token refreshed")
        return token


def describe_error(exc):
    """Text to show a user for a failed call."""
    if exc is None:
        return UNEXPECTED_ERROR
    if isinstance(exc, ApiError):
        if exc.message:
            return exc.message
        if isinstance(exc.errors, dict) and exc.errors:
            return ", ".join(m for messages in exc.errors.values() for m in messages)
        return GENERIC_ERROR
    if isinstance(exc, httpx.TransportError):
        return NETWORK_ERROR
    return GENERIC_ERROR


class TaskClient:
    def __init__(self, base_url, transport=None, on_session_expired=None, clock=time.time):
        self.slot = TokenSlot(clock=clock)
        self._http = httpx.Client(
            base_url=base_url,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.auth = RefreshingBearerAuth(
            self.slot,
            str(self._http.base_url.join("auth/refresh")),
            on_session_expired=on_session_expired,
        )
        self._http.auth = self.auth

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def state(self):
        return self.auth.state

    def _call(self, method, path, **kwargs):
        response = self._http.request(method, path, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        if response.is_error or not payload.get("status", False):
            raise ApiError(payload.get("message"), response.status_code, payload.get("errors"))
        return payload.get("data")

    # Auth

    def register(self, name, username, email, password):
        data = self._call("POST", "/auth/register", auth=None, json={
            "name": name, "username": username, "email": email, "password": password,
        })
        return data["user"]

    def login(self, email, password):
        data = self._call("POST", "/auth/login", auth=None,
                          json={"email": email, "password": password})
        self.slot.set(data["token"], data["expires_in"])
        return data

    def refresh(self):
        token = self.slot.get()
        if token is None:
            raise ApiError("Unauthenticated.", 401)
        data = self._call("POST", "/auth/refresh", auth=None,
                          headers={"Authorization": f"Bearer {token}"})
        self.slot.set(data["token"], data["expires_in"])
        return data

    def logout(self):
        self.slot.clear()

    def is_authenticated(self):
        return self.slot.get() is not None

    def me(self):
        return self._call("GET", "/auth/me")

    def list_users(self):
        return self._call("GET", "/user/list")

    # Tasks

    def list_tasks(self, status=None, sort=None):
        params = {}
        if status is not None:
            params["status"] = status
        if sort is not None:
            params["sort"] = sort
        return self._call("GET", "/task", params=params)

    def get_task(self, task_id):
        return self._call("GET", f"/task/{task_id}")

    def create_task(self, **fields):
        return self._call("POST", "/task", json=fields)

    def update_task(self, task_id, **fields):
        return self._call("PUT", f"/task/{task_id}", json=fields)

    def delete_task(self, task_id):
        return self._call("DELETE", f"/task/{task_id}")
