# tests/conftest.py

import time

import pytest

from app import create_app
from config import TestConfig
from extensions import db, tokens

PASSWORD = "secret123"


class OwnerOnlyConfig(TestConfig):
    TASK_ACCESS_POLICY = "owner_only"


class FakeClock:
    """Settable replacement for time.time()."""

    def __init__(self, now=None):
        self.now = time.time() if now is None else now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(tokens, "clock", fake)
    return fake


@pytest.fixture()
def app(clock):
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def owner_only_app(clock):
    app = create_app(OwnerOnlyConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


class Api:
    """Small helper around the Flask test client for the JSON API."""

    def __init__(self, client, prefix="/api"):
        self.client = client
        self.prefix = prefix

    def register(self, username, password=PASSWORD, name=None, email=None):
        return self.client.post(f"{self.prefix}/auth/register", json={
            "name": name or username.title(),
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })

    def login(self, email, password=PASSWORD):
        return self.client.post(f"{self.prefix}/auth/login",
                                json={"email": email, "password": password})

    def user(self, username):
        """Register ``username`` and return (user dict, auth headers)."""
        user = self.register(username).get_json()["data"]["user"]
        token = self.login(user["email"]).get_json()["data"]["token"]
        return user, {"Authorization": f"Bearer {token}"}

    def get(self, path, headers=None, **kwargs):
        return self.client.get(f"{self.prefix}{path}", headers=headers, **kwargs)

    def post(self, path, headers=None, **kwargs):
        return self.client.post(f"{self.prefix}{path}", headers=headers, **kwargs)

    def put(self, path, headers=None, **kwargs):
        return self.client.put(f"{self.prefix}{path}", headers=headers, **kwargs)

    def delete(self, path, headers=None, **kwargs):
        return self.client.delete(f"{self.prefix}{path}", headers=headers, **kwargs)


@pytest.fixture()
def api(client):
    return Api(client)


@pytest.fixture()
def owner_only_api(owner_only_app):
    return Api(owner_only_app.test_client())
