import re

import pytest

from app import create_app
from config import TestingConfig
from mailer import DeliveryError
from services.otp_store import OtpStore

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Collects messages instead of mailing them; set ``fail`` to simulate an outage."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, body):
        if self.fail:
            raise DeliveryError("smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})

    def last_code(self, to=None):
        for msg in reversed(self.sent):
            if to is None or msg["to"] == to:
                return re.search(r"(\d{6})$", msg["body"]).group(1)
        raise AssertionError(f"no message sent to {to!r}")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def otp_store(clock):
    return OtpStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def app(notifier, otp_store):
    return create_app(TestingConfig, notifier=notifier, otp_store=otp_store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def accounts(app):
    with app.app_context():
        yield app.extensions["accounts"]


@pytest.fixture
def register(client):
    def _register(email="ada@example.com", password="s3cret!", name="Ada"):
        resp = client.post("/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.get_json()
        return resp

    return _register


@pytest.fixture
def login_token(client, notifier):
    """Run both login phases and return the session token."""
    def _login(email="ada@example.com", password="s3cret!"):
        first = client.post("/login", json={"email": email, "password": password})
        assert first.status_code == 200, first.get_json()
        code = notifier.last_code(email)
        second = client.post("/login", json={"email": email, "password": password, "otp": code})
        assert second.status_code == 200, second.get_json()
        return second.get_json()["token"]

    return _login
