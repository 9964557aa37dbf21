"""
Shared fixtures: in-memory SQLite stores, a stub identity verifier, and a recording
Cal.com upstream built on httpx.MockTransport.
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from calcom_proxy.calcom_client import CalcomClient
from calcom_proxy.database import init_db, make_engine, make_session_factory
from calcom_proxy.delegation import ProfileStore
from calcom_proxy.errors import InvalidToken
from calcom_proxy.identity import Identity
from calcom_proxy.main import create_app
from calcom_proxy.models import UserProfile
from calcom_proxy.token_store import TokenStore

CALCOM_BASE = "https://cal.test/v2"


class StubVerifier:
    """Accepts tokens of the form 'token-<uid>'."""

    def verify(self, token: str) -> Identity:
        if not token.startswith("token-") or len(token) == len("token-"):
            raise InvalidToken()
        uid = token[len("token-"):]
        return Identity(uid=uid, email=f"{uid}@example.com")


class FakeCalcom:
    """Records every request; answers with the configured status and body."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.content: bytes = b'{"status": "success", "data": []}'
        self.headers = {"content-type": "application/json"}
        self.fail_with: Exception | None = None

    def respond(self, status_code: int, payload=None, *, raw: bytes | None = None):
        self.status_code = status_code
        if raw is not None:
            self.content = raw
            self.headers = {"content-type": "text/plain"}
        else:
            self.content = json.dumps(payload if payload is not None else {}).encode("utf-8")
            self.headers = {"content-type": "application/json"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def token_store(session_factory):
    return TokenStore(session_factory)


@pytest.fixture
def profiles(session_factory):
    return ProfileStore(session_factory)


@pytest.fixture
def add_profile(session_factory):
    def _add(uid: str, *, admin: bool | None = None, roles: dict | None = None):
        with session_factory() as db:
            db.add(UserProfile(uid=uid, admin=admin, roles=json.dumps(roles) if roles is not None else None))
            db.commit()

    return _add


@pytest.fixture
def upstream():
    return FakeCalcom()


@pytest.fixture
def calcom(upstream):
    return CalcomClient(httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)), base_url=CALCOM_BASE)


@pytest.fixture
def app(token_store, profiles, calcom):
    return create_app(verifier=StubVerifier(), token_store=token_store, profiles=profiles, calcom=calcom)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
