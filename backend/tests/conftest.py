from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from notekeeper.config import Settings
from notekeeper.context import build_context
from notekeeper.main import create_app


class FrozenClock:
    """Clock that only moves when a test says so."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def settings(tmp_path):
    # isolate data dir per test
    return Settings(
        app_data_dir=tmp_path,
        jwt_secret="dev-secret-for-tests",
        allow_header_auth=True,
        bcrypt_rounds=4,
        purge_interval_seconds=0,
        public_base_url="https://notes.example",
    )


@pytest.fixture()
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def ctx(app):
    return app.state.context


@pytest.fixture()
def services(settings, clock):
    """Service layer without the HTTP surface."""
    return build_context(settings, clock)
