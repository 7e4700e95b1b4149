from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from medreminder.core.config import Settings
from medreminder.main import create_app
from medreminder.reminders.schemas import ReminderRecord
from medreminder.utils.timezone import utc_now


@pytest.fixture
def make_settings(tmp_path):
    """Settings isolated under tmp_path; keyword overrides win."""
    def _make(**overrides) -> Settings:
        values = dict(
            STORAGE_BACKEND="sqlite",
            SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'data.db'}",
            JSON_DB_PATH=str(tmp_path / "db.json"),
            UPLOADS_LOCAL_DIR=str(tmp_path / "uploads"),
            VAPID_PUBLIC_KEY="",
            VAPID_PRIVATE_KEY="",
            VALID_API_KEYS=[],
            METRICS_ENABLED=False,
            DEFAULT_TIMEZONE="UTC",
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture(params=["sqlite", "json"])
def backend(request):
    return request.param


@pytest.fixture
def client(make_settings, backend):
    app = create_app(make_settings(STORAGE_BACKEND=backend))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_reminder():
    counter = {"n": 0}

    def _make(minutes: float = 60, **overrides) -> ReminderRecord:
        counter["n"] += 1
        values = dict(
            id=f"rem-{counter['n']}",
            name=f"Med {counter['n']}",
            time=utc_now() + timedelta(minutes=minutes),
            type="alarm",
            tone="tone1",
        )
        values.update(overrides)
        return ReminderRecord(**values)
    return _make
