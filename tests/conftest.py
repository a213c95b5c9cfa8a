from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the portal package importable during local test runs
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from portal.app import create_app  # noqa: E402
from portal.client.remote import RemoteApi, RemoteUnavailableError  # noqa: E402
from portal.core import config as core_config  # noqa: E402
from portal.db import models  # noqa: E402
from portal.db import session as db_session  # noqa: E402


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite database; settings and engine caches are reset around it."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.delenv("PORTAL_ROUTING_POLICY", raising=False)
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


@pytest.fixture()
def api_client(temp_db):
    with TestClient(create_app(), base_url="http://testserver/api") as client:
        yield client


class FlakyRemote:
    """Wraps a RemoteApi; while ``online`` is False every call fails like a dead network."""

    def __init__(self, inner: RemoteApi) -> None:
        self.inner = inner
        self.online = True

    def __getattr__(self, name):
        target = getattr(self.inner, name)

        def call(*args, **kwargs):
            if not self.online:
                raise RemoteUnavailableError("API unreachable")
            return target(*args, **kwargs)

        return call


@pytest.fixture()
def flaky_remote(api_client):
    return FlakyRemote(RemoteApi(client=api_client))


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls = []

    def notify(self, issue, provider):
        self.calls.append((issue.id, provider.id))


@pytest.fixture()
def notifier():
    return RecordingNotifier()
