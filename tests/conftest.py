from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (e.g. REALM_LOG_LEVEL=DEBUG).

    In CI we don't auto-load `.env` unless explicitly opted in with
    REALM_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("REALM_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(autouse=True)
def _default_session_config(monkeypatch: pytest.MonkeyPatch) -> None:
    # A developer's REALM_CONFIG_PATH must not leak into tests.
    monkeypatch.delenv("REALM_CONFIG_PATH", raising=False)


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to fakeredis, a fresh session registry and an in-memory wallet."""

    import fakeredis
    from fastapi.testclient import TestClient

    from realm.api.deps import get_redis, get_redis_factory, get_registry, get_wallet
    from realm.main import app
    from realm.registry import SessionRegistry
    from realm.wallet import RecordingWalletConnector

    server = fakeredis.FakeServer()
    r = fakeredis.FakeRedis(server=server, decode_responses=True)
    reg = SessionRegistry()
    wallet = RecordingWalletConnector()

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_redis_factory] = lambda: lambda: fakeredis.FakeRedis(server=server, decode_responses=True)
    app.dependency_overrides[get_registry] = lambda: reg
    app.dependency_overrides[get_wallet] = lambda: wallet
    with TestClient(app) as c:
        yield c, r, wallet
    app.dependency_overrides.clear()
