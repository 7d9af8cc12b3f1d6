from __future__ import annotations

import os
from collections.abc import Callable, Generator

import redis

from realm.registry import SessionRegistry, registry
from realm.wallet import WalletConnector, create_wallet_connector


def get_redis_url() -> str:
    return os.environ.get("REALM_REDIS_URL", "redis://localhost:6379/0")


def create_redis() -> redis.Redis:
    # Results and streams are read back as str, never bytes.
    return redis.Redis.from_url(get_redis_url(), decode_responses=True)


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_redis_factory() -> Callable[[], redis.Redis]:
    """Clients for work that outlives the request, such as a session clock."""

    return create_redis


def get_registry() -> SessionRegistry:
    return registry


_WALLET: WalletConnector | None = None


def get_wallet() -> WalletConnector:
    global _WALLET
    if _WALLET is None:
        _WALLET = create_wallet_connector()
    return _WALLET
