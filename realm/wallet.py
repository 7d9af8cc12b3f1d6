from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod

from realm.core.scoring import SessionResult

logger = logging.getLogger(__name__)


class WalletConnector(ABC):
    """Receives each final result once, e.g. to mint achievements.

    No chain protocol lives here; implementations are picked at startup.
    """

    @abstractmethod
    def submit_result(self, *, session_id: str, result: SessionResult) -> None:
        raise NotImplementedError


class NullWalletConnector(WalletConnector):
    def submit_result(self, *, session_id: str, result: SessionResult) -> None:
        return None


class LoggingWalletConnector(WalletConnector):
    def submit_result(self, *, session_id: str, result: SessionResult) -> None:
        logger.info(
            "wallet handoff: session=%s score=%s grade=%s outcome=%s",
            session_id,
            result.score,
            result.grade,
            result.outcome,
        )


class RecordingWalletConnector(WalletConnector):
    """Keeps submitted results in memory."""

    def __init__(self) -> None:
        self.submitted: list[tuple[str, SessionResult]] = []

    def submit_result(self, *, session_id: str, result: SessionResult) -> None:
        self.submitted.append((session_id, result))


_CONNECTORS: dict[str, type[WalletConnector]] = {
    "none": NullWalletConnector,
    "log": LoggingWalletConnector,
    "memory": RecordingWalletConnector,
}


def create_wallet_connector(name: str | None = None) -> WalletConnector:
    name = (name or os.environ.get("REALM_WALLET_CONNECTOR", "log")).strip().lower()
    cls = _CONNECTORS.get(name)
    if cls is None:
        allowed = ",".join(sorted(_CONNECTORS))
        raise ValueError(f"Unknown wallet connector: {name} (allowed: {allowed})")
    return cls()
