from __future__ import annotations

import redis

from realm.core.scoring import SessionResult

RESULTS_SET_KEY = "realm:results"
RESULT_KEY_PREFIX = "realm:result:"  # + {session_id}


def _result_key(session_id: str) -> str:
    return f"{RESULT_KEY_PREFIX}{session_id}"


def save_result(*, r: redis.Redis, session_id: str, result: SessionResult) -> bool:
    """Persist a final result. Returns False if one was already stored for this session."""

    stored = r.set(_result_key(session_id), result.model_dump_json(), nx=True)
    if not stored:
        return False
    r.sadd(RESULTS_SET_KEY, session_id)
    return True


def get_result(*, r: redis.Redis, session_id: str) -> SessionResult | None:
    raw = r.get(_result_key(session_id))
    if not raw:
        return None
    return SessionResult.model_validate_json(raw)


def list_results(*, r: redis.Redis) -> dict[str, SessionResult]:
    out: dict[str, SessionResult] = {}
    for sid in sorted(r.smembers(RESULTS_SET_KEY)):
        result = get_result(r=r, session_id=sid)
        if result is not None:
            out[sid] = result
    return out
