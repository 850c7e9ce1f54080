# ABOUTME: Shared constants and payload builders for anonymous-carryover tests.
# ABOUTME: Importable from any test module because the tests directory is on pytest's pythonpath.

from typing import Any

from anonymous_carryover.config import DAY_MS, HOUR_MS

# 2025-06-15T15:06:40Z
T0 = 1_750_000_000_000

__all__ = ["DAY_MS", "HOUR_MS", "T0", "wire_action"]


def wire_action(
    action_type: str,
    target_id: str,
    timestamp: int,
    data: dict[str, Any] | None = None,
    session_id: str | None = None,
) -> dict[str, Any]:
    """Build a camelCase wire payload the way a browser client sends it."""
    payload: dict[str, Any] = {"type": action_type, "targetId": target_id, "timestamp": timestamp}
    if data is not None:
        payload["data"] = data
    if session_id is not None:
        payload["sessionId"] = session_id
    return payload
