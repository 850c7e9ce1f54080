# ABOUTME: All-or-nothing validation of incoming action batches.
# ABOUTME: Checks every action, collects every violation, and only then accepts or rejects the batch.

from collections.abc import Sequence
from dataclasses import dataclass

from anonymous_carryover.config import Settings
from anonymous_carryover.errors import InvalidTimestamp, SessionLimitExceeded
from anonymous_carryover.models import ActionRecord

TOO_FAR_IN_FUTURE = "too_far_in_future"
TOO_OLD = "too_old"


@dataclass(frozen=True)
class TimestampViolation:
    """An action whose client timestamp falls outside the accepted window."""

    index: int
    target_id: str
    timestamp: int
    reason: str


class BatchValidator:
    """Validates a batch of actions as a unit.

    The batch is never partially accepted: validate_batch inspects every
    action before deciding, so a rejection reports every offending entry
    and a caller that proceeds after it returns may commit the whole batch.
    """

    def __init__(self, settings: Settings) -> None:
        self._max_actions = settings.max_actions_per_session
        self._future_skew_ms = settings.future_skew_ms
        self._max_age_ms = settings.max_action_age_ms

    @property
    def max_actions(self) -> int:
        return self._max_actions

    def find_timestamp_violations(
        self, actions: Sequence[ActionRecord], now: int
    ) -> list[TimestampViolation]:
        """Return every action whose timestamp is outside [now - 7d, now + 60s]."""
        violations = []
        for index, action in enumerate(actions):
            if action.timestamp > now + self._future_skew_ms:
                reason = TOO_FAR_IN_FUTURE
            elif action.timestamp < now - self._max_age_ms:
                reason = TOO_OLD
            else:
                continue
            violations.append(
                TimestampViolation(
                    index=index,
                    target_id=action.target_id,
                    timestamp=action.timestamp,
                    reason=reason,
                )
            )
        return violations

    def check_size(self, count: int) -> None:
        """Reject batches larger than a whole session may hold.

        Raises:
            SessionLimitExceeded: If count exceeds the per-session maximum.
        """
        if count > self._max_actions:
            raise SessionLimitExceeded(
                f"Maximum {self._max_actions} actions per session allowed",
                limit=self._max_actions,
            )

    def validate_batch(self, actions: Sequence[ActionRecord], now: int) -> None:
        """Validate size and timestamps of a batch.

        Raises:
            SessionLimitExceeded: If the batch alone exceeds the session cap.
            InvalidTimestamp: If any action's timestamp is out of range; the
                exception lists all of them.
        """
        self.check_size(len(actions))
        violations = self.find_timestamp_violations(actions, now)
        if violations:
            raise InvalidTimestamp(violations)
