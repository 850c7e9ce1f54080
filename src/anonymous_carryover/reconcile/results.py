# ABOUTME: Result types returned by reconciliation, one tagged value per buffered action.
# ABOUTME: Per-action failures are data here, never exceptions.

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class ReconcileReason(str, Enum):
    """Why a reconcile call did not process a session."""

    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    ALREADY_PROCESSED = "already_processed"


class ActionSuccess(BaseModel):
    """An action that was carried over."""

    type: str
    target_id: str
    status: Literal["tracked", "added_to_history"]


class ActionFailure(BaseModel):
    """An action whose carryover failed; the rest of the session still ran."""

    type: str
    target_id: str
    status: Literal["failed"] = "failed"
    error: str


ActionResult = Annotated[ActionSuccess | ActionFailure, Field(discriminator="status")]


class ReconcileResult(BaseModel):
    """Outcome of folding a session into an authenticated account."""

    success: bool
    reason: ReconcileReason | None = None
    processed_count: int = 0
    total_actions: int = 0
    per_action_results: list[ActionResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[ActionFailure]:
        return [r for r in self.per_action_results if isinstance(r, ActionFailure)]
