# ABOUTME: Typed action records buffered in anonymous sessions, keyed by action type.
# ABOUTME: Parses camelCase wire payloads into a discriminated union at ingestion time.

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from anonymous_carryover.errors import InvalidActionPayload


class ActionType(str, Enum):
    """Kinds of actions an anonymous visitor can buffer."""

    VIEW_CONTENT = "vibe_view"
    LIKE_CONTENT = "vibe_like"
    RATING_ATTEMPT = "rating_attempt"
    FOLLOW_ATTEMPT = "follow_attempt"
    SEARCH = "search"


class _ActionBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    target_id: Annotated[str, Field(min_length=1, max_length=256)]
    timestamp: Annotated[int, Field(description="Client-reported epoch milliseconds")]

    @property
    def action_type(self) -> ActionType:
        return ActionType(self.type)  # type: ignore[attr-defined]


class ViewContentAction(_ActionBase):
    type: Literal["vibe_view"] = "vibe_view"
    data: dict[str, Any] | None = None


class LikeContentAction(_ActionBase):
    type: Literal["vibe_like"] = "vibe_like"
    data: dict[str, Any] | None = None


class RatingAttemptAction(_ActionBase):
    type: Literal["rating_attempt"] = "rating_attempt"
    data: dict[str, Any] | None = None


class FollowAttemptAction(_ActionBase):
    type: Literal["follow_attempt"] = "follow_attempt"
    data: dict[str, Any] | None = None


class SearchData(BaseModel):
    """Payload carried by a search action."""

    model_config = ConfigDict(frozen=True)

    query: Annotated[str, Field(max_length=512)]


class SearchAction(_ActionBase):
    type: Literal["search"] = "search"
    data: SearchData | None = None

    @property
    def search_query(self) -> str:
        """The query to carry over, falling back to the target id when blank."""
        if self.data is not None and self.data.query:
            return self.data.query
        return self.target_id


ActionRecord = Annotated[
    ViewContentAction | LikeContentAction | RatingAttemptAction | FollowAttemptAction | SearchAction,
    Field(discriminator="type"),
]

action_adapter: TypeAdapter[ActionRecord] = TypeAdapter(ActionRecord)
action_list_adapter: TypeAdapter[list[ActionRecord]] = TypeAdapter(list[ActionRecord])


def dump_actions(actions: list[ActionRecord]) -> list[dict[str, Any]]:
    """Serialize actions to their JSON wire shape for storage."""
    return action_list_adapter.dump_python(
        actions, mode="json", by_alias=True, exclude_none=True
    )


def load_actions(raw: list[dict[str, Any]]) -> list[ActionRecord]:
    """Rebuild typed actions from stored JSON."""
    return action_list_adapter.validate_python(raw)


def load_action(raw: dict[str, Any]) -> ActionRecord:
    """Rebuild one typed action from stored JSON."""
    return action_adapter.validate_python(raw)


def parse_wire_actions(session_id: str, raw_actions: list[dict[str, Any]]) -> list[ActionRecord]:
    """Validate a batch of wire payloads for one session.

    Each payload may repeat the session id under ``sessionId``; when present it
    must match the session the batch is being stored under.

    Args:
        session_id: The session the batch targets.
        raw_actions: Decoded JSON objects as sent by the client.

    Returns:
        Typed action records in batch order.

    Raises:
        InvalidActionPayload: If any payload fails schema validation or names
            a different session.
    """
    for index, raw in enumerate(raw_actions):
        if not isinstance(raw, dict):
            raise InvalidActionPayload(f"Action {index} is not an object")
        claimed = raw.get("sessionId", session_id)
        if claimed != session_id:
            raise InvalidActionPayload(f"Action {index} belongs to a different session")

    try:
        return action_list_adapter.validate_python(raw_actions)
    except ValidationError as e:
        raise InvalidActionPayload(f"Malformed action payload: {e.error_count()} error(s)") from e
