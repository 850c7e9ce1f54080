# ABOUTME: SQLModel for append-only security audit events.
# ABOUTME: Records session creation, updates, and cleanup sweeps for monitoring.

from typing import Any

from sqlalchemy import JSON, BigInteger, Column
from sqlmodel import Field, SQLModel

AUDIT_SOURCE = "anonymous_actions_system"


class AuditEvent(SQLModel, table=True):
    """A security-relevant event emitted by the carryover subsystem."""

    __tablename__ = "audit_events"

    id: int | None = Field(default=None, primary_key=True)
    event_type: str = Field(index=True)
    subject: str = "anonymous"
    source: str = AUDIT_SOURCE
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    timestamp: int = Field(sa_type=BigInteger)
