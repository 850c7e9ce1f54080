# ABOUTME: SQLModel for accepted requests tracked by the shared rate limit store.
# ABOUTME: Lets several processes enforce one sliding window through the same database.

from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel


class RateLimitHit(SQLModel, table=True):
    """One accepted request for a rate limit key."""

    __tablename__ = "rate_limit_hits"

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(index=True)
    timestamp: int = Field(sa_type=BigInteger, index=True)
    window_ms: int = Field(sa_type=BigInteger)
