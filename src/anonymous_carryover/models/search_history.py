# ABOUTME: SQLModel for per-user search history rows.
# ABOUTME: Reconciled anonymous searches land here with the "carryover" category.

from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel

CARRYOVER_CATEGORY = "carryover"


class SearchHistoryEntry(SQLModel, table=True):
    """One search performed by an authenticated user."""

    __tablename__ = "search_history"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    query: str
    timestamp: int = Field(sa_type=BigInteger)
    result_count: int = 0
    category: str | None = None
