# ABOUTME: Database package for the carryover persistence layer.
# ABOUTME: Provides DatabaseService for SQLite operations using SQLModel.

from anonymous_carryover.database.service import DatabaseService

__all__ = ["DatabaseService"]
