"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository modules per table group (students, academics, tests,
  files, evaluations, papers)
"""

from examdesk.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
