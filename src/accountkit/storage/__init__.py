"""Storage used by the local collaborator implementations."""

from accountkit.storage.database import close_db, get_db, init_db
from accountkit.storage.repository import AccountRepository

__all__ = ["AccountRepository", "close_db", "get_db", "init_db"]
