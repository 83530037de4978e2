from .database import DEFAULT_DATABASE_URL, LedgerDatabase
from .store import LedgerStore

__all__ = ["DEFAULT_DATABASE_URL", "LedgerDatabase", "LedgerStore"]
