"""
Adapters layer - Persistence via SQLAlchemy.
"""

from .database import Database, utcnow
from .tables import Base, SlotExceptionRow, SlotRow

__all__ = ["Database", "utcnow", "Base", "SlotExceptionRow", "SlotRow"]
