"""
SQLAlchemy model for the key-value table behind SqlMedium.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)  # e.g. "diceCreator:dice"
    value = Column(Text, nullable=False)  # JSON document (storage envelope or version marker)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
