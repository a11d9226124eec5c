"""Persisted key/value entry for tab-wide session state."""

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func

from database import Base


class SessionEntry(Base):
    """One persisted session key (credential or pending provider marker)."""

    __tablename__ = "session_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
