"""Models package."""

from .session_entry import SessionEntry
