"""Tab-wide session state: bearer credential and pending provider marker."""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet
from sqlalchemy.orm import sessionmaker

from database import create_session_engine, create_session_maker
from models.session_entry import SessionEntry
from services.crypto import build_fernet, decrypt_credential, encrypt_credential

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "token"
PENDING_PROVIDER_KEY = "connection_provider"


class SessionStore:
    """
    Persisted get/set/clear access to the two tab-wide session keys.

    Values live in a local SQLite table so they survive a restart of the app,
    which is what lets the authorization flow resume after the provider
    redirect. There is no network I/O and token contents are never inspected.
    """

    def __init__(self, session_maker: sessionmaker, fernet: Optional[Fernet] = None):
        self._session_maker = session_maker
        self._fernet = fernet or build_fernet()

    @classmethod
    def from_url(cls, database_url: Optional[str] = None, secret: Optional[str] = None) -> "SessionStore":
        engine = create_session_engine(database_url)
        return cls(create_session_maker(engine), build_fernet(secret))

    # Credential

    def get(self) -> Optional[str]:
        stored = self._read(CREDENTIAL_KEY)
        if stored is None:
            return None
        token = decrypt_credential(stored, self._fernet)
        if token is None:
            logger.warning("Stored credential could not be decrypted; treating session as signed out.")
        return token or None

    def set(self, token: str) -> None:
        self._write(CREDENTIAL_KEY, encrypt_credential(token, self._fernet))

    def clear(self) -> None:
        self._delete(CREDENTIAL_KEY)

    # Pending authorization

    def set_pending(self, provider: str) -> None:
        self._write(PENDING_PROVIDER_KEY, provider)

    def get_pending(self) -> Optional[str]:
        return self._read(PENDING_PROVIDER_KEY) or None

    def clear_pending(self) -> None:
        self._delete(PENDING_PROVIDER_KEY)

    def _read(self, key: str) -> Optional[str]:
        with self._session_maker() as db:
            entry = db.get(SessionEntry, key)
            return entry.value if entry else None

    def _write(self, key: str, value: str) -> None:
        with self._session_maker() as db:
            entry = db.get(SessionEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(SessionEntry(key=key, value=value))
            db.commit()

    def _delete(self, key: str) -> None:
        with self._session_maker() as db:
            entry = db.get(SessionEntry, key)
            if entry:
                db.delete(entry)
                db.commit()
