"""
Credential encryption at rest using Fernet symmetric encryption.
"""

import base64
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import settings


def build_fernet(secret: Optional[str] = None) -> Fernet:
    """Get Fernet instance from the configured (or supplied) secret."""
    key = secret if secret is not None else settings.ENCRYPTION_KEY

    # Anything that is not exactly 32 bytes is stretched with PBKDF2
    if len(key) != 32:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b"socialbug_web_session_salt",
            iterations=100000,
        )
        derived = base64.urlsafe_b64encode(kdf.derive(key.encode()))
    else:
        derived = base64.urlsafe_b64encode(key.encode())

    return Fernet(derived)


def encrypt_credential(token: str, fernet: Optional[Fernet] = None) -> str:
    """
    Encrypt a bearer credential for local storage.

    Args:
        token: Plain text bearer token
        fernet: Optional prebuilt Fernet instance

    Returns:
        Base64-encoded encrypted token
    """
    fernet = fernet or build_fernet()
    return fernet.encrypt(token.encode()).decode()


def decrypt_credential(encrypted_token: str, fernet: Optional[Fernet] = None) -> Optional[str]:
    """Decrypt a stored credential; returns None when it cannot be read back."""
    fernet = fernet or build_fernet()
    try:
        return fernet.decrypt(encrypted_token.encode()).decode()
    except (InvalidToken, ValueError):
        return None
