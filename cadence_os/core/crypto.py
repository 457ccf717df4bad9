"""Encryption helpers for OAuth tokens stored at rest."""

import logging

from cryptography.fernet import Fernet, InvalidToken

from .config import get_settings

logger = logging.getLogger(__name__)


class TokenEncryptionError(Exception):
    """Token could not be encrypted or decrypted."""
    pass


def _get_fernet() -> Fernet | None:
    settings = get_settings()
    if not settings.encryption_enabled:
        if settings.environment == "production":
            raise TokenEncryptionError("ENCRYPTION_KEY is required in production")
        return None
    try:
        return Fernet(settings.encryption_key.encode())
    except ValueError as e:
        raise TokenEncryptionError(f"Invalid ENCRYPTION_KEY: {e}") from e


def encrypt_token(token: str) -> str:
    """Encrypt a token for secure storage."""
    fernet = _get_fernet()
    if fernet is None:
        logger.warning("Encryption not configured - storing token in plaintext")
        return token
    return fernet.encrypt(token.encode()).decode()


def decrypt_token(encrypted: str) -> str:
    """Decrypt a stored token."""
    fernet = _get_fernet()
    if fernet is None:
        return encrypted
    try:
        return fernet.decrypt(encrypted.encode()).decode()
    except InvalidToken as e:
        logger.error("Failed to decrypt token: invalid token or wrong key")
        raise TokenEncryptionError("Failed to decrypt token") from e


def is_encrypted(value: str) -> bool:
    """Check whether a stored value decrypts with the configured key."""
    fernet = _get_fernet()
    if fernet is None:
        return False
    try:
        fernet.decrypt(value.encode())
        return True
    except InvalidToken:
        return False
