"""
Encryption at rest for sensitive columns (personnel SSN, Square access token).
"""
import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import settings


def _fernet() -> Fernet:
    if settings.encryption_key:
        return Fernet(settings.encryption_key.encode())
    # Derive a stable 32-byte key from the JWT secret
    digest = hashlib.sha256(settings.jwt_secret.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_value(plain: Optional[str]) -> Optional[str]:
    if plain is None:
        return None
    return _fernet().encrypt(plain.encode()).decode()


def decrypt_value(token: Optional[str]) -> Optional[str]:
    if token is None:
        return None
    try:
        return _fernet().decrypt(token.encode()).decode()
    except InvalidToken:
        raise ValueError("Stored value cannot be decrypted with the configured key")


def mask_ssn(ssn: Optional[str]) -> Optional[str]:
    if not ssn:
        return None
    digits = "".join(ch for ch in ssn if ch.isdigit())
    return f"***-**-{digits[-4:]}" if len(digits) >= 4 else "***-**-****"


def mask_token(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"
