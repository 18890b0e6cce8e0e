import base64
import hashlib
from datetime import datetime, timedelta, timezone

import jwt
from cryptography.fernet import Fernet

from dbadmin.core.config import settings

ALGORITHM = "HS256"

# Tokens scope every data/schema/query call to one saved connection
TOKEN_TYPE_CONNECTION = "connection"

# ---------------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------------


def create_access_token(
    connection_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "exp": expire,
        "sub": str(connection_id),
        "type": TOKEN_TYPE_CONNECTION,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the connection id carried by *token*.

    Raises ``jwt.InvalidTokenError`` (incl. ``ExpiredSignatureError``) when the
    token is malformed, expired, or not a connection token.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    if payload.get("type") != TOKEN_TYPE_CONNECTION or not payload.get("sub"):
        raise jwt.InvalidTokenError("Not a connection token")
    return str(payload["sub"])


# ---------------------------------------------------------------------------
# Symmetric encryption for stored connection passwords
# ---------------------------------------------------------------------------

_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    """Derive a Fernet key from SECRET_KEY (SHA-256 → 32 bytes → base64)."""
    global _fernet
    if _fernet is None:
        key_bytes = hashlib.sha256(settings.SECRET_KEY.encode()).digest()
        _fernet = Fernet(base64.urlsafe_b64encode(key_bytes))
    return _fernet


def encrypt_value(plain: str) -> str:
    """Encrypt a string value. Returns a Fernet token (starts with 'gAAAAA')."""
    if not plain:
        return plain
    return _get_fernet().encrypt(plain.encode()).decode()


def decrypt_value(encrypted: str) -> str:
    """Decrypt a Fernet-encrypted value.

    Raises ``InvalidToken`` if the value cannot be decrypted, e.g. after
    SECRET_KEY was rotated.
    """
    if not encrypted:
        return encrypted
    return _get_fernet().decrypt(encrypted.encode()).decode()
