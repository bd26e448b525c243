"""Password hashing (Argon2 via passlib) and JWT encode/decode helpers."""
import uuid
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from vidtube.config import get_settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Use Argon2 for password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)

def create_access_token(user_id: str, email: str, username: str, full_name: str) -> str:
    settings = get_settings()
    expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user_id,
        "email": email,
        "username": username,
        "full_name": full_name,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.algorithm)

def create_refresh_token(user_id: str) -> str:
    settings = get_settings()
    expire = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": REFRESH_TOKEN_TYPE,
        # two refreshes within one second must still yield distinct tokens
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.refresh_token_secret, algorithm=settings.algorithm)

def decode_token(token: str, expected_type: str) -> dict[str, Any] | None:
    """Return the claims of a valid, unexpired token of the expected type, else None."""
    settings = get_settings()
    secret = settings.access_token_secret if expected_type == ACCESS_TOKEN_TYPE else settings.refresh_token_secret
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != expected_type or not payload.get("sub"):
        return None
    return payload
