"""Session tokens identifying the TeamUp user behind each request."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from pydantic import BaseModel

from teamup_api.config import settings


class TokenData(BaseModel):
    """Claims carried by a session token."""

    user_id: str
    username: str | None = None


def create_access_token(
    user_id: str,
    username: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a session token whose subject is the TeamUp user id."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRATION_HOURS)

    payload = {
        "sub": user_id,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "username": username,
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenData | None:
    """Return the token's claims, or None when it is expired or tampered with."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None

    if not payload.get("sub"):
        return None
    return TokenData(user_id=payload["sub"], username=payload.get("username"))
