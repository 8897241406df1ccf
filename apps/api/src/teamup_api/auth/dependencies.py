"""Authentication dependencies for FastAPI."""

from typing import Annotated, Callable

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teamup_api.auth.jwt import TokenData, decode_access_token

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(security)],
) -> TokenData:
    """Get current user, raise 401 if not authenticated."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data


async def get_session_check(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(security)],
) -> Callable[[], str | None]:
    """Callable re-validating the request's session when invoked.

    Long-running flows call it right before writing so that a token that
    expired in the meantime no longer counts as the same session.
    """
    token = credentials.credentials if credentials is not None else None

    def session_check() -> str | None:
        if token is None:
            return None
        token_data = decode_access_token(token)
        return token_data.user_id if token_data else None

    return session_check
