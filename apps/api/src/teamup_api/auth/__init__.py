"""Authentication and authorization utilities."""

from teamup_api.auth.jwt import TokenData, create_access_token, decode_access_token
from teamup_api.auth.github import GitHubOAuth
from teamup_api.auth.dependencies import get_current_user, get_session_check

__all__ = [
    "TokenData",
    "create_access_token",
    "decode_access_token",
    "GitHubOAuth",
    "get_current_user",
    "get_session_check",
]
