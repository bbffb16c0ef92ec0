"""
Bearer identity resolution.

Tokens are issued by the external identity provider; the engine only maps
a presented token to an opaque user id. ``TokenRegistry`` holds that
mapping in memory.
"""

import logging
import secrets
import threading
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from evcharge.errors import UnauthorizedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenRegistry:
    """Maps bearer tokens to user ids."""

    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, token: str, user_id: str) -> None:
        if not token or not user_id:
            raise ValueError("token and user_id are required")
        with self._lock:
            self._tokens[token] = user_id

    def issue(self, user_id: str) -> str:
        """Create and register a fresh token for a user."""
        token = secrets.token_urlsafe(32)
        self.register(token, user_id)
        logger.debug("Issued token for %s", user_id)
        return token

    def revoke(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def resolve(self, token: Optional[str]) -> str:
        if not token:
            raise UnauthorizedError("Access token required.")
        with self._lock:
            user_id = self._tokens.get(token)
        if user_id is None:
            raise UnauthorizedError("Invalid or expired access token.")
        return user_id


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency returning the caller's user id."""
    if credentials is None:
        raise UnauthorizedError("Access token required.")
    tokens: TokenRegistry = request.app.state.tokens
    return tokens.resolve(credentials.credentials)
