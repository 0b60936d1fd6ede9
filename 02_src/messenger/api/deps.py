"""Shared route helpers: bearer authentication and error mapping."""

from typing import Awaitable, Callable

from fastapi import Header, HTTPException

from ..errors import (
    AuthenticationRequired,
    ChatError,
    ConversationNotFound,
    FriendshipRequired,
    InvalidCredential,
    Unauthorized,
    UserNotFound,
)
from ..realtime import extract_bearer_token
from ..transport import Identity

_STATUS_CODES: dict[type[ChatError], int] = {
    AuthenticationRequired: 401,
    InvalidCredential: 401,
    UserNotFound: 404,
    ConversationNotFound: 404,
    Unauthorized: 403,
    FriendshipRequired: 403,
}


def to_http_error(error: ChatError) -> HTTPException:
    """Map a ChatError onto an HTTPException with the same message."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


def bearer_identity(app) -> Callable[..., Awaitable[Identity]]:
    """Build a dependency resolving the request's bearer token to an Identity."""

    async def current_identity(
        authorization: str | None = Header(None),
    ) -> Identity:
        token = extract_bearer_token(authorization)
        try:
            return await app.authenticator.authenticate(token)
        except ChatError as e:
            raise to_http_error(e)

    return current_identity
