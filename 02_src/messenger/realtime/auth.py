"""Handshake authentication for real-time connections."""

from datetime import datetime, timedelta, timezone

import jwt

from ..errors import AuthenticationRequired, InvalidCredential, UserNotFound
from ..logging_config import get_logger
from ..storage import IStorage
from ..transport import Identity

logger = get_logger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(days=7)


def extract_bearer_token(
    authorization: str | None, query_token: str | None = None
) -> str | None:
    """Pick the credential out of an ``Authorization`` header or a query value."""
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    if query_token:
        return query_token
    return None


class ConnectionAuthenticator:
    """Verifies bearer tokens and resolves them to a user identity."""

    def __init__(self, storage: IStorage, secret: str, algorithm: str = "HS256"):
        self._storage = storage
        self._secret = secret
        self._algorithm = algorithm

    def issue_token(
        self,
        user_id: str,
        email: str | None = None,
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
    ) -> str:
        """Sign a token for ``user_id``."""
        now = datetime.now(timezone.utc)
        claims = {"userId": user_id, "sub": user_id, "iat": now, "exp": now + lifetime}
        if email:
            claims["email"] = email
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str | None) -> str:
        """Check signature and expiry, return the subject user id."""
        if not token:
            raise AuthenticationRequired()

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected token: %s", e)
            raise InvalidCredential() from e

        user_id = claims.get("userId") or claims.get("sub")
        if not user_id:
            raise InvalidCredential()
        return str(user_id)

    async def authenticate(self, token: str | None) -> Identity:
        """Resolve a token to the identity of an existing user."""
        user_id = self.verify(token)

        user = await self._storage.get_user(user_id)
        if user is None:
            raise UserNotFound()

        return Identity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            profile_picture=user.profile_picture,
        )
