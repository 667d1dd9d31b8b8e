"""
Bearer token verification for production deployments.

Tokens are issued elsewhere; this side only verifies the HMAC signature
and expiry and reads the identity claims:

    sub    user id (required)
    email  optional
    role   one of user / buyer / seller / admin, defaults to user
"""
import structlog
from jose import JWTError, jwt

from timevault.application.interfaces.identity_provider import IdentityProvider
from timevault.domain.entities.caller import Caller
from timevault.domain.enums.user_role import UserRole
from timevault.domain.errors import AuthenticationError

logger = structlog.get_logger(__name__)


class JwtIdentityProvider(IdentityProvider):
    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str | None) -> Caller:
        if not token:
            raise AuthenticationError("Authentication required")

        try:
            # Explicit algorithm list; never trust the token header's choice
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.info("token_rejected", reason=str(exc))
            raise AuthenticationError("Invalid or expired token") from None

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid or expired token")

        try:
            role = UserRole(claims.get("role", UserRole.USER.value))
        except ValueError:
            role = UserRole.USER

        return Caller(id=str(user_id), email=claims.get("email"), role=role)
