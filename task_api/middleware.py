"""
Request authorizer: runs before every protected handler.

Bearer header -> signature/expiry check -> live store record -> principal lookup. Every token-level
failure is reported as the same InvalidToken so callers cannot tell a bad signature from an expired
or garbled token. The store check is what lets a token be invalidated before its embedded expiry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from task_api.errors import (
    InsufficientScope,
    InvalidToken,
    MalformedAuth,
    MissingAuth,
    PrincipalNotFound,
    TokenError,
    TokenRevokedOrUnknown,
)
from task_api.models import AccessToken, User, utc_now
from task_api.stores import AccessTokenStore, UserStore
from task_api.tokens import CredentialIssuer, TokenClaims, has_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """What a protected handler gets to know about its caller."""
    principal: User
    claims: TokenClaims
    access_token: AccessToken


def parse_bearer(raw_header: str | None) -> str:
    """Token from an 'Authorization: Bearer <token>' value."""
    if raw_header is None or not raw_header.strip():
        raise MissingAuth()
    parts = raw_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise MalformedAuth()
    return parts[1]


class RequestAuthorizer:
    def __init__(
        self,
        issuer: CredentialIssuer,
        tokens: AccessTokenStore,
        users: UserStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.issuer = issuer
        self.tokens = tokens
        self.users = users
        self._clock = clock

    def authorize(self, raw_header: str | None) -> AuthContext:
        token = parse_bearer(raw_header)
        try:
            claims = self.issuer.verify(token)
        except TokenError as e:
            logger.debug("Rejected bearer token: %s", type(e).__name__)
            raise InvalidToken() from e

        record = self.tokens.find_live(token, self._clock())
        if record is None:
            raise TokenRevokedOrUnknown()

        principal = self.users.find_by_id(claims.principal_id)
        if principal is None:
            raise PrincipalNotFound()
        return AuthContext(principal=principal, claims=claims, access_token=record)

    authorize_request = authorize

    @staticmethod
    def check_scope(claims: TokenClaims, required: str) -> bool:
        return has_scope(claims, required)

    def require_scope(self, context: AuthContext, required: str) -> AuthContext:
        if not has_scope(context.claims, required):
            raise InsufficientScope(f"Scope '{required}' required")
        return context
