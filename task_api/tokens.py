"""
Credential issuer: mints and verifies self-contained HS256 access tokens with PyJWT.

jwt.decode checks the signature before the payload is parsed; a token that passes here still
needs a live store record before the request authorizer accepts it.
"""
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from task_api.config import Settings
from task_api.errors import Expired, InvalidSignature, InvalidSubject, MalformedToken
from task_api.models import utc_now
from task_api.signing import ALGORITHM


@dataclass(frozen=True)
class TokenClaims:
    principal_id: uuid.UUID
    email: str
    scope: str


class CredentialIssuer:
    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utc_now):
        self._secret = settings.signing_secret
        self._issuer = settings.issuer
        self._audience = settings.audience
        self._ttl = timedelta(seconds=settings.access_token_ttl_seconds)
        self._clock = clock

    def issue(self, principal, scope: str) -> str:
        """Signed token for principal (anything with .id and .email) carrying scope."""
        token, _ = self.issue_with_expiry(principal, scope)
        return token

    def issue_with_expiry(self, principal, scope: str) -> tuple[str, datetime]:
        """
        Like issue(), also returning the expiry embedded in the token so a store record can carry
        exactly the same instant.
        """
        now = self._clock()
        iat = int(now.timestamp())
        exp = int((now + self._ttl).timestamp())
        payload = {
            "sub": str(principal.id),
            "email": principal.email or "",
            "scope": scope or "",
            "iss": self._issuer,
            "aud": self._audience,
            "exp": exp,
            "iat": iat,
            "nbf": iat,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return token, datetime.fromtimestamp(exp, timezone.utc)

    def verify(self, token: str) -> TokenClaims:
        """
        Validate a presented token and return its claims.
        Raises MalformedToken, InvalidSignature, Expired or InvalidSubject.
        """
        if len((token or "").split(".")) != 3:
            raise MalformedToken("token must have exactly three segments")

        # PyJWT compares exp/nbf/iat against wall-clock time; leeway moves that onto our clock
        skew = time.time() - self._clock().timestamp()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                leeway=skew,
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise Expired("token expired") from e
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature("signature mismatch") from e
        except jwt.exceptions.InvalidSubjectError as e:
            raise InvalidSubject("sub claim is not a string") from e
        except jwt.InvalidTokenError as e:
            raise MalformedToken(str(e)) from e

        sub = payload.get("sub")
        if not isinstance(sub, str):
            raise InvalidSubject("sub claim missing")
        try:
            principal_id = uuid.UUID(sub)
        except ValueError as e:
            raise InvalidSubject("sub claim is not a user id") from e

        email = payload.get("email")
        scope = payload.get("scope")
        return TokenClaims(
            principal_id=principal_id,
            email=email if isinstance(email, str) else "",
            scope=scope if isinstance(scope, str) else "",
        )


def has_scope(claims: TokenClaims, required: str) -> bool:
    """Exact match of required against the space-separated scope claim. No wildcards."""
    if not required or not claims.scope:
        return False
    return required in claims.scope.split()
