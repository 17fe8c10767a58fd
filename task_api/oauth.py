"""
Authorization-code flow: authorize request validation, login + code issuance, code exchange, cleanup.

Per attempt: REQUESTED -> AUTHENTICATED -> CODE_ISSUED -> EXCHANGED, with a failure exit at each step.
All state lives in the stores; the manager itself is request-scoped and holds nothing shared.
"""
import hmac
import logging
import secrets
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Callable
from urllib.parse import urlencode

from task_api.audit import (
    EVENT_CLEANUP,
    EVENT_CODE_ISSUED,
    EVENT_LOGIN_FAIL,
    EVENT_LOGIN_OK,
    EVENT_TOKEN_EXCHANGE_FAIL,
    EVENT_TOKEN_ISSUED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
)
from task_api.config import Settings
from task_api.errors import (
    EmailAlreadyRegistered,
    InvalidClient,
    InvalidCredentials,
    InvalidGrant,
    InvalidRequest,
    UnsupportedGrantType,
)
from task_api.models import AccessToken, AuthorizationCode, as_utc, utc_now
from task_api.passwords import hash_password, verify_password
from task_api.stores import AccessTokenStore, AuthorizationCodeStore, UserStore
from task_api.tokens import CredentialIssuer

logger = logging.getLogger(__name__)

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class LoginPrompt:
    """Parameters carried unmodified into the credential-collection step."""
    client_id: str
    redirect_uri: str
    scope: str
    state: str


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    token_type: str
    expires_in: int
    scope: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PrincipalView:
    id: uuid.UUID
    email: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> "PrincipalView":
        return cls(id=user.id, email=user.email, created_at=user.created_at, updated_at=user.updated_at)

    def as_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "created_at": as_utc(self.created_at).isoformat() if self.created_at else None,
            "updated_at": as_utc(self.updated_at).isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class CleanupResult:
    authorization_codes: int
    access_tokens: int


def _no_audit(event_type: str, **fields) -> None:
    pass


class OAuthManager:
    def __init__(
        self,
        settings: Settings,
        users: UserStore,
        codes: AuthorizationCodeStore,
        tokens: AccessTokenStore,
        issuer: CredentialIssuer,
        clock: Callable[[], datetime] = utc_now,
        audit: Callable[..., None] | None = None,
    ):
        self.settings = settings
        self.users = users
        self.codes = codes
        self.tokens = tokens
        self.issuer = issuer
        self._clock = clock
        self._audit = audit or _no_audit

    # --- authorize ---

    def begin(
        self,
        response_type: str | None,
        client_id: str | None,
        redirect_uri: str | None,
        scope: str | None = None,
        state: str | None = None,
    ) -> LoginPrompt:
        """Validate an authorization request. Mismatches are reported, never corrected."""
        if response_type != "code":
            raise InvalidRequest("response_type must be 'code'")
        self._check_client(client_id, redirect_uri)
        return LoginPrompt(client_id=client_id, redirect_uri=redirect_uri, scope=scope or "", state=state or "")

    def begin_authorization(self, params: dict) -> LoginPrompt:
        return self.begin(
            params.get("response_type"),
            params.get("client_id"),
            params.get("redirect_uri"),
            params.get("scope"),
            params.get("state"),
        )

    def _check_client(self, client_id: str | None, redirect_uri: str | None) -> None:
        if client_id != self.settings.client_id:
            raise InvalidRequest("Invalid client_id")
        if redirect_uri != self.settings.redirect_uri:
            raise InvalidRequest("Invalid redirect_uri")

    # --- login ---

    def authenticate(self, email: str, password: str):
        """Same error whether the email is unknown or the password is wrong."""
        user = self.users.find_by_email((email or "").strip())
        if user is None or not verify_password(password or "", user.password_hash):
            raise InvalidCredentials()
        return user

    def authenticate_and_issue_code(self, email: str, password: str, client_id: str, scope: str) -> AuthorizationCode:
        try:
            user = self.authenticate(email, password)
        except InvalidCredentials:
            self._audit(EVENT_LOGIN_FAIL, client_id=client_id, user_id=None, outcome=OUTCOME_FAIL)
            raise
        self._audit(EVENT_LOGIN_OK, client_id=client_id, user_id=user.id, outcome=OUTCOME_SUCCESS)

        # Scope is opaque: stored as requested, not checked against a registry
        record = self.codes.create(
            AuthorizationCode(
                code=secrets.token_urlsafe(32),
                user_id=user.id,
                client_id=client_id,
                scope=scope or "",
                expires_at=self._clock() + timedelta(seconds=self.settings.auth_code_ttl_seconds),
            )
        )
        logger.info("Authorization code issued for client_id=%s sub=%s", client_id, user.id)
        self._audit(EVENT_CODE_ISSUED, client_id=client_id, user_id=user.id, outcome=OUTCOME_SUCCESS)
        return record

    def login(
        self,
        email: str,
        password: str,
        client_id: str,
        redirect_uri: str,
        scope: str = "",
        state: str | None = None,
    ) -> str:
        """Authenticate and issue a code; return the client redirect URL carrying code (and state)."""
        if not email or not password:
            raise InvalidRequest("Email and password are required")
        self._check_client(client_id, redirect_uri)
        record = self.authenticate_and_issue_code(email, password, client_id, scope)
        params = {"code": record.code}
        if state:
            params["state"] = state
        return f"{redirect_uri}?{urlencode(params)}"

    # --- token ---

    def exchange(self, code: str, client_id: str, client_secret: str) -> TokenResponse:
        """
        Trade a live authorization code for an access token.
        Unknown, expired and already-used codes all fail with the same InvalidGrant.
        """
        now = self._clock()
        record = self.codes.find_live(code or "", client_id or "", now)
        if record is None:
            self._audit(EVENT_TOKEN_EXCHANGE_FAIL, client_id=client_id, user_id=None, outcome=OUTCOME_FAIL)
            raise InvalidGrant()

        if not hmac.compare_digest((client_secret or "").encode("utf-8"), self.settings.client_secret.encode("utf-8")):
            self._audit(EVENT_TOKEN_EXCHANGE_FAIL, client_id=client_id, user_id=None, outcome=OUTCOME_FAIL)
            raise InvalidClient("Invalid client secret")

        # Read what we need before the row goes away
        user_id, scope = record.user_id, record.scope or ""
        if not self.codes.delete(record):
            # A concurrent exchange consumed it first
            self._audit(EVENT_TOKEN_EXCHANGE_FAIL, client_id=client_id, user_id=None, outcome=OUTCOME_FAIL)
            raise InvalidGrant()

        user = self.users.find_by_id(user_id)
        if user is None:
            self._audit(EVENT_TOKEN_EXCHANGE_FAIL, client_id=client_id, user_id=user_id, outcome=OUTCOME_FAIL)
            raise InvalidGrant()

        token, expires_at = self.issuer.issue_with_expiry(user, scope)
        self.tokens.create(
            AccessToken(
                token=token,
                user_id=user_id,
                client_id=client_id,
                scope=scope,
                expires_at=expires_at,
            )
        )
        logger.info("Access token issued for client_id=%s sub=%s", client_id, user_id)
        self._audit(EVENT_TOKEN_ISSUED, client_id=client_id, user_id=user_id, outcome=OUTCOME_SUCCESS)
        return TokenResponse(
            access_token=token,
            token_type="Bearer",
            expires_in=self.settings.access_token_ttl_seconds,
            scope=scope,
        )

    def exchange_token(
        self,
        grant_type: str,
        code: str | None,
        redirect_uri: str | None,
        client_id: str | None,
        client_secret: str | None,
    ) -> TokenResponse:
        if grant_type != GRANT_TYPE_AUTHORIZATION_CODE:
            raise UnsupportedGrantType()
        if not code or not client_id:
            raise InvalidRequest("code and client_id are required")
        if redirect_uri and redirect_uri != self.settings.redirect_uri:
            raise InvalidGrant()
        return self.exchange(code, client_id, client_secret or "")

    # --- registration ---

    def register(self, email: str, password: str) -> PrincipalView:
        email = (email or "").strip()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise InvalidRequest("A valid email is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise InvalidRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.users.find_by_email(email) is not None:
            raise EmailAlreadyRegistered()
        user = self.users.create(email, hash_password(password))
        logger.info("Registered user id=%s", user.id)
        return PrincipalView.from_user(user)

    # --- maintenance ---

    def cleanup_expired(self) -> CleanupResult:
        now = self._clock()
        result = CleanupResult(
            authorization_codes=self.codes.delete_expired(now),
            access_tokens=self.tokens.delete_expired(now),
        )
        logger.info(
            "Cleanup removed %d authorization code(s), %d access token(s)",
            result.authorization_codes,
            result.access_tokens,
        )
        self._audit(EVENT_CLEANUP, client_id=None, user_id=None, outcome=OUTCOME_SUCCESS)
        return result

    cleanup = cleanup_expired
