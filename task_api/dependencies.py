"""
FastAPI dependencies wiring settings, stores and services per request.
"""
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from task_api.audit import AuditTrail
from task_api.config import Settings, get_settings
from task_api.database import get_db
from task_api.middleware import AuthContext, RequestAuthorizer
from task_api.oauth import OAuthManager
from task_api.stores import AccessTokenStore, AuthorizationCodeStore, UserStore
from task_api.tokens import CredentialIssuer


def get_issuer(settings: Annotated[Settings, Depends(get_settings)]) -> CredentialIssuer:
    return CredentialIssuer(settings)


def get_oauth_manager(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    issuer: Annotated[CredentialIssuer, Depends(get_issuer)],
) -> OAuthManager:
    return OAuthManager(
        settings,
        users=UserStore(db),
        codes=AuthorizationCodeStore(db),
        tokens=AccessTokenStore(db),
        issuer=issuer,
        audit=AuditTrail(db),
    )


def get_authorizer(
    db: Annotated[Session, Depends(get_db)],
    issuer: Annotated[CredentialIssuer, Depends(get_issuer)],
) -> RequestAuthorizer:
    return RequestAuthorizer(issuer, AccessTokenStore(db), UserStore(db))


def get_auth_context(
    request: Request,
    authorizer: Annotated[RequestAuthorizer, Depends(get_authorizer)],
) -> AuthContext:
    """Dependency: valid Bearer token with a live store record -> AuthContext."""
    return authorizer.authorize(request.headers.get("Authorization"))


def require_scope(required: str):
    """Dependency factory: require the given scope in the access token."""

    def _check(
        context: Annotated[AuthContext, Depends(get_auth_context)],
        authorizer: Annotated[RequestAuthorizer, Depends(get_authorizer)],
    ) -> AuthContext:
        return authorizer.require_scope(context, required)

    return Depends(_check)
