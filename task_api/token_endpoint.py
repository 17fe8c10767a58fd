"""
Token endpoint (POST /oauth/token) and expired-credential cleanup (POST /oauth/cleanup).
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Form

from task_api.dependencies import get_oauth_manager
from task_api.oauth import OAuthManager

router = APIRouter(prefix="/oauth")


@router.post("/token")
def token(
    manager: Annotated[OAuthManager, Depends(get_oauth_manager)],
    grant_type: str = Form(...),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
):
    """authorization_code: exchange a single-use code for a Bearer access token."""
    response = manager.exchange_token(grant_type, code, redirect_uri, client_id, client_secret)
    return response.as_dict()


@router.post("/cleanup")
def cleanup(manager: Annotated[OAuthManager, Depends(get_oauth_manager)]):
    """Remove expired authorization codes and access tokens. Safe to call repeatedly."""
    result = manager.cleanup()
    return {
        "message": "Expired tokens cleaned up successfully",
        "authorization_codes_removed": result.authorization_codes,
        "access_tokens_removed": result.access_tokens,
    }
