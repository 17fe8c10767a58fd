"""
Authorization endpoint and login flow.
GET /oauth/authorize: validate params, show login. POST /oauth/login: authenticate, issue code, redirect.
GET /oauth/callback: demo landing page for the registered redirect URI.
"""
import html
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from task_api.dependencies import get_oauth_manager
from task_api.oauth import OAuthManager

router = APIRouter(prefix="/oauth")


@router.get("/authorize", response_class=HTMLResponse)
def authorize_get(
    manager: Annotated[OAuthManager, Depends(get_oauth_manager)],
    response_type: str | None = None,
    client_id: str | None = None,
    redirect_uri: str | None = None,
    scope: str | None = None,
    state: str | None = None,
):
    """
    OAuth2 authorization endpoint.
    Validates response_type=code and exact client_id / redirect_uri match; renders the login form.
    """
    prompt = manager.begin(response_type, client_id, redirect_uri, scope, state)

    # Request params ride along as hidden fields (values escaped for XSS)
    def e(s: str) -> str:
        return html.escape(s or "")

    body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Log in</title></head>
<body>
  <h1>Log in</h1>
  <p><strong>{e(prompt.client_id)}</strong> requests: {e(prompt.scope) or "(no scope)"}</p>
  <form method="post" action="/oauth/login">
    <input type="hidden" name="client_id" value="{e(prompt.client_id)}"/>
    <input type="hidden" name="redirect_uri" value="{e(prompt.redirect_uri)}"/>
    <input type="hidden" name="scope" value="{e(prompt.scope)}"/>
    <input type="hidden" name="state" value="{e(prompt.state)}"/>
    <label>Email: <input type="email" name="email" required/></label><br/>
    <label>Password: <input type="password" name="password" required/></label><br/>
    <button type="submit">Log in</button>
  </form>
</body>
</html>"""
    return HTMLResponse(body)


@router.post("/login")
def login(
    manager: Annotated[OAuthManager, Depends(get_oauth_manager)],
    email: str = Form(""),
    password: str = Form(""),
    client_id: str = Form(""),
    redirect_uri: str = Form(""),
    scope: str = Form(""),
    state: str = Form(""),
):
    """On success redirect to redirect_uri?code=...&state=...; errors are JSON."""
    location = manager.login(email, password, client_id, redirect_uri, scope, state or None)
    return RedirectResponse(url=location, status_code=302)


@router.get("/callback")
def callback(code: str | None = None, state: str | None = None):
    """Landing page for the registered redirect URI: echoes the code for the next step."""
    if not code:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_request", "error_description": "Authorization code is required"},
        )
    return {
        "message": "Authorization successful",
        "code": code,
        "state": state,
        "next_step": "Exchange this code for an access token using POST /oauth/token",
    }
