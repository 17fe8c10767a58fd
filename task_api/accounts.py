"""
User registration and the caller's own identity (GET /me, requires tasks:read).
"""
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from task_api.config import SCOPE_TASKS_READ
from task_api.dependencies import get_oauth_manager, require_scope
from task_api.middleware import AuthContext
from task_api.oauth import OAuthManager, PrincipalView

router = APIRouter()

RequireTasksRead = require_scope(SCOPE_TASKS_READ)


class RegisterRequest(BaseModel):
    email: str
    password: str


@router.post("/oauth/register", status_code=201)
def register(body: RegisterRequest, manager: Annotated[OAuthManager, Depends(get_oauth_manager)]):
    """Create a user account. The password hash never leaves the server."""
    return manager.register(body.email, body.password).as_dict()


@router.get("/me")
def me(context: AuthContext = RequireTasksRead):
    """Identity bound to the presented token."""
    view = PrincipalView.from_user(context.principal).as_dict()
    view["scope"] = context.claims.scope
    return view
