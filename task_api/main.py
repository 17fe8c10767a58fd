"""
Task API: OAuth2 authorization-code flow with HS256-signed bearer tokens.
Port 8080 by default (SERVER_PORT).
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from task_api.accounts import router as accounts_router
from task_api.authorize import router as authorize_router
from task_api.config import SERVER_PORT, get_settings
from task_api.database import init_db
from task_api.errors import OAuthError
from task_api.token_endpoint import router as token_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and load settings on startup."""
    init_db()
    get_settings()
    yield


app = FastAPI(title="Task API", version="1.0.0", lifespan=lifespan)
app.include_router(authorize_router, tags=["oauth"])
app.include_router(token_router, tags=["oauth"])
app.include_router(accounts_router, tags=["accounts"])


@app.exception_handler(OAuthError)
async def oauth_error_handler(request: Request, exc: OAuthError):
    """Render core errors like HTTPException(detail={...}); 401s advertise the Bearer scheme."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()}, headers=headers)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "task_api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "task_api.main:app",
        host="127.0.0.1",
        port=SERVER_PORT,
        reload=True,
    )
