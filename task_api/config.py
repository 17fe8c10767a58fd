"""
Task API configuration. Values come from the environment once, at import.
Services receive an immutable Settings object; nothing reads these globals at request time.
"""
import logging
import os
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

# Any SQLAlchemy URL; SQLite file by default for development
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./task_api.db")

# HMAC key for access tokens. Must be overridden outside development.
JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-jwt-secret")
JWT_ISSUER = os.environ.get("JWT_ISSUER", "task-api")
JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE", "task-api-clients")

# Access token lifetime (hours in env, seconds everywhere else)
ACCESS_TOKEN_TTL_SECONDS = int(os.environ.get("JWT_EXPIRATION_HOURS", "24")) * 3600

# Authorization codes are short-lived (10 minutes)
AUTH_CODE_TTL_SECONDS = int(os.environ.get("AUTH_CODE_TTL_SECONDS", "600"))

# The single registered OAuth client
OAUTH_CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "test-client")
OAUTH_CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET", "test-secret")
OAUTH_REDIRECT_URI = os.environ.get("OAUTH_REDIRECT_URI", "http://localhost:8080/oauth/callback")

# bcrypt cost factor
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

SERVER_PORT = int(os.environ.get("SERVER_PORT", "8080"))

# Scope required by protected routes
SCOPE_TASKS_READ = "tasks:read"

_DEFAULT_SECRET = "change-me-jwt-secret"


@dataclass(frozen=True)
class Settings:
    signing_secret: str
    issuer: str = JWT_ISSUER
    audience: str = JWT_AUDIENCE
    access_token_ttl_seconds: int = ACCESS_TOKEN_TTL_SECONDS
    auth_code_ttl_seconds: int = AUTH_CODE_TTL_SECONDS
    client_id: str = OAUTH_CLIENT_ID
    client_secret: str = OAUTH_CLIENT_SECRET
    redirect_uri: str = OAUTH_REDIRECT_URI


@lru_cache
def get_settings() -> Settings:
    """Settings built from the environment. Cached: configuration is immutable after startup."""
    if JWT_SECRET == _DEFAULT_SECRET:
        logger.warning("JWT_SECRET is not set; using the development default")
    elif len(JWT_SECRET) < 32:
        logger.warning("JWT_SECRET is shorter than 32 bytes - use a stronger secret")
    return Settings(signing_secret=JWT_SECRET)
