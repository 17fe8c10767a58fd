"""
Error taxonomy for credential issuance and verification.

OAuthError subclasses are what callers see; each carries an OAuth-style error code and the
HTTP status the web layer should use. Messages are deliberately uniform where a more specific
one would tell an attacker which check failed (credentials, codes, tokens).

TokenError subclasses are raised by the credential issuer only. The request authorizer folds
all of them into InvalidToken before anything reaches a client.
"""


class OAuthError(Exception):
    error = "server_error"
    status_code = 500
    default_description = "Internal error"

    def __init__(self, description: str | None = None):
        self.description = description or self.default_description
        super().__init__(self.description)

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.description}


class InvalidRequest(OAuthError):
    error = "invalid_request"
    status_code = 400
    default_description = "Invalid request parameters"


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"
    status_code = 400
    default_description = "grant_type must be 'authorization_code'"


class InvalidGrant(OAuthError):
    error = "invalid_grant"
    status_code = 400
    default_description = "Invalid or expired authorization code"


class InvalidClient(OAuthError):
    error = "invalid_client"
    status_code = 401
    default_description = "Invalid client credentials"


class InvalidCredentials(OAuthError):
    error = "invalid_credentials"
    status_code = 401
    default_description = "Invalid credentials"


class MissingAuth(OAuthError):
    error = "invalid_request"
    status_code = 401
    default_description = "Authorization header required"


class MalformedAuth(OAuthError):
    error = "invalid_request"
    status_code = 401
    default_description = "Invalid authorization header format. Use 'Bearer <token>'"


class InvalidToken(OAuthError):
    error = "invalid_token"
    status_code = 401
    default_description = "Invalid or expired token"


class TokenRevokedOrUnknown(OAuthError):
    error = "invalid_token"
    status_code = 401
    default_description = "Token not found or expired"


class PrincipalNotFound(OAuthError):
    error = "invalid_token"
    status_code = 401
    default_description = "User not found"


class InsufficientScope(OAuthError):
    error = "insufficient_scope"
    status_code = 403
    default_description = "Insufficient permissions"


class EmailAlreadyRegistered(OAuthError):
    error = "email_taken"
    status_code = 409
    default_description = "User already exists"


class StoreUnavailable(OAuthError):
    error = "server_error"
    status_code = 503
    default_description = "Credential store unavailable"


class TokenError(Exception):
    """Base for failures while verifying a presented token."""


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class Expired(TokenError):
    pass


class InvalidSubject(TokenError):
    pass
