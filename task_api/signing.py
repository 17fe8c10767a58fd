"""
HS256 signing primitive: PyJWT's HMAC-SHA256 algorithm over a compact "header.payload" string,
signatures base64url-encoded without padding. CredentialIssuer reaches the same algorithm through
jwt.encode / jwt.decode; these helpers expose it for callers that work on raw segments.
"""
from jwt.algorithms import HMACAlgorithm
from jwt.utils import base64url_decode, base64url_encode

ALGORITHM = "HS256"

_hs256 = HMACAlgorithm(HMACAlgorithm.SHA256)


def b64url_encode(data: bytes) -> str:
    return base64url_encode(data).decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Raises ValueError on anything that is not base64url."""
    return base64url_decode(segment)


def sign(secret: str, signing_input: str) -> str:
    """HMAC-SHA256 of signing_input under secret, base64url-encoded without padding."""
    key = _hs256.prepare_key(secret)
    return b64url_encode(_hs256.sign(signing_input.encode("utf-8"), key))


def verify_signature(secret: str, signing_input: str, signature: str) -> bool:
    """Constant-time comparison against the recomputed signature."""
    try:
        raw = b64url_decode(signature)
    except ValueError:
        return False
    return _hs256.verify(signing_input.encode("utf-8"), _hs256.prepare_key(secret), raw)
