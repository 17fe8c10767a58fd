"""
Tests for the credential issuer: wire format, verification order, expiry, subject and scope checks.
"""
import dataclasses
import json
import uuid
from datetime import timezone
from types import SimpleNamespace

import jwt
import pytest

from task_api.errors import Expired, InvalidSignature, InvalidSubject, MalformedToken
from task_api.signing import b64url_decode, b64url_encode, sign
from task_api.tokens import CredentialIssuer, TokenClaims, has_scope


@pytest.fixture
def secret(settings):
    return settings.signing_secret


@pytest.fixture
def principal():
    return SimpleNamespace(id=uuid.uuid4(), email="user@example.com")


def _forge(payload: dict, secret: str, header: dict | None = None) -> str:
    """Build a correctly signed token around an arbitrary payload (iss/aud filled in unless given)."""
    header = header or {"alg": "HS256", "typ": "JWT"}
    payload = {"iss": "task-api", "aud": "task-api-clients", **payload}
    signing_input = (
        b64url_encode(json.dumps(header).encode("utf-8"))
        + "."
        + b64url_encode(json.dumps(payload).encode("utf-8"))
    )
    return f"{signing_input}.{sign(secret, signing_input)}"


# --- issue ---


def test_issue_verify_round_trip(issuer, principal):
    token = issuer.issue(principal, "tasks:read tasks:write")
    claims = issuer.verify(token)
    assert claims == TokenClaims(principal_id=principal.id, email="user@example.com", scope="tasks:read tasks:write")


def test_issued_token_wire_format(issuer, principal, clock, settings, secret):
    token = issuer.issue(principal, "tasks:read")
    header_b64, payload_b64, signature_b64 = token.split(".")
    assert "=" not in token
    assert json.loads(b64url_decode(header_b64)) == {"alg": "HS256", "typ": "JWT"}
    assert signature_b64 == sign(secret, f"{header_b64}.{payload_b64}")

    payload = json.loads(b64url_decode(payload_b64))
    now = int(clock().timestamp())
    assert payload["sub"] == str(principal.id)
    assert payload["email"] == "user@example.com"
    assert payload["scope"] == "tasks:read"
    assert payload["iss"] == settings.issuer
    assert payload["aud"] == settings.audience
    assert payload["iat"] == now
    assert payload["nbf"] == now
    assert payload["exp"] == now + 86400


def test_issue_with_expiry_matches_embedded_exp(issuer, principal):
    token, expires_at = issuer.issue_with_expiry(principal, "tasks:read")
    payload = json.loads(b64url_decode(token.split(".")[1]))
    assert expires_at.tzinfo == timezone.utc
    assert int(expires_at.timestamp()) == payload["exp"]


def test_issued_token_decodes_with_pyjwt(issuer, principal, settings, secret):
    token = issuer.issue(principal, "tasks:read")
    payload = jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        audience=settings.audience,
        issuer=settings.issuer,
    )
    assert payload["sub"] == str(principal.id)


# --- verify ---


def test_tampered_payload_fails_signature(issuer, principal):
    token = issuer.issue(principal, "tasks:read")
    header_b64, payload_b64, signature_b64 = token.split(".")
    for i in range(len(payload_b64)):
        replacement = "A" if payload_b64[i] != "A" else "B"
        mutated = payload_b64[:i] + replacement + payload_b64[i + 1:]
        with pytest.raises(InvalidSignature):
            issuer.verify(f"{header_b64}.{mutated}.{signature_b64}")


def test_escalated_scope_fails_signature(issuer, principal):
    token = issuer.issue(principal, "tasks:read")
    header_b64, payload_b64, signature_b64 = token.split(".")
    payload = json.loads(b64url_decode(payload_b64))
    payload["scope"] = "tasks:read tasks:write admin"
    forged = b64url_encode(json.dumps(payload).encode("utf-8"))
    with pytest.raises(InvalidSignature):
        issuer.verify(f"{header_b64}.{forged}.{signature_b64}")


def test_token_signed_with_other_secret_rejected(settings, principal, clock):
    other = CredentialIssuer(dataclasses.replace(settings, signing_secret="another-secret"), clock=clock)
    with pytest.raises(InvalidSignature):
        CredentialIssuer(settings, clock=clock).verify(other.issue(principal, "tasks:read"))


@pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.b.c.d", "...."])
def test_wrong_segment_count_is_malformed(issuer, token):
    with pytest.raises(MalformedToken):
        issuer.verify(token)


def test_signature_checked_before_payload_is_parsed(issuer, secret):
    # Payload is not JSON; with a bad signature that must surface as a signature failure
    signing_input = b64url_encode(b'{"alg":"HS256","typ":"JWT"}') + "." + b64url_encode(b"not json")
    forged = sign("another-secret-0123456789abcdefghij", signing_input)
    with pytest.raises(InvalidSignature):
        issuer.verify(f"{signing_input}.{forged}")


def test_issued_token_matches_pyjwt_encoding(issuer, principal, secret, settings):
    token = issuer.issue(principal, "tasks:read")
    payload = jwt.decode(token, secret, algorithms=["HS256"], audience=settings.audience)
    assert jwt.encode(payload, secret, algorithm="HS256") == token


@pytest.mark.parametrize("claim, value", [("iss", "someone-else"), ("aud", "other-clients")])
def test_foreign_issuer_or_audience_is_malformed(issuer, principal, clock, secret, claim, value):
    payload = {"sub": str(principal.id), "exp": int(clock().timestamp()) + 60, claim: value}
    with pytest.raises(MalformedToken):
        issuer.verify(_forge(payload, secret))


def test_non_numeric_exp_is_malformed(issuer, principal, secret):
    with pytest.raises(MalformedToken):
        issuer.verify(_forge({"sub": str(principal.id), "exp": "tomorrow"}, secret))


def test_signed_non_json_payload_is_malformed(issuer, secret):
    signing_input = b64url_encode(b'{"alg":"HS256","typ":"JWT"}') + "." + b64url_encode(b"not json")
    with pytest.raises(MalformedToken):
        issuer.verify(f"{signing_input}.{sign(secret, signing_input)}")


def test_signed_non_object_payload_is_malformed(issuer, secret):
    signing_input = b64url_encode(b'{"alg":"HS256","typ":"JWT"}') + "." + b64url_encode(b"[1, 2]")
    with pytest.raises(MalformedToken):
        issuer.verify(f"{signing_input}.{sign(secret, signing_input)}")


def test_missing_exp_is_malformed(issuer, principal, secret):
    with pytest.raises(MalformedToken):
        issuer.verify(_forge({"sub": str(principal.id), "scope": "tasks:read"}, secret))


def test_expired_token_rejected_even_with_valid_signature(issuer, principal, clock):
    token = issuer.issue(principal, "tasks:read")
    clock.advance(86400 + 1)
    with pytest.raises(Expired):
        issuer.verify(token)


def test_token_valid_until_expiry(issuer, principal, clock):
    token = issuer.issue(principal, "tasks:read")
    clock.advance(86400 - 1)
    assert issuer.verify(token).principal_id == principal.id


@pytest.mark.parametrize("sub", [None, 42, "", "not-a-uuid"])
def test_bad_subject_rejected(issuer, clock, secret, sub):
    payload = {"exp": int(clock().timestamp()) + 60, "scope": "tasks:read"}
    if sub is not None:
        payload["sub"] = sub
    with pytest.raises(InvalidSubject):
        issuer.verify(_forge(payload, secret))


def test_non_string_scope_and_email_become_empty(issuer, clock, principal, secret):
    payload = {"exp": int(clock().timestamp()) + 60, "sub": str(principal.id), "scope": ["a"], "email": 7}
    claims = issuer.verify(_forge(payload, secret))
    assert claims.scope == ""
    assert claims.email == ""


# --- has_scope ---


def _claims(scope: str) -> TokenClaims:
    return TokenClaims(principal_id=uuid.uuid4(), email="u@example.com", scope=scope)


def test_has_scope_exact_match():
    claims = _claims("tasks:read tasks:write")
    assert has_scope(claims, "tasks:read") is True
    assert has_scope(claims, "tasks:write") is True
    assert has_scope(claims, "tasks:delete") is False


def test_has_scope_no_prefix_or_wildcard_matching():
    assert has_scope(_claims("tasks:read"), "tasks") is False
    assert has_scope(_claims("tasks:*"), "tasks:read") is False
    assert has_scope(_claims("tasks:readwrite"), "tasks:read") is False


def test_has_scope_empty_scope_is_false():
    assert has_scope(_claims(""), "tasks:read") is False


def test_has_scope_ignores_repeated_spaces():
    claims = _claims("tasks:read  tasks:write ")
    assert has_scope(claims, "tasks:write") is True
    assert has_scope(claims, "") is False
