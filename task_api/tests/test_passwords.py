"""
Tests for bcrypt password hashing.
"""
from task_api.passwords import hash_password, verify_password


def test_hash_and_verify():
    hashed = hash_password("secret123", rounds=4)
    assert hashed != "secret123"
    assert hashed.startswith("$2")
    assert verify_password("secret123", hashed) is True
    assert verify_password("secret124", hashed) is False


def test_hash_is_salted():
    assert hash_password("secret123", rounds=4) != hash_password("secret123", rounds=4)


def test_cost_factor_is_encoded_in_hash():
    assert hash_password("secret123", rounds=5).split("$")[2] == "05"


def test_malformed_or_missing_hash_is_a_mismatch():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False
    assert verify_password("secret123", "") is False
    assert verify_password("secret123", None) is False


def test_password_longer_than_bcrypt_limit():
    long_password = "p" * 100
    hashed = hash_password(long_password, rounds=4)
    assert verify_password(long_password, hashed) is True
