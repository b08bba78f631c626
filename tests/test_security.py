import jwt
import pytest

from auth import security


def test_hash_and_verify_password():
    hashed = security.hash_password("hunter2")
    assert hashed != "hunter2"
    assert security.verify_password("hunter2", hashed)
    assert not security.verify_password("hunter3", hashed)


def test_hashes_are_salted():
    assert security.hash_password("same") != security.hash_password("same")


def test_verify_password_tolerates_garbage_hash():
    assert security.verify_password("pw", "not-a-bcrypt-hash") is False
    assert security.verify_password("", "") is False


def test_hash_password_rejects_empty():
    with pytest.raises(security.AuthSecurityError):
        security.hash_password("")


def test_access_token_round_trip():
    token = security.build_access_token(user_id=7, username="alice", email="a@example.com")
    claims = security.decode_access_token(token)
    assert claims["id"] == 7
    assert claims["sub"] == "7"
    assert claims["username"] == "alice"
    assert claims["email"] == "a@example.com"
    assert claims["exp"] - claims["iat"] == 60 * 60


def test_access_token_lifetime_from_env(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", "5")
    claims = security.decode_access_token(
        security.build_access_token(user_id=1, username=None, email="a@example.com")
    )
    assert claims["exp"] - claims["iat"] == 5 * 60


def test_decode_rejects_other_secret(monkeypatch):
    token = security.build_access_token(user_id=1, username="a", email="a@example.com")
    monkeypatch.setenv("JWT_SECRET", "rotated")
    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token(token)


def test_decode_rejects_non_access_tokens():
    token = jwt.encode({"id": 1, "type": "refresh"}, security.jwt_secret(), algorithm="HS256")
    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token(token)


def test_decode_requires_user_id():
    token = jwt.encode({"type": "access"}, security.jwt_secret(), algorithm="HS256")
    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token(token)


def test_refresh_token_hash_is_stable():
    raw = security.build_refresh_token()
    assert len(raw) >= 20
    assert security.hash_refresh_token(raw) == security.hash_refresh_token(raw)
    assert security.hash_refresh_token(raw) != raw


def test_token_header_is_configurable(monkeypatch):
    assert security.auth_token_header() == "x-auth-token"
    monkeypatch.setenv("AUTH_TOKEN_HEADER", "X-Token")
    assert security.auth_token_header() == "x-token"


def test_hash_password_rejects_more_than_72_bytes():
    with pytest.raises(security.AuthSecurityError):
        security.hash_password("p" * 73)
    assert security.verify_password("p" * 73, security.hash_password("p" * 72)) is False
