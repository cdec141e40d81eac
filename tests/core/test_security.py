"""
Unit tests for password hashing and JWT helpers.
"""

from vulcan.core.security import (
    TOKEN_TYPE_2FA_CHALLENGE,
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_challenge_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_verifies(self):
        hashed = hash_password("correct horse battery staple")
        assert hashed != "correct horse battery staple"
        assert verify_password("correct horse battery staple", hashed) is True

    def test_wrong_password_fails(self):
        hashed = hash_password("secret-one")
        assert verify_password("secret-two", hashed) is False

    def test_malformed_hash_fails(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_access_token_round_trip(self):
        token = create_access_token("user-1", {"role": "admin"})
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["type"] == TOKEN_TYPE_ACCESS
        assert payload["role"] == "admin"

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token("user-1"))
        assert payload["type"] == TOKEN_TYPE_REFRESH

    def test_challenge_token_carries_method(self):
        payload = decode_token(create_challenge_token("user-1", "totp"))
        assert payload["type"] == TOKEN_TYPE_2FA_CHALLENGE
        assert payload["method"] == "totp"

    def test_invalid_token_returns_none(self):
        assert decode_token("not.a.jwt") is None
