"""
Unit Tests - Security
JWT access tokens.
"""
from datetime import timedelta

from famhub.core.security import create_access_token, decode_token, verify_token


class TestAccessTokens:

    def test_roundtrip_subject(self):
        token = create_access_token(subject=42)
        assert verify_token(token) == 42

    def test_additional_claims(self):
        token = create_access_token(subject=1, additional_claims={"role": "admin"})
        assert decode_token(token)["role"] == "admin"

    def test_expired_token_is_rejected(self):
        token = create_access_token(subject=1, expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_wrong_type_is_rejected(self):
        token = create_access_token(subject=1, additional_claims={"type": "refresh"})
        assert verify_token(token, token_type="access") is None

    def test_garbage_token(self):
        assert decode_token("not-a-jwt") is None
        assert verify_token("not-a-jwt") is None

    def test_non_numeric_subject_is_rejected(self):
        token = create_access_token(subject="service-account")
        assert decode_token(token)["sub"] == "service-account"
        assert verify_token(token) is None
