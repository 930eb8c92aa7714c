"""Unit tests for authentication and secret helpers."""

from uuid import uuid4

import pytest

from accessgate.config import settings
from accessgate.core.security import (
    create_access_token,
    generate_invitation_token,
    hash_password,
    verify_access_token,
    verify_password,
    verify_server_secret,
)


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password(self):
        password = "securepassword123"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$argon2")

    def test_verify_password_correct(self):
        hashed = hash_password("securepassword123")
        assert verify_password("securepassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("securepassword123")
        assert verify_password("wrongpassword", hashed) is False


class TestAccessTokens:
    def test_round_trip(self):
        user_id = uuid4()
        payload = verify_access_token(create_access_token(user_id))

        assert payload["sub"] == str(user_id)
        assert payload["type"] == "access"

    def test_invalid_token(self):
        with pytest.raises(ValueError, match="Invalid token"):
            verify_access_token("not-a-token")

    def test_wrong_token_type(self):
        token = create_access_token(uuid4(), {"type": "refresh"})
        with pytest.raises(ValueError, match="Invalid token type"):
            verify_access_token(token)


class TestSecrets:
    def test_invitation_tokens_are_unique_hex(self):
        tokens = {generate_invitation_token() for _ in range(20)}

        assert len(tokens) == 20
        assert all(len(token) == 40 for token in tokens)
        int(tokens.pop(), 16)

    def test_server_secret(self):
        assert verify_server_secret(settings.SERVER_SECRET) is True
        assert verify_server_secret("wrong") is False
        assert verify_server_secret(None) is False
        assert verify_server_secret("") is False
