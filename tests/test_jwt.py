"""
Tests for session tokens

conftest.py imports the app, which initializes signing from HUB_JWT_SECRET.
"""

import os

import pytest

from userland.auth import (
    ACCESS,
    REFRESH,
    generate_access_token,
    generate_refresh_token,
    init_jwt,
    is_initialized,
    token_subject,
    verify_token,
)


class TestTokens:
    def test_initialized_from_environment(self):
        assert is_initialized()
        init_jwt(os.environ["HUB_JWT_SECRET"])  # same secret again is fine

    def test_different_secret_rejected(self):
        with pytest.raises(ValueError):
            init_jwt("some-other-secret")

    def test_subject_round_trip(self):
        assert token_subject(generate_access_token("u1"), ACCESS) == "u1"
        assert token_subject(generate_refresh_token("u1"), REFRESH) == "u1"

    def test_type_is_enforced(self):
        refresh = generate_refresh_token("u1")
        assert verify_token(refresh, expected_type=ACCESS) is None
        assert token_subject(refresh, ACCESS) is None

    def test_garbage_and_missing(self):
        assert verify_token("not.a.token") is None
        assert token_subject(None, ACCESS) is None
        assert token_subject("", REFRESH) is None
