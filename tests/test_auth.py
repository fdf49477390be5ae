"""
tests/test_auth.py — JWT Secret Validation & Bearer Identity
=============================================================
The API must refuse to start when JWT_SECRET is missing, blank, too short,
or a known weak default; at request time only well-formed, correctly signed
tokens carrying a subject are accepted.
"""

from __future__ import annotations

import os
import time
from unittest.mock import patch

import jwt
import pytest
from fastapi import HTTPException

from studyhall.api import deps


class TestJWTSecretValidation:
    @pytest.mark.parametrize("value", [None, ""])
    def test_rejects_missing_secret(self, value):
        env = {k: v for k, v in os.environ.items() if k != "JWT_SECRET"}
        if value is not None:
            env["JWT_SECRET"] = value
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    @pytest.mark.parametrize("weak", ["studyhall-dev-secret-change-me", "change-me", "secret", "dev"])
    def test_rejects_known_weak_defaults(self, weak):
        with patch.dict(os.environ, {"JWT_SECRET": weak}):
            with pytest.raises(RuntimeError, match="known weak default"):
                deps._load_jwt_secret()

    def test_rejects_short_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": "tooshort"}):
            with pytest.raises(RuntimeError, match="too short"):
                deps._load_jwt_secret()

    def test_accepts_strong_secret(self):
        good = "s" * 64
        with patch.dict(os.environ, {"JWT_SECRET": good}):
            assert deps._load_jwt_secret() == good


class TestBearerIdentity:
    def _header(self, payload: dict, secret: str | None = None, algorithm: str = deps.JWT_ALGORITHM) -> str:
        return "Bearer " + jwt.encode(payload, secret or deps.JWT_SECRET, algorithm=algorithm)

    def test_valid_token_returns_payload(self):
        payload = deps.get_current_user(self._header({"sub": "u1", "username": "Ana"}))
        assert payload["sub"] == "u1"

    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer not-a-jwt"])
    def test_malformed_header(self, header):
        with pytest.raises(HTTPException) as exc:
            deps.get_current_user(header)
        assert exc.value.status_code == 401

    def test_wrong_signature(self):
        with pytest.raises(HTTPException) as exc:
            deps.get_current_user(self._header({"sub": "u1"}, secret="x" * 64))
        assert exc.value.status_code == 401

    def test_expired_token(self):
        with pytest.raises(HTTPException):
            deps.get_current_user(self._header({"sub": "u1", "exp": int(time.time()) - 60}))

    def test_token_without_subject(self):
        with pytest.raises(HTTPException, match="subject"):
            deps.get_current_user(self._header({"username": "nobody"}))

    def test_actor_is_created_from_claims(self, db_engine):
        profile = deps.get_actor({"sub": "claim-user", "username": "Kofi"}, db_engine)
        assert profile.user_id == "claim-user"
        assert profile.username == "Kofi"
