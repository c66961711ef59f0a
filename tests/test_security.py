"""Tests for single-use tokens."""

from __future__ import annotations

from unittest.mock import patch

from alttextgen.security import ACTION_GENERATE, TokenRegistry


class TestTokenRegistry:
    def test_verify_once(self) -> None:
        tokens = TokenRegistry()
        token = tokens.issue(ACTION_GENERATE, "alice")
        assert tokens.verify(token, ACTION_GENERATE, "alice") is True
        assert tokens.verify(token, ACTION_GENERATE, "alice") is False

    def test_unique(self) -> None:
        tokens = TokenRegistry()
        assert tokens.issue(ACTION_GENERATE, "a") != tokens.issue(ACTION_GENERATE, "a")

    def test_wrong_user_or_action(self) -> None:
        tokens = TokenRegistry()
        token = tokens.issue(ACTION_GENERATE, "alice")
        assert tokens.verify(token, ACTION_GENERATE, "bob") is False
        # A failed check still consumes the token.
        assert tokens.verify(token, ACTION_GENERATE, "alice") is False

        token = tokens.issue(ACTION_GENERATE, "alice")
        assert tokens.verify(token, "other_action", "alice") is False

    def test_empty_and_unknown(self) -> None:
        tokens = TokenRegistry()
        assert tokens.verify("", ACTION_GENERATE, "alice") is False
        assert tokens.verify("made-up", ACTION_GENERATE, "alice") is False

    def test_expiry(self) -> None:
        tokens = TokenRegistry(ttl=10)
        with patch("alttextgen.security.time.monotonic", return_value=100.0):
            token = tokens.issue(ACTION_GENERATE, "alice")
        with patch("alttextgen.security.time.monotonic", return_value=111.0):
            assert tokens.verify(token, ACTION_GENERATE, "alice") is False
