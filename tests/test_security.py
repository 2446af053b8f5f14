"""Tests for API key checks and the hash-key command."""

from devloop.__main__ import main
from devloop.core.config import Settings
from devloop.core.crypto import hash_api_key, verify_api_key
from devloop.core.security import is_authorized


class TestIsAuthorized:
    """Tests for is_authorized."""

    def test_open_when_no_key_configured(self):
        """Without a key every caller is accepted."""
        assert is_authorized(Settings(security={}), None)

    def test_plain_key(self):
        """The plain key must match exactly."""
        settings = Settings(security={"api_key": "abc"})

        assert is_authorized(settings, "abc")
        assert not is_authorized(settings, "abd")
        assert not is_authorized(settings, None)

    def test_hashed_key(self):
        """A bcrypt hash verifies the original key."""
        settings = Settings(security={"api_key_hash": hash_api_key("abc")})

        assert is_authorized(settings, "abc")
        assert not is_authorized(settings, "nope")


class TestHashKeyCommand:
    """Tests for ``python -m devloop hash-key``."""

    def test_prints_verifiable_hash(self, capsys):
        """The printed hash verifies against the given key."""
        assert main(["hash-key", "s3cret"]) == 0

        printed = capsys.readouterr().out.strip()
        assert verify_api_key("s3cret", printed)
        assert not verify_api_key("other", printed)
