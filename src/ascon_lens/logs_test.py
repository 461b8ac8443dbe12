import importlib
import logging

import pytest
import structlog

import ascon_lens.logs
from ascon_lens.aead import decrypt, encrypt
from ascon_lens.errors import TagInvalid
from ascon_lens.logs import LOGGER_NAME, configure_logging

KEY = bytes(range(16))
NONCE = bytes(range(16))


class TestLogging:
    """Test suite for logging setup"""

    def teardown_method(self):
        structlog.reset_defaults()
        logging.getLogger(LOGGER_NAME).setLevel(logging.NOTSET)

    def test_import_leaves_structlog_unconfigured(self):
        """Test importing the library does not touch global structlog settings"""
        structlog.reset_defaults()
        importlib.reload(ascon_lens.logs)
        assert not structlog.is_configured()

    def test_configure_sets_level(self):
        """Test configure_logging sets the core logger level"""
        configure_logging("DEBUG")
        assert structlog.is_configured()
        assert logging.getLogger(LOGGER_NAME).level == logging.DEBUG

    def test_invalid_level(self):
        """Test unknown level names are rejected"""
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging("LOUD")

    def test_tag_failure_is_logged_without_secrets(self, caplog):
        """Test a failed tag check logs a warning that carries no key or plaintext"""
        sealed = encrypt(b"Attack at dawn!!", KEY, NONCE)
        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            with pytest.raises(TagInvalid):
                decrypt(sealed.ciphertext, bytes(16), KEY, NONCE)

        assert any(r.name == LOGGER_NAME and r.levelno == logging.WARNING for r in caplog.records)
        assert "tag verification failed" in caplog.text
        assert KEY.hex() not in caplog.text
        assert "Attack" not in caplog.text

    def test_debug_events_hidden_at_warning(self, caplog):
        """Test debug events from the core are dropped at the default level"""
        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            encrypt(b"abc", KEY, NONCE)
        assert not [r for r in caplog.records if r.name == LOGGER_NAME]
