"""
Test credential redaction in logs and the logging configuration.

Private keys, API secrets and passphrases must never reach log output.
"""

import logging
import logging.config
from io import StringIO

import pytest

from clob_client.auth.credentials import ApiCredentials, Signer
from clob_client.logging_config import LOGGER_NAMESPACE, build_logging_config, get_logger
from clob_client.utils.structured_logging import CredentialRedactionFilter

TEST_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


@pytest.fixture
def captured():
    """Logger with the redaction filter writing to a StringIO."""
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.DEBUG)
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(CredentialRedactionFilter())
    logger.addHandler(handler)
    yield logger, stream
    logger.removeHandler(handler)


class TestCredentialRedactionFilter:
    """Redaction of log records."""

    def test_private_key_redacted(self, captured):
        logger, stream = captured
        logger.info(f"Processing wallet with key: {TEST_KEY}")
        output = stream.getvalue()
        assert TEST_KEY not in output
        assert "0x[REDACTED]" in output

    def test_private_key_in_args_redacted(self, captured):
        logger, stream = captured
        logger.info("key=%s", TEST_KEY)
        assert TEST_KEY not in stream.getvalue()

    def test_secret_assignment_redacted(self, captured):
        logger, stream = captured
        logger.info("passphrase=hunter2hunter2 secret: 'c2VjcmV0c2VjcmV0'")
        output = stream.getvalue()
        assert "hunter2hunter2" not in output
        assert "c2VjcmV0c2VjcmV0" not in output
        assert "[REDACTED]" in output

    def test_long_base64_redacted(self, captured):
        logger, stream = captured
        secret = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="
        logger.info(f"loaded {secret}")
        output = stream.getvalue()
        assert secret not in output
        assert "...[REDACTED]" in output

    def test_signature_and_token_id_kept(self, captured):
        logger, stream = captured
        signature = "0x" + "ab" * 65
        token_id = "71321045679252212594626385532706912750332728571942532289631379312455583992563"
        logger.info(f"sig {signature} token {token_id}")
        output = stream.getvalue()
        assert signature in output
        assert token_id in output

    def test_record_never_dropped(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "plain message", None, None)
        assert CredentialRedactionFilter().filter(record) is True
        assert record.msg == "plain message"

    def test_exception_text_redacted(self):
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, None)
        record.exc_text = f"ValueError: bad key {TEST_KEY}"
        CredentialRedactionFilter().filter(record)
        assert TEST_KEY not in record.exc_text


class TestReprSafety:
    """Objects that hold secrets keep them out of repr."""

    def test_signer(self):
        assert TEST_KEY[2:] not in repr(Signer(TEST_KEY))

    def test_credentials(self):
        creds = ApiCredentials("key", "c2VjcmV0c2VjcmV0", "passphrase-value")
        text = repr(creds)
        assert "c2VjcmV0c2VjcmV0" not in text
        assert "passphrase-value" not in text


class TestLoggingConfig:
    """dictConfig builder."""

    def test_default(self):
        config = build_logging_config()
        client_logger = config["loggers"][LOGGER_NAMESPACE]
        assert client_logger["level"] == "INFO"
        assert client_logger["handlers"] == ["console"]
        assert "redact_credentials" in config["handlers"]["console"]["filters"]

    def test_level_and_file(self, tmp_path):
        config = build_logging_config(level="debug", log_file=str(tmp_path / "clob.log"))
        client_logger = config["loggers"][LOGGER_NAMESPACE]
        assert client_logger["level"] == "DEBUG"
        assert client_logger["handlers"] == ["console", "file"]
        assert config["handlers"]["file"]["filters"] == ["redact_credentials"]

    def test_json_format(self):
        config = build_logging_config(json_format=True)
        assert all(h["formatter"] == "json" for h in config["handlers"].values())

    def test_default_not_mutated(self):
        build_logging_config(level="ERROR", log_file="x.log", json_format=True)
        assert build_logging_config()["loggers"][LOGGER_NAMESPACE]["level"] == "INFO"
        assert "file" not in build_logging_config()["handlers"]

    def test_config_applies(self, tmp_path):
        config = build_logging_config(log_file=str(tmp_path / "clob.log"), json_format=True)
        logging.config.dictConfig(config)
        try:
            get_logger("test").info("hello")
        finally:
            logging.config.dictConfig({"version": 1, "disable_existing_loggers": False})

    def test_get_logger_namespace(self):
        assert get_logger("client").name == "clob_client.client"
