"""
Credential redaction for log output.

Keeps private keys, API secrets and passphrases out of log lines and
formatted tracebacks.
"""

import logging
import re


class CredentialRedactionFilter(logging.Filter):
    """
    Redacts credentials from log records.

    - Ethereum private keys (0x followed by 64 hex chars)
    - secret/passphrase/key assignments
    - long base64 or base64url strings (API secrets)

    Usage:
        >>> handler = logging.StreamHandler()
        >>> handler.addFilter(CredentialRedactionFilter())
        >>> logger.addHandler(handler)
    """

    PRIVATE_KEY_PATTERN = re.compile(r'0x[0-9a-fA-F]{64}(?![0-9a-fA-F])')
    API_SECRET_PATTERN = re.compile(
        r'((?:secret|passphrase|password|api_key|apikey)["\']?\s*[:=]\s*["\']?)[A-Za-z0-9+/_\-=]{8,}["\']?',
        re.IGNORECASE
    )
    BASE64_SECRET_PATTERN = re.compile(r'[A-Za-z0-9+/_\-]{40,}={0,2}')

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitize the record in place; never drops it."""
        if record.msg:
            record.msg = self.redact(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self.redact(str(v))
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self.redact(str(arg))
                    for arg in record.args
                )

        if record.exc_text:
            record.exc_text = self.redact(record.exc_text)

        return True

    def redact(self, text: str) -> str:
        """
        Redact all credential patterns from text.

        Args:
            text: Text to redact

        Returns:
            Text with credentials redacted
        """
        if not text:
            return text

        # Private keys first; a 65-byte signature is longer and left alone
        text = self.PRIVATE_KEY_PATTERN.sub('0x[REDACTED]', text)
        text = self.API_SECRET_PATTERN.sub(r'\1[REDACTED]', text)

        def redact_base64(match):
            value = match.group(0)
            # hex data and numeric token ids pass through
            if value.startswith("0x") or value.isdigit():
                return value
            return value[:8] + '...[REDACTED]'

        return self.BASE64_SECRET_PATTERN.sub(redact_base64, text)
