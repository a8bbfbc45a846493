"""Logging configuration with secret redaction

Usage:
    # In entry points
    from log_config import configure_logging
    configure_logging(level=logging.INFO)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
"""

import logging
import re


class SecretFilter(logging.Filter):
    """Logging filter that replaces registered secrets with '[REDACTED]'

    Secrets are shared by every SecretFilter instance, so a secret registered
    at startup is redacted from all handlers.
    """

    _secrets = set()
    _pattern = None

    def filter(self, record):
        if self._pattern is not None:
            record.msg = self._pattern.sub('[REDACTED]', str(record.msg))
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {key: self._redact(value) for key, value in record.args.items()}
                else:
                    record.args = tuple(self._redact(arg) for arg in record.args)
        return True

    def _redact(self, value):
        if isinstance(value, str):
            return self._pattern.sub('[REDACTED]', value)
        return value

    @classmethod
    def register_secret(cls, secret):
        """Register a secret to be redacted. Empty strings are ignored."""
        if secret:
            cls._secrets.add(secret)
            cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls):
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls):
        # longest first so a secret containing another is redacted whole
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile('|'.join(re.escape(secret) for secret in ordered))


def configure_logging(level=logging.INFO, secrets=()):
    """Configure root logging with secret redaction

    Args:
        level: Log level (int or name)
        secrets: Secrets to redact from every log record
    """
    for secret in secrets:
        SecretFilter.register_secret(secret)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    handler.addFilter(SecretFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
