"""Environment-based configuration for the gateway

Every setting has an environment variable; see ``load_config`` for the names.
"""

import logging
import os
from dataclasses import dataclass, field

from sign_s3 import ADDRESSING_STYLES

SERVICES = ('s3', 'local')
PRESIGNER_NAMES = ('sigv4', 'sdk')

# SigV4 presigned URLs are valid for at most 7 days
MAX_EXPIRES = 7 * 24 * 60 * 60


class ConfigError(ValueError):
    """Configuration is missing or invalid"""


@dataclass(frozen=True)
class Config:
    service: str = 's3'
    timeout_seconds: int = 5

    # Local directory
    directory: str = ''

    # S3
    endpoint_url: str = ''
    region: str = 'us-east-1'
    bucket: str = ''
    prefix: str = ''
    access_key: str = ''
    secret_key: str = field(default='', repr=False)
    expires_in: int = 900
    addressing_style: str = 'virtual'
    presigner: str = 'sigv4'
    scheme: str = 'https'

    # Server
    host: str = '0.0.0.0'
    port: int = 8000
    log_level: str = 'INFO'

    def validate(self):
        """Raise ConfigError if the settings cannot work together"""
        if self.service not in SERVICES:
            raise ConfigError(f"Invalid configuration: Service {self.service} is unknown")
        if self.timeout_seconds <= 0:
            raise ConfigError("TIMEOUT_SECONDS must be positive")
        # getLevelName maps known names to ints, anything else to a "Level X" string
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown LOG_LEVEL: {self.log_level}")

        if self.service == 'local':
            if not self.directory:
                raise ConfigError("LOCAL_DIRECTORY is required for the local service")
            return

        missing = [name for name, value in (
            ('S3_ENDPOINT_URL', self.endpoint_url),
            ('S3_BUCKET', self.bucket),
            ('S3_ACCESS_KEY', self.access_key),
            ('S3_SECRET_KEY', self.secret_key),
        ) if not value]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")
        if not 1 <= self.expires_in <= MAX_EXPIRES:
            raise ConfigError(f"S3_EXPIRES must be between 1 and {MAX_EXPIRES} seconds")
        if self.addressing_style not in ADDRESSING_STYLES:
            raise ConfigError(f"Unknown addressing style: {self.addressing_style}")
        if self.presigner not in PRESIGNER_NAMES:
            raise ConfigError(f"Unknown presigner: {self.presigner}")


def _get_int(environ, name, default):
    raw = environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def load_config(environ=None):
    """Read and validate configuration from the environment

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Config
    """
    if environ is None:
        environ = os.environ

    config = Config(
        service=environ.get('SERVICE', 's3'),
        timeout_seconds=_get_int(environ, 'TIMEOUT_SECONDS', 5),
        directory=environ.get('LOCAL_DIRECTORY', ''),
        endpoint_url=environ.get('S3_ENDPOINT_URL', ''),
        region=environ.get('S3_REGION', 'us-east-1'),
        bucket=environ.get('S3_BUCKET', ''),
        prefix=environ.get('S3_PREFIX', ''),
        access_key=environ.get('S3_ACCESS_KEY', ''),
        secret_key=environ.get('S3_SECRET_KEY', ''),
        expires_in=_get_int(environ, 'S3_EXPIRES', 900),
        addressing_style=environ.get('S3_ADDRESSING_STYLE', 'virtual'),
        presigner=environ.get('S3_PRESIGNER', 'sigv4'),
        scheme=environ.get('S3_SCHEME', 'https'),
        host=environ.get('HOST', '0.0.0.0'),
        port=_get_int(environ, 'PORT', 8000),
        log_level=environ.get('LOG_LEVEL', 'INFO').upper(),
    )
    config.validate()
    return config
