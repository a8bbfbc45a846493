"""Helper functions for AWS Signature V4 calculation shared between sign_s3.py and presigners.py"""

import hashlib
import hmac
from datetime import timezone
from typing import NamedTuple
from urllib.parse import quote

ALGORITHM = 'AWS4-HMAC-SHA256'
SERVICE = 's3'
TERMINATOR = 'aws4_request'
UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'
SIGNED_HEADERS = 'host'


def as_utc(instant):
    """Normalize a datetime to UTC. Naive values are taken to be UTC already."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def format_datestamp(instant):
    return as_utc(instant).strftime('%Y%m%d')


def format_timestamp(instant):
    return as_utc(instant).strftime('%Y%m%dT%H%M%SZ')


class CredentialScope(NamedTuple):
    """Date/region/service/terminator tuple a signing key is bound to"""
    date: str
    region: str
    service: str = SERVICE
    terminator: str = TERMINATOR

    @classmethod
    def for_instant(cls, instant, region, service=SERVICE):
        return cls(format_datestamp(instant), region, service)

    def __str__(self):
        return '/'.join(self)


def uri_encode(value, safe=''):
    """Percent-encode a value using the SigV4 rules

    Only A-Z, a-z, 0-9, '-', '_', '.' and '~' (plus any characters in ``safe``)
    are left as they are. Hex digits are upper case and a space becomes %20.
    """
    return quote(str(value), safe=safe)


def encode_object_path(object_key):
    """Turn a raw object key into a URL path, encoding it exactly once"""
    return '/' + uri_encode(object_key, safe='/')


def canonical_query_string(params):
    """Build the canonical query string

    Args:
        params: Mapping or iterable of (name, value) pairs, in any order

    Returns:
        Encoded pairs sorted by name (then value), joined with '&'
    """
    if hasattr(params, 'items'):
        params = params.items()
    encoded = sorted((uri_encode(key), uri_encode(value)) for key, value in params)
    return '&'.join(f"{key}={value}" for key, value in encoded)


def build_canonical_request(method, uri_path, query_params, host):
    """Build the canonical request for a presigned request

    ``uri_path`` must already be percent-encoded. The only signed header is
    host and the payload is never hashed.
    """
    return '\n'.join([
        method,
        uri_path,
        canonical_query_string(query_params),
        f"host:{host}\n",
        SIGNED_HEADERS,
        UNSIGNED_PAYLOAD,
    ])


def hash_canonical_request(canonical_request):
    return hashlib.sha256(canonical_request.encode('utf-8')).hexdigest()


def canonicalize(method, uri_path, query_params, host):
    """Return the SHA-256 hex digest of the canonical request"""
    return hash_canonical_request(build_canonical_request(method, uri_path, query_params, host))


def build_string_to_sign(timestamp, credential_scope, canonical_request_digest):
    return f"{ALGORITHM}\n{timestamp}\n{credential_scope}\n{canonical_request_digest}"


def _hmac_sha256(key, msg):
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key(secret_key, credential_scope):
    """Derive the scoped signing key

    Args:
        secret_key: AWS secret key
        credential_scope: CredentialScope the key is bound to

    Returns:
        32 raw bytes. Never log or store them.
    """
    k_date = _hmac_sha256(('AWS4' + secret_key).encode('utf-8'), credential_scope.date)
    k_region = _hmac_sha256(k_date, credential_scope.region)
    k_service = _hmac_sha256(k_region, credential_scope.service)
    return _hmac_sha256(k_service, credential_scope.terminator)


def sign(secret_key, credential_scope, string_to_sign):
    """Lower-case hex HMAC-SHA256 of the string to sign, keyed by the derived signing key"""
    signing_key = derive_signing_key(secret_key, credential_scope)
    return hmac.new(signing_key, string_to_sign.encode('utf-8'), hashlib.sha256).hexdigest()


def calculate_signature_v4(secret_key, credential_scope, timestamp, canonical_request):
    """Calculate AWS Signature V4

    Args:
        secret_key: AWS secret key
        credential_scope: CredentialScope for the request date and region
        timestamp: ISO timestamp in YYYYMMDDTHHMMSSZ format
        canonical_request: Canonical request string

    Returns:
        Hex-encoded signature string
    """
    string_to_sign = build_string_to_sign(
        timestamp, credential_scope, hash_canonical_request(canonical_request))
    return sign(secret_key, credential_scope, string_to_sign)
