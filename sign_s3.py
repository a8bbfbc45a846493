import argparse
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from signature_helpers import (
    ALGORITHM,
    SERVICE,
    SIGNED_HEADERS,
    CredentialScope,
    as_utc,
    build_canonical_request,
    calculate_signature_v4,
    canonical_query_string,
    encode_object_path,
    format_timestamp,
)

logger = logging.getLogger(__name__)

ADDRESSING_STYLES = ('virtual', 'path')

_BUCKET_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


class ConstructionError(ValueError):
    """The object URL cannot be built from the given endpoint, bucket and key"""


@dataclass(frozen=True)
class SigningRequest:
    """Everything needed to presign one GET request

    ``object_path`` is already percent-encoded and ``host`` carries no scheme or path.
    """
    host: str
    object_path: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    region: str
    issued_at: datetime
    expires_in: int
    scheme: str = 'https'
    method: str = 'GET'
    service: str = SERVICE


def resolve_endpoint(endpoint, bucket, scheme='https', addressing_style='virtual'):
    """Check the endpoint and bucket an object URL will be built from

    Args:
        endpoint: Endpoint host (e.g. s3.amazonaws.com, minio:9000) or URL (http://minio:9000)
        bucket: Bucket name
        scheme: Scheme used when the endpoint carries none
        addressing_style: 'virtual' (bucket.endpoint/key) or 'path' (endpoint/bucket/key)

    Returns:
        tuple: (scheme, netloc)
    """
    if addressing_style not in ADDRESSING_STYLES:
        raise ConstructionError(f"Unknown addressing style: {addressing_style!r}")
    if not endpoint:
        raise ConstructionError("Endpoint must not be empty")
    if '://' not in endpoint:
        endpoint = f'{scheme}://{endpoint}'

    try:
        parsed = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise ConstructionError(f"Invalid endpoint {endpoint!r}: {e}") from e

    if not parsed.host:
        raise ConstructionError(f"Endpoint {endpoint!r} has no host")
    if parsed.path not in ('', '/') or parsed.query:
        raise ConstructionError(f"Endpoint {endpoint!r} must not carry a path or query")
    if not bucket or not _BUCKET_RE.match(bucket):
        raise ConstructionError(f"Invalid bucket name: {bucket!r}")

    return parsed.scheme, parsed.netloc.decode('ascii')


def resolve_object_location(endpoint, bucket, object_key, scheme='https', addressing_style='virtual'):
    """Work out where an object lives

    Endpoint, bucket and addressing style are checked by ``resolve_endpoint``.

    Returns:
        tuple: (scheme, host, object_path)
    """
    url_scheme, netloc = resolve_endpoint(endpoint, bucket, scheme=scheme, addressing_style=addressing_style)
    if not object_key:
        raise ConstructionError("Object key must not be empty")

    if addressing_style == 'virtual':
        host = f"{bucket}.{netloc}"
        object_path = encode_object_path(object_key)
    else:
        host = netloc
        object_path = encode_object_path(f"{bucket}/{object_key}")

    try:
        httpx.URL(f"{url_scheme}://{host}{object_path}")
    except httpx.InvalidURL as e:
        raise ConstructionError(f"Invalid object URL for bucket {bucket!r}: {e}") from e

    return url_scheme, host, object_path


def build_presigned_url(request):
    """Presign a GET request using AWS Signature Version 4 query parameters

    Every X-Amz-* parameter except the signature goes into the canonical
    request; the signature is appended afterwards.
    """
    credential_scope = CredentialScope.for_instant(request.issued_at, request.region, request.service)
    timestamp = format_timestamp(request.issued_at)

    params = {
        'X-Amz-Algorithm': ALGORITHM,
        'X-Amz-Credential': f"{request.access_key_id}/{credential_scope}",
        'X-Amz-Date': timestamp,
        'X-Amz-Expires': str(request.expires_in),
        'X-Amz-SignedHeaders': SIGNED_HEADERS,
    }

    canonical_request = build_canonical_request(request.method, request.object_path, params, request.host)
    signature = calculate_signature_v4(request.secret_access_key, credential_scope, timestamp, canonical_request)

    query = canonical_query_string(params)
    return f"{request.scheme}://{request.host}{request.object_path}?{query}&X-Amz-Signature={signature}"


def generate_presigned_url_v4(endpoint, access_key, secret_key, bucket, object_key, expires_in, issued_at,
                              region='us-east-1', scheme='https', addressing_style='virtual'):
    """AWS Signature Version 4 presigned GET URL for one object"""
    url_scheme, host, object_path = resolve_object_location(
        endpoint, bucket, object_key, scheme=scheme, addressing_style=addressing_style)

    request = SigningRequest(
        host=host,
        object_path=object_path,
        access_key_id=access_key,
        secret_access_key=secret_key,
        region=region,
        issued_at=as_utc(issued_at),
        expires_in=expires_in,
        scheme=url_scheme,
    )
    logger.debug("Presigning %s for %s seconds", object_path, expires_in)
    return build_presigned_url(request)


def _parse_instant(value):
    try:
        return as_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO 8601 date: {value!r}") from e


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate S3 presigned GET URLs (Signature Version 4)')
    parser.add_argument('endpoint', help='S3 endpoint (e.g., s3.amazonaws.com or http://minio.example.com:9000)')
    parser.add_argument('access_key', help='Access key')
    parser.add_argument('secret_key', help='Secret key')
    parser.add_argument('bucket', help='Bucket name')
    parser.add_argument('object_key', help='Object key/path')
    parser.add_argument('--expires', '-e', type=int, default=3600, help='Expiration time in seconds (default: 3600)')
    parser.add_argument('--region', '-r', default='us-east-1', help='AWS region (default: us-east-1)')
    parser.add_argument('--scheme', default='https', help='Scheme when the endpoint has none (default: https)')
    parser.add_argument('--path-style', action='store_true', help='Use path-style addressing (endpoint/bucket/key)')
    parser.add_argument('--date', type=_parse_instant, default=None,
                        help='Signing instant in ISO 8601 (default: now, UTC)')

    args = parser.parse_args(argv)

    try:
        url = generate_presigned_url_v4(
            args.endpoint, args.access_key, args.secret_key,
            args.bucket, args.object_key, args.expires,
            issued_at=args.date or datetime.now(timezone.utc),
            region=args.region,
            scheme=args.scheme,
            addressing_style='path' if args.path_style else 'virtual',
        )
    except ConstructionError as e:
        parser.error(str(e))

    print(url)


if __name__ == "__main__":
    main()
