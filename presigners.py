"""Interchangeable ways of turning an object key into a presigned GET URL

Both presigners expose ``presign_get(object_key, expires_in)``. Which one a
deployment uses is a configuration choice (see ``create_presigner``).
"""

import logging
from datetime import datetime, timezone

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ParamValidationError

from sign_s3 import ConstructionError, generate_presigned_url_v4, resolve_endpoint, resolve_object_location

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


class SigV4Presigner:
    """Signs URLs with the Signature Version 4 code in signature_helpers.py, no SDK involved"""

    def __init__(self, endpoint, region, bucket, access_key, secret_key,
                 addressing_style='virtual', scheme='https', clock=_utcnow):
        self.endpoint = endpoint
        self.region = region
        self.bucket = bucket
        self.access_key = access_key
        self._secret_key = secret_key
        self.addressing_style = addressing_style
        self.scheme = scheme
        self._clock = clock

    def presign_get(self, object_key, expires_in, issued_at=None):
        # one clock read per URL so X-Amz-Date and the scope date agree
        if issued_at is None:
            issued_at = self._clock()
        return generate_presigned_url_v4(
            endpoint=self.endpoint,
            access_key=self.access_key,
            secret_key=self._secret_key,
            bucket=self.bucket,
            object_key=object_key,
            expires_in=expires_in,
            issued_at=issued_at,
            region=self.region,
            scheme=self.scheme,
            addressing_style=self.addressing_style,
        )


class BotoPresigner:
    """Delegates signing to boto3

    Credentials are passed in explicitly, so no credential discovery or
    network call happens when a URL is generated.
    """

    def __init__(self, endpoint, region, bucket, access_key, secret_key,
                 addressing_style='virtual', scheme='https'):
        # Same endpoint and bucket rules as the SigV4 presigner
        url_scheme, _ = resolve_endpoint(endpoint, bucket, scheme=scheme, addressing_style=addressing_style)
        if '://' not in endpoint:
            endpoint = f'{url_scheme}://{endpoint}'

        self.endpoint = endpoint
        self.bucket = bucket
        self.addressing_style = addressing_style
        self._client = boto3.client(
            's3',
            endpoint_url=endpoint,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=BotoConfig(
                signature_version='s3v4',
                s3={'addressing_style': addressing_style},
            ),
        )

    def presign_get(self, object_key, expires_in):
        resolve_object_location(self.endpoint, self.bucket, object_key, addressing_style=self.addressing_style)
        logger.debug("Presigning %s for %s seconds via boto3", object_key, expires_in)
        try:
            return self._client.generate_presigned_url(
                ClientMethod='get_object',
                Params={'Bucket': self.bucket, 'Key': object_key},
                ExpiresIn=expires_in,
            )
        except ParamValidationError as e:
            raise ConstructionError(str(e)) from e


PRESIGNERS = {
    'sigv4': SigV4Presigner,
    'sdk': BotoPresigner,
}


def create_presigner(config):
    """Build the presigner named by ``config.presigner``"""
    try:
        presigner_cls = PRESIGNERS[config.presigner]
    except KeyError:
        raise ValueError(f"Unknown presigner: {config.presigner!r}") from None

    logger.info("Using %s presigner for bucket %s at %s", config.presigner, config.bucket, config.endpoint_url)
    return presigner_cls(
        endpoint=config.endpoint_url,
        region=config.region,
        bucket=config.bucket,
        access_key=config.access_key,
        secret_key=config.secret_key,
        addressing_style=config.addressing_style,
        scheme=config.scheme,
    )
