"""SigV4 signing key derivation and signature computation.

References:
    - https://docs.aws.amazon.com/AmazonS3/latest/API/sig-v4-authenticating-requests.html
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone

from s3sigv4.errors import AccessDenied
from s3sigv4.hashing import content_hash_hex

# Constants
ALGORITHM = "AWS4-HMAC-SHA256"
KEY_PREFIX = "AWS4"
SCOPE_TERMINATOR = "aws4_request"
SERVICE_NAME = "s3"
DEFAULT_REGION = "us-east-1"

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
SCOPE_DATE_FORMAT = "%Y%m%d"


def _as_utc(instant: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def format_amz_date(instant: datetime) -> str:
    """Format ``instant`` as the ``x-amz-date`` value, e.g. ``20130524T000000Z``."""
    return _as_utc(instant).strftime(AMZ_DATE_FORMAT)


def format_scope_date(instant: datetime) -> str:
    """Format ``instant`` as the credential scope date, e.g. ``20130524``."""
    return _as_utc(instant).strftime(SCOPE_DATE_FORMAT)


def parse_amz_date(value: str) -> datetime:
    """Parse an ``x-amz-date`` value into an aware UTC datetime.

    Raises:
        AccessDenied: If the value is not in ``YYYYMMDDTHHMMSSZ`` form.
    """
    try:
        return datetime.strptime(value, AMZ_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise AccessDenied(f"Invalid x-amz-date format: {value!r}.")


@dataclass(frozen=True)
class SigningScope:
    """The date/region/service a signature is valid for.

    Attributes:
        date: Scope date (YYYYMMDD).
        region: Region name, e.g. ``us-east-1``.
        service: Service name, ``s3`` for object storage.
    """

    date: str
    region: str = DEFAULT_REGION
    service: str = SERVICE_NAME

    @classmethod
    def for_instant(
        cls, instant: datetime, region: str = DEFAULT_REGION, service: str = SERVICE_NAME
    ) -> SigningScope:
        return cls(date=format_scope_date(instant), region=region, service=service)

    def __str__(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/{SCOPE_TERMINATOR}"


def derive_signing_key(secret_key: str, date: str, region: str, service: str) -> bytes:
    """Derive the SigV4 signing key via the HMAC-SHA256 chain.

    Each step keys the next one; none may be skipped or reordered.

    Args:
        secret_key: The secret access key.
        date: Date string (YYYYMMDD).
        region: Region name.
        service: Service name.

    Returns:
        The 32-byte signing key.
    """
    k_date = hmac.new(
        (KEY_PREFIX + secret_key).encode("utf-8"),
        date.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    k_region = hmac.new(k_date, region.encode("utf-8"), hashlib.sha256).digest()
    k_service = hmac.new(k_region, service.encode("utf-8"), hashlib.sha256).digest()
    k_signing = hmac.new(k_service, SCOPE_TERMINATOR.encode("utf-8"), hashlib.sha256).digest()
    return k_signing


def string_to_sign(timestamp: str, scope: SigningScope | str, canonical_request: str) -> str:
    """Build the string to sign.

    Args:
        timestamp: Request timestamp (YYYYMMDDTHHMMSSZ), identical to the
            ``x-amz-date`` header sent with the request.
        scope: Credential scope (YYYYMMDD/region/service/aws4_request).
        canonical_request: The rendered canonical request.

    Returns:
        The string to sign.
    """
    canonical_hash = content_hash_hex(canonical_request.encode("utf-8"))
    return f"{ALGORITHM}\n{timestamp}\n{scope}\n{canonical_hash}"


def compute_signature(signing_key: bytes, to_sign: str) -> str:
    """Return the 64-character hex HMAC-SHA256 of ``to_sign``."""
    return hmac.new(signing_key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def sign(
    canonical_request: str, timestamp: str, scope: SigningScope | str, signing_key: bytes
) -> str:
    """Sign a rendered canonical request and return the hex signature."""
    return compute_signature(signing_key, string_to_sign(timestamp, scope, canonical_request))
