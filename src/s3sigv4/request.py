"""Signing of outbound S3 requests with AWS Signature Version 4.

``sign_request`` turns a method, a URL, optional headers and an optional body
into an ``httpx.Request`` carrying ``x-amz-date``, ``x-amz-content-sha256``,
``Content-Md5`` (when there is a body) and ``Authorization``. ``presign_url``
produces a query-string authenticated URL instead.

Both are pure computations apart from the one synchronous body read, so they
can be called from any number of threads at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import IO, Union

import httpx

from s3sigv4 import metrics
from s3sigv4.authorization import assemble
from s3sigv4.canonical import (
    HOST_HEADER,
    HeadersInput,
    canonicalize,
    header_items,
    parse_query,
    url_path,
)
from s3sigv4.config import S3SigV4Config
from s3sigv4.errors import BodyReadError, InvalidArgument, InvalidRequestURL
from s3sigv4.hashing import checksum_base64, content_hash_hex
from s3sigv4.signing import (
    ALGORITHM,
    DEFAULT_REGION,
    SERVICE_NAME,
    SigningScope,
    derive_signing_key,
    format_amz_date,
    sign,
)

logger = logging.getLogger(__name__)

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
MAX_PRESIGNED_EXPIRES = 604800  # 7 days in seconds
DEFAULT_METHOD = "POST"

Body = Union[bytes, bytearray, memoryview, IO[bytes], None]


@dataclass(frozen=True)
class Credentials:
    """An access key pair. The secret is kept out of ``repr``."""

    access_key: str
    secret_key: str = field(repr=False)


@dataclass(frozen=True)
class TargetURL:
    """The parts of a request URL that the signer needs.

    Attributes:
        scheme: ``http`` or ``https``.
        host: Host component including an explicit non-default port.
        path: Decoded path.
        query: Raw (still encoded) query string.
    """

    scheme: str
    host: str
    path: str
    query: str


def parse_target_url(url: str | httpx.URL) -> TargetURL:
    """Parse and validate the request URL.

    Raises:
        InvalidRequestURL: If the URL cannot be parsed or lacks a scheme or host.
    """
    try:
        parsed = url if isinstance(url, httpx.URL) else httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        raise InvalidRequestURL(str(url))
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidRequestURL(str(url))
    return TargetURL(
        scheme=parsed.scheme,
        host=parsed.netloc.decode("ascii"),
        path=url_path(parsed),
        query=parsed.query.decode("ascii"),
    )


def read_body(body: Body) -> bytes | None:
    """Read the whole body into memory for hashing.

    A stream is read to the end and then seeked back to the start so it can
    be sent afterwards.

    Args:
        body: Body bytes, a readable and seekable binary stream, or None.

    Returns:
        The body bytes, or None when there is no body.

    Raises:
        BodyReadError: If reading or rewinding the stream fails.
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    try:
        data = body.read()
        body.seek(0)
    except (OSError, ValueError) as exc:
        raise BodyReadError(f"Failed to read the request body for hashing: {exc}") from exc
    if not isinstance(data, bytes):
        raise BodyReadError("The request body stream must yield bytes.")
    return data


def sign_request(
    method: str,
    url: str | httpx.URL,
    credentials: Credentials,
    *,
    body: Body = None,
    content_length: int | None = None,
    headers: HeadersInput | None = None,
    region: str | None = None,
    now: datetime | None = None,
) -> httpx.Request:
    """Build an ``httpx.Request`` signed with SigV4 header authentication.

    Args:
        method: HTTP method; empty means POST.
        url: Absolute target URL.
        credentials: The caller's access key pair.
        body: Optional body bytes or seekable binary stream.
        content_length: Value for the Content-Length header when given. It is
            not signed, and may deliberately disagree with the body.
        headers: Extra headers to send and sign.
        region: Scope region, defaults to ``us-east-1``.
        now: Signing instant, defaults to the current UTC time.

    Returns:
        The signed request, with the canonical query string in its URL.

    Raises:
        InvalidRequestURL: If the URL is malformed.
        BodyReadError: If the body stream cannot be read.
    """
    if not method:
        method = DEFAULT_METHOD
    target = parse_target_url(url)
    instant = now or datetime.now(timezone.utc)
    amz_date = format_amz_date(instant)

    outgoing = httpx.Headers(header_items(headers))
    # httpx fills Host from the URL, which is what gets signed.
    if HOST_HEADER in outgoing:
        del outgoing[HOST_HEADER]
    outgoing["x-amz-date"] = amz_date

    try:
        payload = read_body(body)
    except BodyReadError:
        metrics.record_signature("sign", "error")
        raise
    payload_hash = content_hash_hex(payload)
    if payload is not None:
        outgoing["Content-Md5"] = checksum_base64(payload)
        metrics.record_payload(len(payload))
    outgoing["x-amz-content-sha256"] = payload_hash
    if content_length is not None:
        outgoing["Content-Length"] = str(content_length)

    form = canonicalize(method, target.path, target.query, outgoing, target.host)
    canonical_request = form.to_request(payload_hash)

    scope = SigningScope.for_instant(instant, region or DEFAULT_REGION, SERVICE_NAME)
    signing_key = derive_signing_key(
        credentials.secret_key, scope.date, scope.region, scope.service
    )
    signature = sign(canonical_request.render(), amz_date, scope, signing_key)
    outgoing["Authorization"] = assemble(
        credentials.access_key, scope, form.signed_headers, signature
    )

    logger.debug(
        "Signed %s request for %s",
        form.method,
        target.host,
        extra={
            "method": form.method,
            "host": target.host,
            "scope": str(scope),
            "signed_headers": form.signed_headers,
            "access_key": credentials.access_key,
        },
    )
    metrics.record_signature("sign")

    signed_url = _join_url(target, form.canonical_uri, form.canonical_query)
    return httpx.Request(form.method, signed_url, headers=outgoing, content=payload)


def presign_url(
    method: str,
    url: str | httpx.URL,
    credentials: Credentials,
    *,
    expires: int = 3600,
    region: str | None = None,
    now: datetime | None = None,
) -> str:
    """Return ``url`` with SigV4 query-string authentication added.

    Only the ``host`` header is signed and the payload is left unsigned.

    Args:
        method: HTTP method the URL will be used with.
        url: Absolute target URL, may already carry query parameters.
        credentials: The caller's access key pair.
        expires: Validity in seconds, 1 to 604800.
        region: Scope region, defaults to ``us-east-1``.
        now: Signing instant, defaults to the current UTC time.

    Raises:
        InvalidArgument: If ``expires`` is out of range.
        InvalidRequestURL: If the URL is malformed.
    """
    if expires < 1 or expires > MAX_PRESIGNED_EXPIRES:
        raise InvalidArgument(
            f"X-Amz-Expires must be between 1 and {MAX_PRESIGNED_EXPIRES} seconds."
        )
    target = parse_target_url(url)
    instant = now or datetime.now(timezone.utc)
    amz_date = format_amz_date(instant)
    scope = SigningScope.for_instant(instant, region or DEFAULT_REGION, SERVICE_NAME)

    params = parse_query(target.query)
    params["X-Amz-Algorithm"] = [ALGORITHM]
    params["X-Amz-Credential"] = [f"{credentials.access_key}/{scope}"]
    params["X-Amz-Date"] = [amz_date]
    params["X-Amz-Expires"] = [str(expires)]
    params["X-Amz-SignedHeaders"] = ["host"]

    form = canonicalize(method or DEFAULT_METHOD, target.path, params, None, target.host)
    canonical_request = form.to_request(UNSIGNED_PAYLOAD)
    signing_key = derive_signing_key(
        credentials.secret_key, scope.date, scope.region, scope.service
    )
    signature = sign(canonical_request.render(), amz_date, scope, signing_key)
    metrics.record_signature("presign")

    query = f"{form.canonical_query}&X-Amz-Signature={signature}"
    return _join_url(target, form.canonical_uri, query)


def _join_url(target: TargetURL, canonical_uri: str, query: str) -> str:
    url = f"{target.scheme}://{target.host}{canonical_uri}"
    if query:
        url += "?" + query
    return url


class Signer:
    """Signs requests for one credential pair and region.

    Attributes:
        credentials: The access key pair used for every request.
        region: Scope region.
        presign_expires: Default validity of presigned URLs, in seconds.
    """

    def __init__(
        self,
        credentials: Credentials,
        region: str = DEFAULT_REGION,
        presign_expires: int = 3600,
    ) -> None:
        self.credentials = credentials
        self.region = region
        self.presign_expires = presign_expires

    @classmethod
    def from_config(cls, config: S3SigV4Config) -> Signer:
        return cls(
            Credentials(config.credentials.access_key, config.credentials.secret_key),
            region=config.signer.region,
            presign_expires=config.signer.presign_expires,
        )

    def sign(self, method: str, url: str | httpx.URL, **kwargs) -> httpx.Request:
        """Sign a request; keyword arguments are passed to :func:`sign_request`."""
        kwargs.setdefault("region", self.region)
        return sign_request(method, url, self.credentials, **kwargs)

    def presign(
        self,
        method: str,
        url: str | httpx.URL,
        expires: int | None = None,
        now: datetime | None = None,
    ) -> str:
        return presign_url(
            method,
            url,
            self.credentials,
            expires=expires or self.presign_expires,
            region=self.region,
            now=now,
        )
