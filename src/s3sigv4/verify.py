"""Server-side SigV4 verification of signed requests.

Recomputes the signature of an ``httpx.Request`` from what was actually
transmitted (method, path, query, the signed headers and the body) and
compares it with the one the client sent. Used by test harnesses to check
that a signature survives the trip over the wire, and as an in-process
stand-in for an S3 endpoint.

Supports both header-based auth (Authorization header) and query-string
auth (presigned URLs).
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

import httpx

from s3sigv4 import metrics
from s3sigv4.authorization import ParsedAuthorization, parse, parse_credential
from s3sigv4.canonical import (
    HOST_HEADER,
    CanonicalRequest,
    canonical_headers_block,
    canonical_query_string,
    canonical_uri,
    parse_query,
    url_path,
)
from s3sigv4.errors import (
    AccessDenied,
    AuthorizationQueryParametersError,
    ExpiredPresignedUrl,
    InvalidAccessKeyId,
    RequestTimeTooSkewed,
    SignatureDoesNotMatch,
    SigV4Error,
    XAmzContentSHA256Mismatch,
)
from s3sigv4.hashing import content_hash_hex
from s3sigv4.request import MAX_PRESIGNED_EXPIRES, UNSIGNED_PAYLOAD
from s3sigv4.signing import (
    ALGORITHM,
    DEFAULT_REGION,
    SERVICE_NAME,
    SigningScope,
    derive_signing_key,
    parse_amz_date,
    sign,
)

logger = logging.getLogger(__name__)

CLOCK_SKEW_TOLERANCE = 900  # 15 minutes in seconds

PRESIGNED_PARAMS = (
    "X-Amz-Algorithm",
    "X-Amz-Credential",
    "X-Amz-Date",
    "X-Amz-Expires",
    "X-Amz-SignedHeaders",
    "X-Amz-Signature",
)


class SigV4Verifier:
    """Verifies AWS Signature Version 4 signed requests.

    Attributes:
        credentials: Access key to secret key lookup.
        region: The region signatures must be scoped to.
        clock_skew: Allowed difference between request and verifier time, in
            seconds.
    """

    def __init__(
        self,
        credentials: Mapping[str, str],
        region: str = DEFAULT_REGION,
        clock_skew: int = CLOCK_SKEW_TOLERANCE,
    ) -> None:
        self.credentials = credentials
        self.region = region
        self.clock_skew = clock_skew

    def verify(self, request: httpx.Request, now: datetime | None = None) -> str:
        """Verify the request and return the authenticated access key.

        Dispatches to header-based or presigned URL auth based on the request.

        Args:
            request: The received request. Its body must already be read.
            now: Verification time, defaults to the current UTC time.

        Returns:
            The access key the request was signed with.

        Raises:
            AccessDenied: If both or neither auth methods are present.
            SigV4Error subclass: Various auth errors on failure.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        has_auth_header = request.headers.get("authorization", "").startswith(ALGORITHM)
        has_presigned = "X-Amz-Algorithm" in request.url.params

        try:
            if has_auth_header and has_presigned:
                raise AccessDenied(
                    "Both Authorization header and presigned URL parameters present."
                )
            if has_presigned:
                access_key = self._verify_presigned(request, now)
            elif has_auth_header:
                access_key = self._verify_header_auth(request, now)
            else:
                raise AccessDenied(
                    "Missing authentication: no Authorization header or presigned URL parameters."
                )
        except SigV4Error as exc:
            logger.info("Rejected request: %s", exc.message, extra={"code": exc.code})
            metrics.record_signature("verify", "error")
            raise
        metrics.record_signature("verify")
        return access_key

    # -- Header auth -----------------------------------------------------------

    def _verify_header_auth(self, request: httpx.Request, now: datetime) -> str:
        parsed = parse(request.headers["authorization"])
        self._check_scope(parsed.scope)

        amz_date = request.headers.get("x-amz-date", "")
        if not amz_date:
            raise AccessDenied("Missing x-amz-date header.")
        if amz_date[:8] != parsed.scope.date:
            raise AccessDenied(
                f"Date in Credential scope ({parsed.scope.date}) does not match "
                f"date in x-amz-date header ({amz_date[:8]})."
            )
        self._check_clock_skew(amz_date, now)
        secret_key = self._lookup(parsed.access_key)

        body_hash = content_hash_hex(request.content)
        payload_hash = request.headers.get("x-amz-content-sha256", body_hash)
        if payload_hash != UNSIGNED_PAYLOAD and payload_hash != body_hash:
            raise XAmzContentSHA256Mismatch()

        canonical_request = self._canonical_request(
            request, request.url.query.decode("ascii"), parsed.signed_headers, payload_hash
        )
        self._compare(canonical_request, amz_date, parsed, secret_key)
        return parsed.access_key

    # -- Presigned auth --------------------------------------------------------

    def _verify_presigned(self, request: httpx.Request, now: datetime) -> str:
        params = request.url.params
        for name in PRESIGNED_PARAMS:
            if name not in params:
                raise AuthorizationQueryParametersError()

        if params["X-Amz-Algorithm"] != ALGORITHM:
            raise AccessDenied(f"Unsupported algorithm: {params['X-Amz-Algorithm']}")
        access_key, scope = parse_credential(params["X-Amz-Credential"])
        self._check_scope(scope)

        amz_date = params["X-Amz-Date"]
        if amz_date[:8] != scope.date:
            raise AccessDenied(
                f"Date in Credential scope ({scope.date}) does not match "
                f"X-Amz-Date ({amz_date[:8]})."
            )
        try:
            expires = int(params["X-Amz-Expires"])
        except ValueError:
            raise AuthorizationQueryParametersError("Invalid X-Amz-Expires value.")
        if expires < 1 or expires > MAX_PRESIGNED_EXPIRES:
            raise AuthorizationQueryParametersError(
                f"X-Amz-Expires must be between 1 and {MAX_PRESIGNED_EXPIRES} seconds."
            )

        request_time = parse_amz_date(amz_date)
        if (now - request_time).total_seconds() > expires:
            raise ExpiredPresignedUrl()
        if (request_time - now).total_seconds() > self.clock_skew:
            raise RequestTimeTooSkewed()
        secret_key = self._lookup(access_key)

        query = parse_query(request.url.query.decode("ascii"))
        query.pop("X-Amz-Signature", None)
        signed_headers = params["X-Amz-SignedHeaders"].split(";")
        canonical_request = self._canonical_request(
            request, query, signed_headers, UNSIGNED_PAYLOAD
        )
        parsed = ParsedAuthorization(
            access_key=access_key,
            scope=scope,
            signed_headers=signed_headers,
            signature=params["X-Amz-Signature"],
        )
        self._compare(canonical_request, amz_date, parsed, secret_key)
        return access_key

    # -- Shared steps ----------------------------------------------------------

    def _canonical_request(
        self,
        request: httpx.Request,
        query: str | dict[str, list[str]],
        signed_headers: list[str],
        payload_hash: str,
    ) -> CanonicalRequest:
        """Rebuild the canonical request from the transmitted request."""
        names = sorted(signed_headers)
        values: dict[str, list[str]] = {}
        for name in names:
            if name == HOST_HEADER:
                values[name] = [request.url.netloc.decode("ascii")]
            else:
                values[name] = request.headers.get_list(name)
        return CanonicalRequest(
            method=request.method,
            canonical_uri=canonical_uri(url_path(request.url)),
            canonical_query=canonical_query_string(query),
            canonical_headers=canonical_headers_block(names, values),
            signed_headers=";".join(names),
            payload_hash=payload_hash,
        )

    def _compare(
        self,
        canonical_request: CanonicalRequest,
        amz_date: str,
        parsed: ParsedAuthorization,
        secret_key: str,
    ) -> None:
        scope = parsed.scope
        signing_key = derive_signing_key(secret_key, scope.date, scope.region, scope.service)
        expected = sign(canonical_request.render(), amz_date, scope, signing_key)
        if not hmac.compare_digest(expected, parsed.signature):
            logger.debug(
                "Signature mismatch: expected=%s, got=%s",
                expected,
                parsed.signature,
                extra={"access_key": parsed.access_key, "scope": str(scope)},
            )
            raise SignatureDoesNotMatch()

    def _check_scope(self, scope: SigningScope) -> None:
        if scope.service != SERVICE_NAME:
            raise AccessDenied(f"Invalid credential service: {scope.service}")
        if scope.region != self.region:
            raise AccessDenied(
                f"The authorization header is malformed; the region '{scope.region}' "
                f"is wrong; expecting '{self.region}'."
            )

    def _lookup(self, access_key: str) -> str:
        secret_key = self.credentials.get(access_key)
        if secret_key is None:
            raise InvalidAccessKeyId()
        return secret_key

    def _check_clock_skew(self, amz_date: str, now: datetime) -> None:
        """Reject timestamps further than ``clock_skew`` seconds from ``now``.

        Raises:
            AccessDenied: If the timestamp is malformed.
            RequestTimeTooSkewed: If the timestamp is too far off.
        """
        request_time = parse_amz_date(amz_date)
        if abs((now - request_time).total_seconds()) > self.clock_skew:
            raise RequestTimeTooSkewed()
