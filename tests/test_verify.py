"""Round-trip tests: requests signed here must verify on the receiving side.

Requests are sent through an httpx.MockTransport whose handler recomputes
the signature from what was transmitted.
"""

from datetime import timedelta

import httpx
import pytest

from s3sigv4.errors import (
    AccessDenied,
    AuthorizationQueryParametersError,
    ExpiredPresignedUrl,
    InvalidAccessKeyId,
    RequestTimeTooSkewed,
    SignatureDoesNotMatch,
    XAmzContentSHA256Mismatch,
)
from s3sigv4.request import Credentials, presign_url, sign_request
from s3sigv4.verify import SigV4Verifier
from tests.vectors import ACCESS_KEY


class TestHeaderAuthRoundTrip:
    """Header-authenticated requests sent over a transport."""

    def test_get_object(self, verifying_client, credentials, signed_at):
        """A plain GET verifies."""
        request = sign_request(
            "GET", "http://localhost:9000/bucket/key", credentials, now=signed_at
        )
        response = verifying_client.send(request)
        assert response.status_code == 200
        assert response.text == ACCESS_KEY

    def test_put_with_body_and_metadata(self, verifying_client, credentials, signed_at):
        """A PUT with body, metadata and an unsigned Content-Type verifies."""
        request = sign_request(
            "PUT",
            "http://localhost:9000/bucket/photos/2024 trip.jpg",
            credentials,
            body=b"\x89PNG fake image bytes",
            headers={
                "Content-Type": "image/jpeg",
                "X-Amz-Meta-Camera": "x100",
                "X-Amz-Storage-Class": "STANDARD",
            },
            now=signed_at,
        )
        assert verifying_client.send(request).status_code == 200

    def test_query_with_plus_and_space(self, verifying_client, credentials, signed_at):
        """Query values with '+' and spaces survive the round trip."""
        request = sign_request(
            "GET",
            "http://localhost:9000/bucket?prefix=a+b&delimiter=%2F&marker=c%2Bd",
            credentials,
            now=signed_at,
        )
        assert verifying_client.send(request).status_code == 200

    def test_unicode_key(self, verifying_client, credentials, signed_at):
        """A non-ASCII object key verifies."""
        request = sign_request(
            "PUT",
            "http://localhost:9000/bucket/résumé/日本語.txt",
            credentials,
            body=b"data",
            now=signed_at,
        )
        assert verifying_client.send(request).status_code == 200

    def test_repeated_header_values(self, verifying_client, credentials, signed_at):
        """A header sent several times verifies."""
        request = sign_request(
            "GET",
            "http://localhost:9000/bucket",
            credentials,
            headers=[("X-Amz-Meta-Tag", "a"), ("X-Amz-Meta-Tag", "b")],
            now=signed_at,
        )
        assert verifying_client.send(request).status_code == 200

    def test_stream_body(self, verifying_client, credentials, signed_at, tmp_path):
        """A file body is hashed, rewound and sent intact."""
        path = tmp_path / "payload.bin"
        path.write_bytes(b"x" * 4096)
        with open(path, "rb") as body:
            request = sign_request(
                "PUT", "http://localhost:9000/bucket/blob", credentials, body=body, now=signed_at
            )
            assert body.tell() == 0
        assert verifying_client.send(request).status_code == 200


class TestHeaderAuthFailures:
    """Tampered or mis-scoped requests are rejected."""

    def test_tampered_header(self, verifier, credentials, signed_at):
        """Changing a signed header breaks the signature."""
        request = sign_request(
            "GET",
            "http://localhost:9000/bucket/key",
            credentials,
            headers={"Range": "bytes=0-9"},
            now=signed_at,
        )
        request.headers["Range"] = "bytes=0-99"
        with pytest.raises(SignatureDoesNotMatch):
            verifier.verify(request, now=signed_at)

    def test_changed_unsigned_header(self, verifier, credentials, signed_at):
        """Changing an unsigned header does not matter."""
        request = sign_request(
            "GET", "http://localhost:9000/bucket/key", credentials, now=signed_at
        )
        request.headers["User-Agent"] = "something-else"
        assert verifier.verify(request, now=signed_at) == ACCESS_KEY

    def test_wrong_secret(self, verifier, signed_at):
        """A signature made with another secret does not match."""
        request = sign_request(
            "GET",
            "http://localhost:9000/bucket",
            Credentials(ACCESS_KEY, "not-the-secret"),
            now=signed_at,
        )
        with pytest.raises(SignatureDoesNotMatch):
            verifier.verify(request, now=signed_at)

    def test_unknown_access_key(self, verifier, signed_at):
        """An access key the verifier does not know is rejected."""
        request = sign_request(
            "GET", "http://localhost:9000/bucket", Credentials("NOPE", "x"), now=signed_at
        )
        with pytest.raises(InvalidAccessKeyId):
            verifier.verify(request, now=signed_at)

    def test_body_mismatch(self, verifier, credentials, signed_at):
        """A body that does not match x-amz-content-sha256 is rejected."""
        signed = sign_request(
            "PUT", "http://localhost:9000/b/k", credentials, body=b"original", now=signed_at
        )
        forged = httpx.Request("PUT", signed.url, headers=signed.headers, content=b"forged")
        with pytest.raises(XAmzContentSHA256Mismatch):
            verifier.verify(forged, now=signed_at)

    def test_clock_skew(self, verifier, credentials, signed_at):
        """A request signed too long ago is rejected."""
        request = sign_request("GET", "http://localhost:9000/b", credentials, now=signed_at)
        with pytest.raises(RequestTimeTooSkewed):
            verifier.verify(request, now=signed_at + timedelta(minutes=16))

    def test_wrong_region(self, verifier, credentials, signed_at):
        """A signature scoped to another region is rejected."""
        request = sign_request(
            "GET", "http://localhost:9000/b", credentials, region="eu-west-1", now=signed_at
        )
        with pytest.raises(AccessDenied):
            verifier.verify(request, now=signed_at)

    def test_missing_auth(self, verifying_client):
        """An unsigned request is denied."""
        response = verifying_client.get("http://localhost:9000/bucket")
        assert response.status_code == 403
        assert response.text == "AccessDenied"


class TestPresignedRoundTrip:
    """Presigned URLs."""

    def test_presigned_get(self, verifying_client, credentials, signed_at):
        """A presigned GET verifies."""
        url = presign_url("GET", "http://localhost:9000/bucket/key", credentials, now=signed_at)
        response = verifying_client.get(url)
        assert response.status_code == 200
        assert response.text == ACCESS_KEY

    def test_presigned_put_with_query(self, verifying_client, credentials, signed_at):
        """A presigned PUT with its own query parameters verifies."""
        url = presign_url(
            "PUT",
            "http://localhost:9000/bucket/key?partNumber=1&uploadId=abc",
            credentials,
            now=signed_at,
        )
        assert verifying_client.put(url, content=b"part data").status_code == 200

    def test_presigned_expired(self, verifier, credentials, signed_at):
        """A presigned URL past its expiry is rejected."""
        url = presign_url(
            "GET", "http://localhost:9000/bucket/key", credentials, expires=60, now=signed_at
        )
        with pytest.raises(ExpiredPresignedUrl):
            verifier.verify(httpx.Request("GET", url), now=signed_at + timedelta(seconds=61))

    def test_presigned_tampered(self, verifier, credentials, signed_at):
        """Changing the path of a presigned URL breaks the signature."""
        url = presign_url("GET", "http://localhost:9000/bucket/key", credentials, now=signed_at)
        tampered = url.replace("/bucket/key", "/bucket/other")
        with pytest.raises(SignatureDoesNotMatch):
            verifier.verify(httpx.Request("GET", tampered), now=signed_at)

    def test_presigned_missing_params(self, verifier, signed_at):
        """Query-string auth without every parameter is rejected."""
        request = httpx.Request(
            "GET", "http://localhost:9000/b?X-Amz-Algorithm=AWS4-HMAC-SHA256"
        )
        with pytest.raises(AuthorizationQueryParametersError):
            verifier.verify(request, now=signed_at)

    def test_both_auth_methods(self, verifier, credentials, signed_at):
        """Header auth and query auth together are ambiguous."""
        url = presign_url("GET", "http://localhost:9000/b", credentials, now=signed_at)
        signed = sign_request("GET", url, credentials, now=signed_at)
        with pytest.raises(AccessDenied):
            verifier.verify(signed, now=signed_at)


class TestVerifierConfig:
    """Verifier construction."""

    def test_custom_clock_skew(self, credentials, signed_at):
        """A wider skew tolerance accepts older requests."""
        verifier = SigV4Verifier({ACCESS_KEY: credentials.secret_key}, clock_skew=3600)
        request = sign_request("GET", "http://localhost:9000/b", credentials, now=signed_at)
        assert verifier.verify(request, now=signed_at + timedelta(minutes=30)) == ACCESS_KEY
