"""Shared pytest fixtures for s3sigv4 tests.

Credentials and timestamps follow the AWS S3 SigV4 documentation examples
so that published signatures can be used as fixed vectors.
"""

from datetime import datetime

import httpx
import pytest

from s3sigv4.errors import SigV4Error
from s3sigv4.request import Credentials
from s3sigv4.verify import SigV4Verifier
from tests.vectors import ACCESS_KEY, EXAMPLE_INSTANT, SECRET_KEY


@pytest.fixture
def credentials() -> Credentials:
    """The AWS documentation example key pair."""
    return Credentials(ACCESS_KEY, SECRET_KEY)


@pytest.fixture
def signed_at() -> datetime:
    """The instant used by the AWS documentation examples."""
    return EXAMPLE_INSTANT


@pytest.fixture
def verifier() -> SigV4Verifier:
    """A verifier that knows the example key pair."""
    return SigV4Verifier({ACCESS_KEY: SECRET_KEY}, region="us-east-1")


@pytest.fixture
def verifying_client(verifier, signed_at):
    """An httpx client whose transport verifies every request it receives.

    The response is 200 with the authenticated access key as body, or the
    error's HTTP status with its S3 error code as body.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        try:
            access_key = verifier.verify(request, now=signed_at)
        except SigV4Error as exc:
            return httpx.Response(exc.http_status, text=exc.code)
        return httpx.Response(200, text=access_key)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client
