"""Formatting and parsing of the SigV4 ``Authorization`` header value."""

from __future__ import annotations

import re
from dataclasses import dataclass

from s3sigv4.errors import AccessDenied
from s3sigv4.signing import ALGORITHM, SCOPE_TERMINATOR, SigningScope

# Example: AWS4-HMAC-SHA256 Credential=AKID/20260222/us-east-1/s3/aws4_request,
#          SignedHeaders=host;x-amz-date, Signature=abcdef...
AUTH_HEADER_RE = re.compile(
    r"AWS4-HMAC-SHA256\s+"
    r"Credential=(?P<credential>[^,]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]{64})"
)


@dataclass(frozen=True)
class ParsedAuthorization:
    """The parts of an ``Authorization`` header value."""

    access_key: str
    scope: SigningScope
    signed_headers: list[str]
    signature: str


def assemble(
    access_key: str, scope: SigningScope | str, signed_headers: str, signature: str
) -> str:
    """Format the ``Authorization`` header value.

    Args:
        access_key: The access key identifier.
        scope: The credential scope.
        signed_headers: Semicolon-joined signed header names.
        signature: Hex signature.

    Returns:
        ``AWS4-HMAC-SHA256 Credential=<key>/<scope>, SignedHeaders=<list>, Signature=<sig>``
    """
    return (
        f"{ALGORITHM} Credential={access_key}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def parse_credential(credential: str) -> tuple[str, SigningScope]:
    """Split ``<access_key>/<date>/<region>/<service>/aws4_request``.

    Raises:
        AccessDenied: If the credential has the wrong shape or terminator.
    """
    parts = credential.split("/")
    if len(parts) != 5:
        raise AccessDenied("Invalid Credential format.")
    access_key, date, region, service, terminator = parts
    if terminator != SCOPE_TERMINATOR:
        raise AccessDenied(f"Invalid credential scope terminator: {terminator}")
    return access_key, SigningScope(date=date, region=region, service=service)


def parse(header: str) -> ParsedAuthorization:
    """Parse an ``Authorization`` header value.

    Raises:
        AccessDenied: If the header format is invalid.
    """
    match = AUTH_HEADER_RE.match(header)
    if not match:
        raise AccessDenied("Invalid Authorization header format.")
    access_key, scope = parse_credential(match.group("credential"))
    return ParsedAuthorization(
        access_key=access_key,
        scope=scope,
        signed_headers=match.group("signed_headers").split(";"),
        signature=match.group("signature"),
    )
