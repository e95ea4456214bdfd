"""Byte digests used by the signing pipeline.

SHA-256 is the content hash that goes into the canonical request and the
``x-amz-content-sha256`` header. MD5 is only used for the ``Content-Md5``
integrity header and never takes part in the signature itself.
"""

import base64
import hashlib

# SHA-256 of the zero-length byte string, the payload hash of a bodiless request.
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def content_hash(data: bytes) -> bytes:
    """Return the 32-byte SHA-256 digest of ``data``."""
    return hashlib.sha256(data).digest()


def content_hash_hex(data: bytes | None) -> str:
    """Return the lowercase hex SHA-256 of ``data``.

    Args:
        data: The payload bytes. ``None`` is hashed as the empty payload.

    Returns:
        64-character lowercase hex string.
    """
    if data is None:
        return EMPTY_SHA256
    return hashlib.sha256(data).hexdigest()


def checksum(data: bytes) -> bytes:
    """Return the 16-byte MD5 digest of ``data``."""
    return hashlib.md5(data).digest()


def checksum_base64(data: bytes) -> str:
    """Return the ``Content-Md5`` header value for ``data``."""
    return base64.b64encode(checksum(data)).decode("ascii")
