"""Percent encoding for SigV4 canonical URIs and query strings.

The unreserved set is ``A-Z a-z 0-9 - _ . ~ /``. Everything else is encoded
from its UTF-8 bytes as ``%XX`` with uppercase hex digits, so spaces become
``%20`` and never ``+``.
"""

import logging
import re
import urllib.parse

logger = logging.getLogger(__name__)

# Input made only of unreserved characters needs no encoding at all.
UNRESERVED_RE = re.compile(r"[a-zA-Z0-9\-_.~/]+")

# urllib.parse.quote always leaves letters, digits and "_.-~" alone.
_SAFE = "/"


def encode_path(text: str) -> str:
    """Percent-encode ``text`` for use in a canonical URI or query string.

    Characters outside the unreserved set are converted to their UTF-8 byte
    sequence and each byte is emitted as ``%`` plus two uppercase hex digits.

    Bytes that were not valid UTF-8 when the text was decoded (carried as
    surrogate escapes by :func:`decode`) are emitted as the original bytes.
    Any other lone surrogate has no UTF-8 encoding; such text is returned
    unchanged rather than partially encoded. Callers that need strict
    behaviour should validate their input first.

    Args:
        text: The string to encode.

    Returns:
        The percent-encoded ASCII string.
    """
    if UNRESERVED_RE.fullmatch(text):
        return text
    try:
        return urllib.parse.quote(text, safe=_SAFE, encoding="utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        logger.warning("Cannot UTF-8 encode %r; leaving it unescaped", text)
        return text


def plus_to_percent20(text: str) -> str:
    """Rewrite ``+`` emitted by form-style encoders to the ``%20`` SigV4 expects."""
    return text.replace("+", "%20")


def decode(text: str) -> str:
    """Undo :func:`encode_path`, turning ``%XX`` escapes back into UTF-8 text.

    Escapes that do not form valid UTF-8 become surrogate escapes, so
    encoding the result again reproduces the same bytes.
    """
    return urllib.parse.unquote(text, encoding="utf-8", errors="surrogateescape")
