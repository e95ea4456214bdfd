"""Canonical request construction for AWS Signature Version 4.

Builds the four canonical strings (URI, query string, headers block, signed
header list) and the canonical request that is hashed into the string to
sign. The output is a byte contract: the verifier rebuilds the same string
from what was transmitted, so ordering, casing and every newline matter.

References:
    - https://docs.aws.amazon.com/IAM/latest/UserGuide/create-signed-request.html
"""

from __future__ import annotations

import urllib.parse
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import NamedTuple, Union

import httpx

from s3sigv4.encoding import decode, encode_path, plus_to_percent20
from s3sigv4.hashing import content_hash_hex

# Headers that never take part in the signature. The first one carries the
# signature itself; the others are rewritten freely by transports and proxies.
IGNORED_HEADERS = frozenset({"authorization", "content-type", "content-length", "user-agent"})

HOST_HEADER = "host"

HeadersInput = Union[httpx.Headers, Mapping[str, Union[str, list[str]]], Iterable[tuple[str, str]]]
QueryInput = Union[str, Mapping[str, Union[str, list[str]]], None]


class CanonicalBuffer:
    """Ordered buffer for assembling canonical strings piece by piece."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def write_line(self, text: str) -> None:
        """Append ``text`` followed by a single ``\\n``."""
        self._parts.append(text)
        self._parts.append("\n")

    def getvalue(self) -> str:
        return "".join(self._parts)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)


@dataclass(frozen=True)
class CanonicalRequest:
    """The canonical form of one request, ready to be hashed.

    Attributes:
        method: HTTP method, uppercase.
        canonical_uri: Percent-encoded path.
        canonical_query: Sorted, encoded query string (may be empty).
        canonical_headers: ``name:value\\n`` lines for every signed header.
        signed_headers: Semicolon-joined signed header names.
        payload_hash: Hex SHA-256 of the body, or ``UNSIGNED-PAYLOAD``.
    """

    method: str
    canonical_uri: str
    canonical_query: str
    canonical_headers: str
    signed_headers: str
    payload_hash: str

    def render(self) -> str:
        """Return the canonical request string.

        The headers block already ends in a newline, so a blank line separates
        it from the signed header list.
        """
        buf = CanonicalBuffer()
        buf.write_line(self.method)
        buf.write_line(self.canonical_uri)
        buf.write_line(self.canonical_query)
        buf.write_line(self.canonical_headers)
        buf.write_line(self.signed_headers)
        buf.write(self.payload_hash)
        return buf.getvalue()

    def hash(self) -> str:
        """Return the hex SHA-256 of the rendered canonical request."""
        return content_hash_hex(self.render().encode("utf-8"))


class CanonicalForm(NamedTuple):
    """The canonical strings derived from a request's method, URL and headers."""

    method: str
    canonical_uri: str
    canonical_query: str
    canonical_headers: str
    signed_headers: str

    def to_request(self, payload_hash: str) -> CanonicalRequest:
        return CanonicalRequest(
            method=self.method,
            canonical_uri=self.canonical_uri,
            canonical_query=self.canonical_query,
            canonical_headers=self.canonical_headers,
            signed_headers=self.signed_headers,
            payload_hash=payload_hash,
        )


def canonicalize(
    method: str,
    path: str,
    query: QueryInput,
    headers: HeadersInput | None,
    host: str,
) -> CanonicalForm:
    """Produce the canonical strings for a request.

    Args:
        method: HTTP method.
        path: The decoded URL path.
        query: Query parameters as a mapping of key to value(s), or a raw
            query string.
        headers: The transport-level headers.
        host: The URL's host component (``host[:port]``), used for the
            synthesized ``host`` header.

    Returns:
        A CanonicalForm with the method, canonical URI, canonical query
        string, canonical headers block and signed header list.
    """
    header_values = select_signed_headers(headers, host)
    names = sorted(header_values)
    return CanonicalForm(
        method=method.upper(),
        canonical_uri=canonical_uri(path),
        canonical_query=canonical_query_string(query),
        canonical_headers=canonical_headers_block(names, header_values),
        signed_headers=";".join(names),
    )


def url_path(url: httpx.URL) -> str:
    """Return the decoded path of ``url``.

    Unlike ``httpx.URL.path`` this keeps escapes that are not valid UTF-8 as
    surrogate escapes, so the canonical URI repeats the bytes of the URL.
    """
    raw_path = url.raw_path.split(b"?", 1)[0].decode("ascii")
    return decode(raw_path)


def canonical_uri(path: str) -> str:
    """Percent-encode a decoded URL path; an empty path becomes ``/``."""
    if not path:
        return "/"
    return plus_to_percent20(encode_path(path))


def parse_query(query: QueryInput) -> dict[str, list[str]]:
    """Normalise query input into an insertion-ordered ``key -> [values]`` map.

    A raw query string is decoded with ``+`` meaning space and blank values
    kept, so ``a=b+c`` and ``a=b%20c`` yield the same parameters. Escapes
    that are not valid UTF-8 survive as surrogate escapes.
    """
    params: dict[str, list[str]] = {}
    if not query:
        return params
    if isinstance(query, str):
        for name, value in urllib.parse.parse_qsl(
            query, keep_blank_values=True, errors="surrogateescape"
        ):
            params.setdefault(name, []).append(value)
        return params
    for name, value in query.items():
        values = [value] if isinstance(value, str) else list(value)
        params.setdefault(name, []).extend(values)
    return params


def canonical_query_string(query: QueryInput) -> str:
    """Build the canonical query string.

    Keys are sorted by code point, which matches UTF-8 byte order. Every value
    of a key is emitted in its original order as ``key=value``; pairs are
    joined with ``&``.

    Args:
        query: Query parameters as a mapping or a raw query string.

    Returns:
        The canonical query string, empty when there are no parameters.
    """
    params = parse_query(query)
    pairs = []
    for name in sorted(params):
        prefix = plus_to_percent20(encode_path(name)) + "="
        for value in params[name]:
            pairs.append(prefix + plus_to_percent20(encode_path(value)))
    return "&".join(pairs)


def header_items(headers: HeadersInput | None) -> list[tuple[str, str]]:
    """Flatten any supported header input into ``(name, value)`` pairs."""
    if headers is None:
        return []
    if isinstance(headers, httpx.Headers):
        return headers.multi_items()
    if isinstance(headers, Mapping):
        items: list[tuple[str, str]] = []
        for name, value in headers.items():
            if isinstance(value, str):
                items.append((name, value))
            else:
                items.extend((name, v) for v in value)
        return items
    return list(headers)


def select_signed_headers(headers: HeadersInput | None, host: str) -> dict[str, list[str]]:
    """Pick the headers that take part in the signature.

    Ignored headers are dropped and names are lower-cased, merging values of
    names that differ only in case. Any ``host`` header present in the input
    is replaced by a synthesized one carrying ``host``.

    Args:
        headers: The transport-level headers.
        host: The URL's host component.

    Returns:
        Lower-cased header name to its values in insertion order.
    """
    selected: dict[str, list[str]] = {}
    for name, value in header_items(headers):
        lower_name = name.lower()
        if lower_name in IGNORED_HEADERS or lower_name == HOST_HEADER:
            continue
        selected.setdefault(lower_name, []).append(value)
    selected[HOST_HEADER] = [host]
    return selected


def canonical_headers_block(names: list[str], values: Mapping[str, list[str]]) -> str:
    """Render ``name:v1,v2\\n`` for each of ``names`` in the given order."""
    buf = CanonicalBuffer()
    for name in names:
        buf.write(name)
        buf.write(":")
        buf.write_line(",".join(values[name]))
    return buf.getvalue()
