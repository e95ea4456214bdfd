"""Request URLs for S3 bucket, object and multipart operations.

Every helper returns ``endpoint/bucket/key?query`` with the key and query
already percent-encoded the way the signer canonicalizes them, so the URL
handed to :func:`s3sigv4.request.sign_request` is sent unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping

from s3sigv4.canonical import canonical_query_string
from s3sigv4.encoding import encode_path


def target_url(
    endpoint: str,
    bucket: str = "",
    key: str = "",
    query: Mapping[str, str | list[str]] | None = None,
) -> str:
    """Build a request URL.

    Args:
        endpoint: Scheme and host, e.g. ``http://localhost:9000``.
        bucket: Bucket name, used as given. Empty for service-level requests.
        key: Object key, percent-encoded with ``/`` kept.
        query: Query parameters; emitted sorted by name, values in order.

    Returns:
        The absolute URL.
    """
    url = endpoint.rstrip("/") + "/"
    if bucket:
        url += bucket + "/"
    if key:
        url += encode_path(key)
    if query:
        url += "?" + canonical_query_string(query)
    return url


def service_url(endpoint: str) -> str:
    """URL for listing buckets."""
    return target_url(endpoint)


def bucket_url(endpoint: str, bucket: str) -> str:
    """URL for creating, heading or deleting a bucket."""
    return target_url(endpoint, bucket)


def object_url(endpoint: str, bucket: str, key: str) -> str:
    """URL for putting, getting, heading or deleting an object."""
    return target_url(endpoint, bucket, key)


def policy_url(endpoint: str, bucket: str) -> str:
    """URL for putting, getting or deleting a bucket policy."""
    return target_url(endpoint, bucket, query={"policy": ""})


def list_objects_url(endpoint: str, bucket: str, max_keys: int | None = None) -> str:
    """URL for listing a bucket, optionally capped at ``max_keys`` entries."""
    query = {} if max_keys is None else {"max-keys": str(max_keys)}
    return target_url(endpoint, bucket, query=query)


def new_multipart_url(endpoint: str, bucket: str, key: str) -> str:
    """URL for initiating a multipart upload."""
    return target_url(endpoint, bucket, key, {"uploads": ""})


def part_upload_url(
    endpoint: str, bucket: str, key: str, upload_id: str, part_number: int
) -> str:
    """URL for uploading one part of a multipart upload."""
    return target_url(
        endpoint, bucket, key, {"uploadId": upload_id, "partNumber": str(part_number)}
    )


def upload_url(endpoint: str, bucket: str, key: str, upload_id: str) -> str:
    """URL for completing or aborting a multipart upload."""
    return target_url(endpoint, bucket, key, {"uploadId": upload_id})


def list_uploads_url(endpoint: str, bucket: str) -> str:
    """URL for listing the multipart uploads in progress in a bucket."""
    return target_url(endpoint, bucket, query={"uploads": ""})


def list_parts_url(
    endpoint: str, bucket: str, key: str, upload_id: str, max_parts: int | None = None
) -> str:
    """URL for listing the uploaded parts of a multipart upload."""
    query = {"uploadId": upload_id}
    if max_parts is not None:
        query["max-parts"] = str(max_parts)
    return target_url(endpoint, bucket, key, query)
