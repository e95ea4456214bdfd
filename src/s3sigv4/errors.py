"""S3-compatible error definitions for the SigV4 signer and verifier."""


class SigV4Error(Exception):
    """A signing or verification failure shaped like an S3 error.

    Attributes:
        code: The S3 error code string (e.g. "SignatureDoesNotMatch").
        message: Human-readable error description.
        http_status: The HTTP status a server would answer with.
    """

    def __init__(self, code: str, message: str, http_status: int = 400) -> None:
        """Initialize the error.

        Args:
            code: S3 error code.
            message: Error description.
            http_status: HTTP status code (default 400).
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status


# -- Signing-side errors -------------------------------------------------------


class BodyReadError(SigV4Error):
    """The request body could not be read for hashing."""

    def __init__(self, message: str = "Failed to read the request body for hashing.") -> None:
        super().__init__(code="IncompleteBody", message=message, http_status=400)


class InvalidRequestURL(SigV4Error):
    """The target URL could not be parsed."""

    def __init__(self, url: str = "") -> None:
        message = f"Couldn't parse the specified URI: {url!r}" if url else "Invalid URI."
        super().__init__(code="InvalidURI", message=message, http_status=400)
        self.url = url


class InvalidArgument(SigV4Error):
    """An invalid argument was provided."""

    def __init__(self, message: str = "Invalid Argument") -> None:
        super().__init__(code="InvalidArgument", message=message, http_status=400)


# -- Verification-side errors --------------------------------------------------


class AccessDenied(SigV4Error):
    """Access denied error."""

    def __init__(self, message: str = "Access Denied") -> None:
        super().__init__(code="AccessDenied", message=message, http_status=403)


class InvalidAccessKeyId(SigV4Error):
    """The access key Id is not known to the verifier."""

    def __init__(
        self, message: str = "The AWS access key Id you provided does not exist in our records."
    ) -> None:
        super().__init__(code="InvalidAccessKeyId", message=message, http_status=403)


class SignatureDoesNotMatch(SigV4Error):
    """The request signature does not match."""

    def __init__(
        self,
        message: str = "The request signature we calculated does not match the signature you provided.",
    ) -> None:
        super().__init__(code="SignatureDoesNotMatch", message=message, http_status=403)


class RequestTimeTooSkewed(SigV4Error):
    """The difference between the request time and the verifier's time is too large."""

    def __init__(
        self,
        message: str = "The difference between the request time and the current time is too large.",
    ) -> None:
        super().__init__(code="RequestTimeTooSkewed", message=message, http_status=403)


class ExpiredPresignedUrl(SigV4Error):
    """The presigned URL has expired."""

    def __init__(self, message: str = "Request has expired.") -> None:
        super().__init__(code="AccessDenied", message=message, http_status=403)


class AuthorizationQueryParametersError(SigV4Error):
    """Error with authorization query parameters (presigned URLs)."""

    def __init__(
        self,
        message: str = "Query-string authentication requires the X-Amz-Algorithm, X-Amz-Credential, X-Amz-Signature, X-Amz-Date, X-Amz-SignedHeaders, and X-Amz-Expires parameters.",
    ) -> None:
        super().__init__(code="AuthorizationQueryParametersError", message=message, http_status=400)


class XAmzContentSHA256Mismatch(SigV4Error):
    """The body does not hash to the declared x-amz-content-sha256 value."""

    def __init__(
        self,
        message: str = "The provided 'x-amz-content-sha256' header does not match what was computed.",
    ) -> None:
        super().__init__(code="XAmzContentSHA256Mismatch", message=message, http_status=400)
