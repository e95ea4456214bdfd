"""s3sigv4 - AWS Signature Version 4 signing for S3-compatible APIs."""

from s3sigv4.names import NameGenerator
from s3sigv4.request import Credentials, Signer, presign_url, sign_request
from s3sigv4.urls import object_url, target_url
from s3sigv4.verify import SigV4Verifier

__version__ = "0.1.0"

__all__ = [
    "Credentials",
    "NameGenerator",
    "SigV4Verifier",
    "Signer",
    "object_url",
    "presign_url",
    "sign_request",
    "target_url",
]
