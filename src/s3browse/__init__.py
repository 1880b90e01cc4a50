from .auth import Credential
from .exceptions import (AuthenticationError, HttpError,
                         MissingCredentialError, NotFoundError,
                         ResponseFormatError, S3Error, TransportError)
from .s3.client import S3Client

__all__ = [
    "AuthenticationError",
    "Credential",
    "HttpError",
    "MissingCredentialError",
    "NotFoundError",
    "ResponseFormatError",
    "S3Client",
    "S3Error",
    "TransportError",
]
