class S3Error(Exception):
    """Base class for every error raised by s3browse."""


class HttpError(S3Error):
    def __init__(
        self,
        status: int,
        reason: str,
        context: str,
        aws_code: str | None = None,
        aws_message: str | None = None,
    ):
        self.status = status
        self.reason = reason
        self.context = context
        self.aws_code = aws_code
        self.aws_message = aws_message

    def __str__(self):
        message = f"Client error '{self.status} {self.reason}'. Context: {self.context}"
        if self.aws_code:
            message += f". AWS: {self.aws_code} ({self.aws_message})"
        return message


class AuthenticationError(HttpError):
    """401/403, usually a signature mismatch or an invalid credential."""


class NotFoundError(HttpError):
    """404, no such bucket or key."""


class TransportError(S3Error):
    def __init__(self, context: str, reason: str):
        self.context = context
        self.reason = reason

    def __str__(self):
        return f"Transport error '{self.reason}'. Context: {self.context}"


class ResponseFormatError(S3Error):
    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason

    def __str__(self):
        return f"Malformed {self.document} response: {self.reason}"


class MissingCredentialError(S3Error, ValueError):
    def __init__(self, variable: str):
        self.variable = variable

    def __str__(self):
        return f"Environment variable {self.variable} is not set"
