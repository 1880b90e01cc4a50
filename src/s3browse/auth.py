"""
AWS Signature Version 2 request signing for S3 REST GET requests.

https://docs.aws.amazon.com/AmazonS3/latest/userguide/RESTAuthentication.html

Every request is path-style, i.e. instead of
    https://johnsmith.s3.amazonaws.com/photos/puppy.jpg
the URI used is
    https://s3.amazonaws.com/johnsmith/photos/puppy.jpg
"""
import base64
import hashlib
import hmac
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Final, Mapping

from httpx import Headers, Request
from structlog import get_logger

from .exceptions import MissingCredentialError

logger = get_logger()

DEFAULT_ENDPOINT: Final = "https://s3.amazonaws.com"
USER_AGENT: Final = "s3browse (https://pypi.org/project/s3browse/)"

SUBRESOURCES: Final = frozenset(
    [
        "acl",
        "cors",
        "delete",
        "lifecycle",
        "location",
        "logging",
        "notification",
        "partNumber",
        "policy",
        "requestPayment",
        "restore",
        "tagging",
        "torrent",
        "uploadId",
        "uploads",
        "versionId",
        "versioning",
        "versions",
        "website",
    ]
)

AMZ_HEADER_PREFIX: Final = "x-amz-"


@dataclass(frozen=True)
class Credential:
    access_key: str
    secret_key: str = field(repr=False)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Credential":
        environ = os.environ if environ is None else environ
        values = {}
        for variable in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"):
            value = environ.get(variable)
            if not value:
                raise MissingCredentialError(variable)
            values[variable] = value

        return cls(
            access_key=values["AWS_ACCESS_KEY_ID"],
            secret_key=values["AWS_SECRET_ACCESS_KEY"],
        )


def get_timestamp_rfc822(date: datetime) -> str:
    """
    Format `date` as e.g. "Tue, 27 Mar 2007 19:36:42 GMT".

    Day and month names are always English, whatever the process locale.
    Naive datetimes are taken to be UTC.
    """
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    else:
        date = date.astimezone(timezone.utc)

    return format_datetime(date.replace(microsecond=0), usegmt=True)


def get_canonical_resource(relative_path: str) -> str:
    """
    Reduce `/bucket[/key][?query]` to the resource string S3 expects signed.

    Only sub-resources survive from the query string; request parameters such
    as `prefix` or `max-keys` are not part of the signature. Value-less
    sub-resources come first, then the rest, each group ordered by name.
    """
    path, has_query, query = relative_path.partition("?")
    if not has_query:
        return path

    subresources = []
    for part in re.split(r"[&;]", query):
        if not part:
            continue
        param, has_value, value = part.partition("=")
        if param not in SUBRESOURCES:
            continue
        if has_value and value == "":
            continue
        subresources.append((param, value if has_value else None))

    if not subresources:
        return path

    subresources.sort(key=lambda item: (item[1] is not None, item[0]))
    subresource_parts = [
        param if value is None else f"{param}={value}"
        for param, value in subresources
    ]

    return f"{path}?{'&'.join(subresource_parts)}"


def get_canonical_amz_headers(headers: Mapping[str, str] | Headers) -> str:
    amz_headers: dict[str, list[str]] = {}
    for name, value in Headers(headers).multi_items():
        name = name.lower()
        if not name.startswith(AMZ_HEADER_PREFIX):
            continue
        amz_headers.setdefault(name, []).append(value.strip())

    return "\n".join(
        f"{name}:{','.join(values)}" for name, values in sorted(amz_headers.items())
    )


def get_string_to_sign(
    relative_path: str,
    headers: Mapping[str, str] | Headers,
    date: str,
    *,
    method: str = "GET",
    content_md5: str = "",
    content_type: str = "",
) -> str:
    canonical_amz_headers = get_canonical_amz_headers(headers)
    if canonical_amz_headers:
        # each canonical header line is newline terminated, the last included
        canonical_amz_headers += "\n"

    string_to_sign_parts = [method, content_md5, content_type, date]
    string_to_sign = "\n".join(string_to_sign_parts) + "\n"

    return string_to_sign + canonical_amz_headers + get_canonical_resource(relative_path)


def get_signature(secret_key: str, string_to_sign: str) -> str:
    digest = hmac.new(
        secret_key.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1
    ).digest()

    return base64.b64encode(digest).decode("ascii")


def build_request(
    relative_path: str,
    credential: Credential,
    *,
    endpoint: str = DEFAULT_ENDPOINT,
    now: datetime | None = None,
    date: str | None = None,
) -> Request:
    """
    Build a signed GET request for `relative_path` (e.g. "/bucket/?versioning").

    `relative_path` must already be percent-encoded; the same string is used
    for the request URI and the canonical resource. `date` is a preformatted
    `Date` header value and wins over `now`. No I/O happens here.
    """
    if not relative_path.startswith("/"):
        raise ValueError(f"Relative path must start with '/': {relative_path!r}")

    request = Request(method="GET", url=f"{endpoint.rstrip('/')}{relative_path}")
    if date is None:
        date = get_timestamp_rfc822(now or datetime.now(timezone.utc))
    request.headers["Date"] = date
    request.headers["User-Agent"] = USER_AGENT

    string_to_sign = get_string_to_sign(
        relative_path, request.headers, request.headers["Date"]
    )
    logger.debug("Signing request", string_to_sign=string_to_sign)

    signature = get_signature(credential.secret_key, string_to_sign)
    request.headers["Authorization"] = f"AWS {credential.access_key}:{signature}"

    return request
