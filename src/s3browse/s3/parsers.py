"""
Map S3 XML responses (namespace http://s3.amazonaws.com/doc/2006-03-01/) onto
the dataclasses in `models`.

A missing root element or required field raises `ResponseFormatError`; nothing
is silently defaulted.
"""
from datetime import datetime, timezone
from typing import List

from bs4 import BeautifulSoup, Tag

from s3browse.exceptions import ResponseFormatError

from .models import (S3Bucket, S3CommonPrefix, S3ListObjectsRes,
                     S3ListVersionsRes, S3Object, S3ObjectOwner,
                     S3ObjectVersion, S3VersioningConfiguration)

TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%SZ")


def _get_root(content: bytes, document: str) -> Tag:
    soup = BeautifulSoup(content, "xml")
    root_el = soup.find(document)
    if not isinstance(root_el, Tag):
        raise ResponseFormatError(document, f"missing <{document}> root element")

    return root_el


def _optional_text(el: Tag, name: str) -> str | None:
    child_el = el.find(name, recursive=False)
    if not isinstance(child_el, Tag):
        return None

    return child_el.text


def _text(el: Tag, name: str, document: str) -> str:
    value = _optional_text(el, name)
    if value is None:
        raise ResponseFormatError(document, f"<{el.name}> has no <{name}>")

    return value


def _int(value: str, document: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ResponseFormatError(document, f"{value!r} is not an integer") from None


def _optional_int(value: str | None, document: str) -> int | None:
    return None if value is None else _int(value, document)


def _bool(value: str, document: str) -> bool:
    match value.strip().lower():
        case "true":
            return True
        case "false":
            return False
        case _:
            raise ResponseFormatError(document, f"{value!r} is not a boolean")


def _timestamp(value: str, document: str) -> datetime:
    for timestamp_format in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(value, timestamp_format)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)

    raise ResponseFormatError(document, f"{value!r} is not an ISO 8601 timestamp")


def _parse_owner(el: Tag) -> S3ObjectOwner | None:
    owner_el = el.find("Owner", recursive=False)
    if not isinstance(owner_el, Tag):
        return None

    return S3ObjectOwner(
        id=_optional_text(owner_el, "ID"),
        display_name=_optional_text(owner_el, "DisplayName"),
    )


def _parse_object_fields(el: Tag, document: str) -> dict:
    return {
        "key": _text(el, "Key", document),
        "last_modified": _timestamp(_text(el, "LastModified", document), document),
        "etag": _text(el, "ETag", document).strip('"'),
        "size": _int(_text(el, "Size", document), document),
        "storage_class": _text(el, "StorageClass", document),
        "owner": _parse_owner(el),
    }


def _parse_common_prefixes(root_el: Tag, document: str) -> List[S3CommonPrefix]:
    return [
        S3CommonPrefix(prefix=_text(prefix_el, "Prefix", document))
        for prefix_el in root_el.find_all("CommonPrefixes", recursive=False)
    ]


def parse_list_buckets(content: bytes) -> List[S3Bucket]:
    document = "ListAllMyBucketsResult"
    root_el = _get_root(content, document)

    buckets_el = root_el.find("Buckets", recursive=False)
    if not isinstance(buckets_el, Tag):
        raise ResponseFormatError(document, "missing <Buckets>")

    buckets = []
    for bucket_el in buckets_el.find_all("Bucket", recursive=False):
        bucket = S3Bucket(
            name=_text(bucket_el, "Name", document),
            creation_date=_timestamp(
                _text(bucket_el, "CreationDate", document), document
            ),
        )
        buckets.append(bucket)

    return buckets


def parse_versioning_configuration(content: bytes) -> S3VersioningConfiguration:
    document = "VersioningConfiguration"
    root_el = _get_root(content, document)

    return S3VersioningConfiguration(
        status=_optional_text(root_el, "Status"),
        mfa_delete=_optional_text(root_el, "MfaDelete"),
    )


def parse_list_objects(content: bytes) -> S3ListObjectsRes:
    document = "ListBucketResult"
    root_el = _get_root(content, document)

    entries: List[S3CommonPrefix | S3Object] = []
    entries.extend(_parse_common_prefixes(root_el, document))
    for content_el in root_el.find_all("Contents", recursive=False):
        entries.append(S3Object(**_parse_object_fields(content_el, document)))

    return S3ListObjectsRes(
        entries=entries,
        is_truncated=_bool(_text(root_el, "IsTruncated", document), document),
        next_marker=_optional_text(root_el, "NextMarker") or None,
        name=_optional_text(root_el, "Name"),
        prefix=_optional_text(root_el, "Prefix"),
        marker=_optional_text(root_el, "Marker"),
        max_keys=_optional_int(_optional_text(root_el, "MaxKeys"), document),
        delimiter=_optional_text(root_el, "Delimiter"),
    )


def parse_list_versions(content: bytes) -> S3ListVersionsRes:
    document = "ListVersionsResult"
    root_el = _get_root(content, document)

    versions = []
    for version_el in root_el.find_all("Version", recursive=False):
        version = S3ObjectVersion(
            **_parse_object_fields(version_el, document),
            version_id=_text(version_el, "VersionId", document),
            is_latest=_bool(_text(version_el, "IsLatest", document), document),
        )
        versions.append(version)

    return S3ListVersionsRes(
        versions=versions,
        is_truncated=_bool(_text(root_el, "IsTruncated", document), document),
        next_key_marker=_optional_text(root_el, "NextKeyMarker") or None,
        next_version_id_marker=_optional_text(root_el, "NextVersionIdMarker") or None,
        name=_optional_text(root_el, "Name"),
        prefix=_optional_text(root_el, "Prefix"),
        key_marker=_optional_text(root_el, "KeyMarker"),
        version_id_marker=_optional_text(root_el, "VersionIdMarker"),
        max_keys=_optional_int(_optional_text(root_el, "MaxKeys"), document),
        delimiter=_optional_text(root_el, "Delimiter"),
        common_prefixes=_parse_common_prefixes(root_el, document),
    )
