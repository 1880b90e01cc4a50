"""
Turn listing results into a browsable bucket -> folder -> object tree.

Objects in a versioned bucket carry their versions, so a browser can show a
"Latest" node next to the full version history.
"""
from dataclasses import dataclass, field
from typing import List

from structlog import get_logger

from .client import S3Client
from .models import S3CommonPrefix, S3Object, S3ObjectVersion

logger = get_logger()

VERSION_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class Folder:
    prefix: str

    @property
    def name(self) -> str:
        return get_pretty_folder_name(self.prefix)


@dataclass
class PlainObject:
    summary: S3Object

    @property
    def name(self) -> str:
        return get_pretty_object_name(self.summary.key)


@dataclass
class VersionedObject:
    summary: S3Object
    versions: List[S3ObjectVersion] = field(default_factory=list)

    @property
    def name(self) -> str:
        return get_pretty_object_name(self.summary.key)

    @property
    def latest(self) -> S3ObjectVersion | None:
        return next((v for v in self.versions if v.is_latest), None)


Entry = Folder | PlainObject | VersionedObject


@dataclass
class Listing:
    entries: List[Entry]
    is_truncated: bool


def get_pretty_object_name(key: str) -> str:
    """`photos/2013/puppy.jpg` -> `puppy.jpg`"""
    return key.rsplit("/", 1)[-1]


def get_pretty_folder_name(prefix: str) -> str:
    """`photos/2013/` -> `2013/`"""
    idx = prefix.rfind("/", 0, len(prefix) - 1)
    if idx == -1:
        return prefix

    return prefix[idx + 1 :]


def get_version_label(version: S3ObjectVersion) -> str:
    last_modified = version.last_modified.strftime(VERSION_TIMESTAMP_FORMAT)
    if version.is_latest:
        return f"({last_modified}, Latest) {version.version_id}"

    return f"({last_modified}) {version.version_id}"


async def get_versions(client: S3Client, bucket: str, key: str) -> List[S3ObjectVersion]:
    # a prefix query also matches longer keys, e.g. "a.txt" matches "a.txt.bak"
    return [
        version
        async for version in client.list_versions(bucket, key)
        if version.key == key
    ]


async def list_entries(
    client: S3Client,
    bucket: str,
    prefix: str = "",
    *,
    is_versioned: bool | None = None,
) -> Listing:
    """
    List the folders and objects directly under `prefix`.

    `is_versioned` is looked up when not given. A truncated listing is not
    followed; callers should narrow the prefix (see `search`).
    """
    if is_versioned is None:
        is_versioned = await client.is_bucket_versioned(bucket)

    page = await client.list_objects(bucket, prefix)

    entries: List[Entry] = []
    for listed in page:
        if isinstance(listed, S3CommonPrefix):
            entries.append(Folder(prefix=listed.prefix))
        elif is_versioned:
            versions = await get_versions(client, bucket, listed.key)
            entries.append(VersionedObject(summary=listed, versions=versions))
        else:
            entries.append(PlainObject(summary=listed))

    if page.is_truncated:
        logger.info(
            "Listing truncated, use a narrower prefix",
            bucket=bucket,
            prefix=prefix,
        )

    return Listing(entries=entries, is_truncated=page.is_truncated)


async def search(
    client: S3Client, bucket: str, prefix: str, *, is_versioned: bool | None = None
) -> Listing:
    """Entries whose key starts with `prefix`, e.g. `search(c, b, "2013-12-")`."""
    return await list_entries(client, bucket, prefix, is_versioned=is_versioned)


async def read_text(
    client: S3Client,
    bucket: str,
    key: str,
    version: str | None = None,
    encoding: str = "utf-8",
) -> str:
    content = await client.get_content(bucket, key, version)
    return content.decode(encoding)
