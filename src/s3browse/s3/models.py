from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List


@dataclass
class S3ObjectOwner:
    id: str | None
    display_name: str | None


@dataclass
class S3Bucket:
    name: str
    creation_date: datetime


@dataclass
class S3CommonPrefix:
    prefix: str


@dataclass
class S3Object:
    key: str
    last_modified: datetime
    etag: str
    size: int
    storage_class: str
    owner: S3ObjectOwner | None = None

    @property
    def owner_id(self) -> str | None:
        return self.owner.id if self.owner else None

    @property
    def owner_name(self) -> str | None:
        return self.owner.display_name if self.owner else None


@dataclass
class S3ObjectVersion(S3Object):
    version_id: str = ""
    is_latest: bool = False


@dataclass
class S3ListObjectsRes:
    """
    A single ListObjects page.

    Iterating yields the common prefixes first, then the objects.
    """

    entries: List[S3CommonPrefix | S3Object]
    is_truncated: bool
    next_marker: str | None = None
    name: str | None = None
    prefix: str | None = None
    marker: str | None = None
    max_keys: int | None = None
    delimiter: str | None = None

    def __iter__(self) -> Iterator[S3CommonPrefix | S3Object]:
        return iter(self.entries)

    @property
    def common_prefixes(self) -> List[S3CommonPrefix]:
        return [e for e in self.entries if isinstance(e, S3CommonPrefix)]

    @property
    def objects(self) -> List[S3Object]:
        return [e for e in self.entries if isinstance(e, S3Object)]


@dataclass
class S3ListVersionsRes:
    versions: List[S3ObjectVersion]
    is_truncated: bool
    next_key_marker: str | None = None
    next_version_id_marker: str | None = None
    name: str | None = None
    prefix: str | None = None
    key_marker: str | None = None
    version_id_marker: str | None = None
    max_keys: int | None = None
    delimiter: str | None = None
    common_prefixes: List[S3CommonPrefix] = field(default_factory=list)


@dataclass
class S3VersioningConfiguration:
    status: str | None = None
    mfa_delete: str | None = None

    @property
    def is_versioned(self) -> bool:
        """Versioning was enabled at some point, even if now suspended."""
        return (self.status or "").lower() in ("enabled", "suspended")
