from typing import AsyncIterator, List
from urllib.parse import quote

import httpx
from structlog import get_logger

from s3browse.core import AwsClient
from s3browse.exceptions import TransportError

from .models import (S3Bucket, S3ListObjectsRes, S3ListVersionsRes,
                     S3ObjectVersion, S3VersioningConfiguration)
from .parsers import (parse_list_buckets, parse_list_objects,
                      parse_list_versions, parse_versioning_configuration)

logger = get_logger()

MAX_KEYS = 1000
DELIMITER = "/"


def _quote_param(value: str) -> str:
    return quote(value, safe="/")


def _quote_key(key: str) -> str:
    # "." and ".." segments are legal in keys but would be collapsed by URL
    # normalization, leaving a path that no longer matches the signature
    segments = []
    for segment in key.split("/"):
        if segment in (".", ".."):
            segments.append(segment.replace(".", "%2E"))
        else:
            segments.append(quote(segment, safe="~"))
    return "/".join(segments)


class S3Client(AwsClient):
    """
    Read-only S3 client: list buckets, objects and object versions, and fetch
    object content.

    Each call issues and awaits its requests one at a time; nothing is retried.
    """

    async def list_buckets(self) -> List[S3Bucket]:
        res = await self._make_request("/")
        return parse_list_buckets(res.content)

    async def get_bucket_versioning(self, bucket: str) -> S3VersioningConfiguration:
        res = await self._make_request(f"/{bucket}/?versioning")
        return parse_versioning_configuration(res.content)

    async def is_bucket_versioned(self, bucket: str) -> bool:
        """
        Whether versioning has been enabled on `bucket` at some point.

        Not cached, every call is a request.
        """
        versioning_configuration = await self.get_bucket_versioning(bucket)
        return versioning_configuration.is_versioned

    async def list_objects(
        self, bucket: str, prefix: str = "", *, marker: str | None = None
    ) -> S3ListObjectsRes:
        """
        List one page (up to 1000 entries) of the "folder" at `prefix`.

        This does not paginate. When `is_truncated` is set, narrow the prefix
        or pass `next_marker` back in as `marker`.
        """
        relative_path = (
            f"/{bucket}/?prefix={_quote_param(prefix)}"
            f"&max-keys={MAX_KEYS}&delimiter={DELIMITER}"
        )
        if marker:
            relative_path += f"&marker={_quote_param(marker)}"

        logger.debug("Listing objects", bucket=bucket, prefix=prefix, marker=marker)
        res = await self._make_request(relative_path)

        return parse_list_objects(res.content)

    async def list_versions_page(
        self,
        bucket: str,
        key: str,
        *,
        version_id_marker: str | None = None,
        key_marker: str | None = None,
    ) -> S3ListVersionsRes:
        relative_path = (
            f"/{bucket}/?versions&prefix={_quote_param(key)}"
            f"&max-keys={MAX_KEYS}&delimiter={DELIMITER}"
        )
        if version_id_marker:
            key_marker = key_marker or key
            relative_path += (
                f"&version-id-marker={_quote_param(version_id_marker)}"
                f"&key-marker={_quote_param(key_marker)}"
            )

        logger.debug(
            "Listing versions",
            bucket=bucket,
            key=key,
            version_id_marker=version_id_marker,
            key_marker=key_marker,
        )
        res = await self._make_request(relative_path)

        return parse_list_versions(res.content)

    async def list_versions(
        self, bucket: str, key: str, version_id_marker: str | None = None
    ) -> AsyncIterator[S3ObjectVersion]:
        """
        Yield every version under `key`, newest first, following the
        pagination cursor until S3 stops returning one.

        Versions come out in the order S3 returns them. To resume a listing,
        call again with the last seen `version_id_marker`.
        """
        key_marker = None
        while True:
            page = await self.list_versions_page(
                bucket,
                key,
                version_id_marker=version_id_marker,
                key_marker=key_marker,
            )
            for version in page.versions:
                yield version

            if not page.next_version_id_marker:
                break
            version_id_marker = page.next_version_id_marker
            key_marker = page.next_key_marker

    async def get_content(
        self, bucket: str, key: str, version: str | None = None
    ) -> bytes:
        """
        Download the whole object into memory.

        Meant for browsing small files; there are no range reads.
        """
        relative_path = f"/{bucket}/{_quote_key(key)}"
        if version:
            relative_path += f"?versionId={quote(version, safe='')}"

        res = await self._make_request(relative_path, stream=True)
        content = bytearray()
        try:
            async for chunk in res.aiter_bytes():
                content.extend(chunk)
        except httpx.TransportError as e:
            logger.error("HttpRequest transport error", path=relative_path, error=str(e))
            raise TransportError(context=relative_path, reason=str(e)) from e
        finally:
            await res.aclose()

        return bytes(content)
