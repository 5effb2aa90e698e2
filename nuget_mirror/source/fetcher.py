# nuget_mirror/source/fetcher.py
import logging
import os
import tempfile
from pathlib import Path
from typing import AsyncIterator, List

from ..client import NuGetClient
from ..types import PackageIdentity

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 100
# Matches the default copy buffer of most runtimes (80 KiB).
COPY_BUFFER_SIZE = 81920


class SourceFetcher:
    """
    High-level helper around the source registry:
      - discovery of every (id, version) exposed by search
      - archive download into temporary files
    """

    def __init__(self, client: NuGetClient, *, page_size: int = SEARCH_PAGE_SIZE) -> None:
        self._client = client
        self._page_size = page_size

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def discover_packages(self) -> AsyncIterator[PackageIdentity]:
        """Yield every package identity, paging until a page comes back empty."""
        skip = 0

        while True:
            hits = await self._client.search("", skip=skip, take=self._page_size, prerelease=True)
            if not hits:
                break
            skip += len(hits)
            logger.debug("Search page returned %d hits (skip now %d)", len(hits), skip)

            for hit in hits:
                package_id = hit["id"]
                for version in await self._versions_of(hit):
                    yield PackageIdentity(package_id, version)

    async def _versions_of(self, hit: dict) -> List[str]:
        versions = hit.get("versions")
        if isinstance(versions, list):
            return [str(v["version"]) if isinstance(v, dict) else str(v) for v in versions]

        listed = await self._client.list_versions(hit["id"])
        return listed or []

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    async def download_package(self, package: PackageIdentity) -> Path:
        """
        Stream the archive of one identity into a new temporary file and
        return its path. The file is removed if the download fails.
        """
        url = await self._client.package_url(package.id, package.normalized_version)
        fd, name = tempfile.mkstemp(suffix=".nupkg")
        path = Path(name)

        try:
            with os.fdopen(fd, "w+b", buffering=COPY_BUFFER_SIZE) as f:
                async with self._client.stream(url) as resp:
                    async for chunk in resp.aiter_bytes(chunk_size=COPY_BUFFER_SIZE):
                        f.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.debug("Downloaded %s to %s", package, path)
        return path
