import logging
from pathlib import Path
from typing import Optional

from ..client import NuGetClient
from ..types import PackageIdentity, UnitResult

logger = logging.getLogger(__name__)

PUSH_TIMEOUT_SECONDS = 5 * 60


class DestinationImporter:
    """
    Wraps the destination registry: existence checks against its flat
    container and pushes to its publish endpoint.
    """

    def __init__(self, client: NuGetClient, api_key: Optional[str] = None) -> None:
        self._client = client
        self._api_key = api_key

    # ---------- existence ----------

    async def package_exists(self, package: PackageIdentity) -> bool:
        versions = await self._client.list_versions(package.id)
        if versions is None:
            return False
        return package.lower_version in versions

    # ---------- push ----------

    async def push_package(self, package: PackageIdentity, path: Path) -> bool:
        logger.info("Pushing package %s at path %s...", package, path)
        return await self._client.push(
            path,
            api_key=self._api_key,
            timeout=PUSH_TIMEOUT_SECONDS,
            skip_duplicate=True,
        )

    async def upload(self, package: PackageIdentity, path: Path) -> UnitResult:
        """
        Push one archive and always delete it afterwards. Push errors are
        logged and returned as a failed result.
        """
        try:
            pushed = await self.push_package(package, path)
        except Exception as e:
            logger.exception("Unable to process package: %s (archive %s)", package, path)
            return UnitResult.failed(package, f"upload: {e!r}", path)
        finally:
            path.unlink(missing_ok=True)

        if pushed:
            return UnitResult.uploaded(package, path)
        return UnitResult.skipped(package, path)


__all__ = ["DestinationImporter"]
