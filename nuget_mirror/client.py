import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from . import __version__
from .utils import resolve_resource

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 100.0


class MetadataCache:
    """
    Run-scoped HTTP metadata shared by every unit of work: service indexes
    by URL and flat-container version lists by (base address, lower id).
    """

    def __init__(self) -> None:
        self.indexes: Dict[str, Dict[str, Any]] = {}
        self.versions: Dict[tuple, Optional[List[str]]] = {}


class NuGetClient:
    """Client for one NuGet V3 package source."""

    def __init__(
        self,
        index_url: str,
        cache: Optional[MetadataCache] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):

        self.index_url = index_url.strip()

        self.cache = cache if cache is not None else MetadataCache()

        self._http = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={"User-Agent": f"nuget-mirror/{__version__}"},
        )

    async def __aenter__(self) -> "NuGetClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Perform a GET request and raise on HTTP errors."""

        response = await self._http.get(url, params=params)
        response.raise_for_status()
        return response

    # ---------- service index ----------

    async def service_index(self) -> Dict[str, Any]:
        cached = self.cache.indexes.get(self.index_url)
        if cached is not None:
            return cached

        data = (await self.get(self.index_url)).json()
        if not isinstance(data, dict) or "resources" not in data:
            raise ValueError(f"Not a NuGet V3 service index: {self.index_url}")
        self.cache.indexes[self.index_url] = data
        return data

    async def resource(self, name: str) -> str:
        return resolve_resource(await self.service_index(), name)

    # ---------- search ----------

    async def search(
        self,
        query: str,
        *,
        skip: int = 0,
        take: int = 100,
        prerelease: bool = True,
    ) -> List[Dict[str, Any]]:
        """One page of search hits."""
        url = await self.resource("search")
        params = {
            "q": query,
            "skip": skip,
            "take": take,
            "prerelease": "true" if prerelease else "false",
            "semVerLevel": "2.0.0",
        }
        body = (await self.get(url, params=params)).json()
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise RuntimeError(f"Unexpected search response format: {body!r}")
        return data

    # ---------- flat container ----------

    async def list_versions(self, package_id: str) -> Optional[List[str]]:
        """
        Lower-cased versions from the flat container, or None when the
        package id is unknown to this source.
        """
        base = await self.resource("packages")
        key = (base, package_id.lower())
        if key in self.cache.versions:
            return self.cache.versions[key]

        response = await self._http.get(f"{base}/{package_id.lower()}/index.json")
        if response.status_code == 404:
            versions = None
        else:
            response.raise_for_status()
            versions = [str(v).lower() for v in response.json().get("versions", [])]
        self.cache.versions[key] = versions
        return versions

    async def package_url(self, package_id: str, version: str) -> str:
        base = await self.resource("packages")
        pid, ver = package_id.lower(), version.lower()
        return f"{base}/{pid}/{ver}/{pid}.{ver}.nupkg"

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[httpx.Response]:
        async with self._http.stream("GET", url) as response:
            response.raise_for_status()
            yield response

    # ---------- publish ----------

    async def push(
        self,
        package_path: Path,
        *,
        api_key: Optional[str] = None,
        timeout: float = 300.0,
        skip_duplicate: bool = True,
    ) -> bool:
        """
        Upload a .nupkg. Returns True when the package was accepted, False
        when the source already has it and skip_duplicate is set.
        """
        url = await self.resource("publish")
        headers: Dict[str, str] = {}
        if api_key:
            headers["X-NuGet-ApiKey"] = api_key

        with package_path.open("rb") as f:
            files = {"package": (package_path.name, f, "application/octet-stream")}
            response = await self._http.put(url, files=files, headers=headers, timeout=timeout)

        if response.status_code == 409 and skip_duplicate:
            logger.info("Conflict on push, package already exists: %s", package_path.name)
            return False
        response.raise_for_status()
        return True
