"""
Pytest configuration and shared fixtures.
"""
import json
from typing import Dict, List, Optional, Set
from urllib.parse import urlparse

import httpx
import pytest

from nuget_mirror.client import MetadataCache, NuGetClient


def archive_bytes(package_id: str, version: str) -> bytes:
    return f"nupkg:{package_id}:{version}".encode() * 4096


class FakeRegistry:
    """
    In-memory NuGet V3 server served through httpx.MockTransport.
    `packages` maps id -> list of versions; search hits follow the
    insertion order and may be repeated with `extra_hits`.
    """

    def __init__(self, base: str, packages: Optional[Dict[str, List[str]]] = None,
                 *, versions_in_search: bool = True) -> None:
        self.base = base.rstrip("/")
        self.packages: Dict[str, List[str]] = dict(packages or {})
        self.extra_hits: List[str] = []
        self.versions_in_search = versions_in_search
        self.fail_push_for: Set[bytes] = set()
        self.push_status: Optional[int] = None
        self.search_calls: List[Dict[str, str]] = []
        self.downloads: List[str] = []
        self.pushes: List[bytes] = []
        self.push_headers: List[httpx.Headers] = []
        self.requests: List[httpx.Request] = []

    @property
    def index_url(self) -> str:
        return f"{self.base}/v3/index.json"

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, cache: Optional[MetadataCache] = None) -> NuGetClient:
        return NuGetClient(self.index_url, cache, transport=self.transport())

    def _hits(self) -> List[dict]:
        hits = []
        for pid in list(self.packages) + self.extra_hits:
            hit = {"id": pid, "version": self.packages[pid][-1]}
            if self.versions_in_search:
                hit["versions"] = [{"version": v, "downloads": 0} for v in self.packages[pid]]
            hits.append(hit)
        return hits

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = urlparse(str(request.url)).path

        if path == "/v3/index.json":
            return httpx.Response(200, json={
                "version": "3.0.0",
                "resources": [
                    {"@id": f"{self.base}/v3/search", "@type": "SearchQueryService/3.5.0"},
                    {"@id": f"{self.base}/v3-flatcontainer/", "@type": "PackageBaseAddress/3.0.0"},
                    {"@id": f"{self.base}/api/v2/package", "@type": "PackagePublish/2.0.0"},
                ],
            })

        if path == "/v3/search":
            params = dict(request.url.params)
            self.search_calls.append(params)
            skip, take = int(params["skip"]), int(params["take"])
            hits = self._hits()[skip:skip + take]
            return httpx.Response(200, json={"totalHits": len(self._hits()), "data": hits})

        if path.startswith("/v3-flatcontainer/"):
            parts = path[len("/v3-flatcontainer/"):].split("/")
            known = {pid.lower(): pid for pid in self.packages}
            pid = known.get(parts[0])
            if pid is None:
                return httpx.Response(404)
            versions = [v.lower() for v in self.packages[pid]]
            if parts[1:] == ["index.json"]:
                return httpx.Response(200, json={"versions": versions})
            if len(parts) == 3 and parts[1] in versions:
                self.downloads.append(f"{pid}@{parts[1]}")
                return httpx.Response(200, content=archive_bytes(pid, parts[1]))
            return httpx.Response(404)

        if path == "/api/v2/package" and request.method == "PUT":
            body = request.read()
            self.push_headers.append(request.headers)
            if any(marker in body for marker in self.fail_push_for):
                return httpx.Response(500, text="boom")
            if self.push_status is not None:
                return httpx.Response(self.push_status)
            self.pushes.append(body)
            return httpx.Response(201)

        return httpx.Response(404, text=json.dumps({"path": path}))


@pytest.fixture
def source_registry():
    return FakeRegistry("https://source.test", {
        "Alpha": ["1.0.0", "1.1.0-beta"],
        "Beta": ["2.0.0"],
    })


@pytest.fixture
def destination_registry():
    return FakeRegistry("https://dest.test")
