import httpx
import pytest

from nuget_mirror.client import NuGetClient
from nuget_mirror.source.fetcher import SourceFetcher
from nuget_mirror.types import PackageIdentity

from conftest import FakeRegistry, archive_bytes


async def collect(fetcher):
    return [p async for p in fetcher.discover_packages()]


@pytest.mark.asyncio
async def test_discovers_every_version_across_pages():
    registry = FakeRegistry("https://source.test", {f"Pkg{i}": ["1.0.0", "2.0.0"] for i in range(5)})
    async with registry.client() as client:
        found = await collect(SourceFetcher(client, page_size=2))

    assert len(found) == 10
    assert found[0] == PackageIdentity("Pkg0", "1.0.0")
    assert found[-1] == PackageIdentity("Pkg4", "2.0.0")
    # skip advances by page length, and an empty page ends discovery
    assert [c["skip"] for c in registry.search_calls] == ["0", "2", "4", "5"]


@pytest.mark.asyncio
async def test_duplicates_across_pages_are_passed_through():
    registry = FakeRegistry("https://source.test", {"Dup": ["1.0.0"], "Other": ["3.0.0"]})
    registry.extra_hits = ["Dup"]
    async with registry.client() as client:
        found = await collect(SourceFetcher(client, page_size=1))
    assert found.count(PackageIdentity("Dup", "1.0.0")) == 2


@pytest.mark.asyncio
async def test_falls_back_to_flat_container_versions():
    registry = FakeRegistry("https://source.test", {"Alpha": ["1.0.0", "1.1.0"]}, versions_in_search=False)
    async with registry.client() as client:
        found = await collect(SourceFetcher(client))
    assert found == [PackageIdentity("Alpha", "1.0.0"), PackageIdentity("Alpha", "1.1.0")]


@pytest.mark.asyncio
async def test_empty_source_yields_nothing():
    registry = FakeRegistry("https://source.test")
    async with registry.client() as client:
        assert await collect(SourceFetcher(client)) == []
    assert len(registry.search_calls) == 1


@pytest.mark.asyncio
async def test_search_errors_propagate():
    def handler(request):
        if request.url.path == "/v3/index.json":
            return httpx.Response(200, json={"resources": [
                {"@id": "https://x.test/q", "@type": "SearchQueryService/3.5.0"}]})
        return httpx.Response(500)

    async with NuGetClient("https://x.test/v3/index.json", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await collect(SourceFetcher(client))


@pytest.mark.asyncio
async def test_download_writes_temporary_archive(source_registry):
    async with source_registry.client() as client:
        path = await SourceFetcher(client).download_package(PackageIdentity("Alpha", "1.1.0-beta"))
    try:
        assert path.suffix == ".nupkg"
        assert path.read_bytes() == archive_bytes("Alpha", "1.1.0-beta")
        assert source_registry.downloads == ["Alpha@1.1.0-beta"]
    finally:
        path.unlink()


@pytest.mark.asyncio
async def test_download_failure_removes_partial_file(source_registry, tmp_path, monkeypatch):
    monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
    async with source_registry.client() as client:
        with pytest.raises(httpx.HTTPStatusError):
            await SourceFetcher(client).download_package(PackageIdentity("Alpha", "9.9.9"))
    assert list(tmp_path.iterdir()) == []
