import asyncio
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

from ..client import MetadataCache, NuGetClient
from ..config import DEFAULT_BATCH_SIZE, DEFAULT_MIN_BATCH_INTERVAL_MS, MirrorConfig
from ..destination.importer import DestinationImporter
from ..source.fetcher import SourceFetcher
from ..types import PackageIdentity, RunSummary, UnitResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def batched(items: AsyncIterator[T], size: int) -> AsyncIterator[List[T]]:
    """Group an async stream into lists of `size`; the last one may be shorter."""
    batch: List[T] = []
    async for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


class Coordinator:
    def __init__(self,
                 fetcher: SourceFetcher,
                 importer: DestinationImporter,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 min_batch_interval_ms: int = DEFAULT_MIN_BATCH_INTERVAL_MS,
                 max_concurrency: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:

        self._fetcher = fetcher
        self._importer = importer
        self._batch_size = batch_size
        self._min_batch_interval_ms = min_batch_interval_ms
        self._max_concurrency = max_concurrency
        self._clock = clock
        self._sleep = sleep

    # ---------- one unit of work ----------
    async def process_package(self, package: PackageIdentity) -> UnitResult:
        """Exists-check, download, upload and cleanup for one identity."""
        if await self._importer.package_exists(package):
            logger.info("Package already exists, skipping: %s", package)
            return UnitResult.skipped(package)

        logger.info("Downloading package %s...", package)
        path = await self._fetcher.download_package(package)
        return await self._importer.upload(package, path)

    async def _process_isolated(self, package: PackageIdentity, limit: asyncio.Semaphore) -> UnitResult:
        async with limit:
            try:
                return await self.process_package(package)
            except Exception as e:
                logger.exception("Unable to process package: %s", package)
                return UnitResult.failed(package, f"process: {e!r}")

    # ---------- variant A: batched + paced ----------
    async def run_batched(self) -> RunSummary:
        summary = RunSummary()
        limit = asyncio.Semaphore(self._max_concurrency or self._batch_size)

        packages = self._fetcher.discover_packages()
        async for batch in batched(packages, self._batch_size):
            summary.batches += 1
            start = self._clock()

            results = await asyncio.gather(*(self._process_isolated(p, limit) for p in batch))
            for result in results:
                summary.add(result)

            elapsed_ms = int((self._clock() - start) * 1000)
            delay_ms = self._min_batch_interval_ms - elapsed_ms
            logger.info("Batch %d (%d packages) took %dms. Delaying for %dms...",
                        summary.batches, len(batch), elapsed_ms, delay_ms)
            if delay_ms > 0:
                await self._sleep(delay_ms / 1000)

        return summary

    # ---------- variant B: sequential ----------
    async def run_sequential(self) -> RunSummary:
        summary = RunSummary()
        async for package in self._fetcher.discover_packages():
            summary.add(await self.process_package(package))
        return summary

    async def run(self, sequential: bool = False) -> RunSummary:
        summary = await (self.run_sequential() if sequential else self.run_batched())
        counts = summary.counts()
        logger.info("Finished: %d uploaded, %d skipped (already present), %d failed",
                    counts["uploaded"], counts["skipped_exists"], counts["failed"])
        for r in summary.failed:
            logger.warning("Not mirrored: %s (%s)", r.identity, r.reason)
        return summary


async def mirror(cfg: MirrorConfig) -> RunSummary:
    """Open both registries with a shared metadata cache and run the configured pipeline."""
    cache = MetadataCache()
    async with NuGetClient(cfg.from_source, cache) as source, \
            NuGetClient(cfg.to_source, cache) as destination:
        coord = Coordinator(
            SourceFetcher(source),
            DestinationImporter(destination, api_key=cfg.api_key),
            batch_size=cfg.batch_size,
            min_batch_interval_ms=cfg.min_batch_interval_ms,
            max_concurrency=cfg.max_concurrency,
        )
        logger.debug("Coordinator initialized")
        return await coord.run(sequential=cfg.sequential)
