"""Source registry package."""

from .fetcher import SourceFetcher

__all__ = ["SourceFetcher"]
