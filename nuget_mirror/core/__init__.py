"""
Core package: orchestration of mirror runs.
This package exposes the Coordinator class which ties together the
source fetcher and the destination importer.
"""

from .coordinator import Coordinator, batched, mirror

__all__ = [
    "Coordinator",
    "batched",
    "mirror",
]
