"""Destination registry package."""

from .importer import DestinationImporter

__all__ = ["DestinationImporter"]
