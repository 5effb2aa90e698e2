"""
config.py
Run configuration built from the parsed command line.
Batch size and interval arrive as strings and are parsed here.
A missing source is a usage message (exit 0); any other bad option fails the run.
"""

from __future__ import annotations
import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_BATCH_SIZE = 10
DEFAULT_MIN_BATCH_INTERVAL_MS = 1000
REPORT_SUFFIXES = (".csv", ".json")


class MissingOptionError(ValueError):
    """A required source option is absent; reported as usage, not as a failure."""


def _parse_int(value, option: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"The {option} option must be an integer, got {value!r}.") from exc


@dataclass
class MirrorConfig:
    from_source: str
    to_source: str
    batch_size: int = DEFAULT_BATCH_SIZE
    api_key: Optional[str] = None
    min_batch_interval_ms: int = DEFAULT_MIN_BATCH_INTERVAL_MS
    max_concurrency: Optional[int] = None
    sequential: bool = False
    report_path: Optional[Path] = None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "MirrorConfig":
        """
        Build and validate a config. Raises MissingOptionError for an absent
        source and ValueError for any other bad option.
        """
        cfg = cls(
            from_source=(args.from_source or "").strip(),
            to_source=(args.to_source or "").strip(),
            api_key=args.api_key or None,
            sequential=bool(args.sequential),
            report_path=args.report,
        )
        # required options first, so their message wins over a bad number
        cfg.validate()
        cfg.batch_size = _parse_int(args.batch_size, "--batch-size")
        cfg.min_batch_interval_ms = _parse_int(args.min_batch_interval, "--min-batch-interval")
        if args.max_concurrency is not None:
            cfg.max_concurrency = _parse_int(args.max_concurrency, "--max-concurrency")
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not self.from_source:
            raise MissingOptionError("The --from-source option is required.")
        if not self.to_source:
            raise MissingOptionError("The --to-source option is required.")
        if self.batch_size < 1:
            raise ValueError(f"The --batch-size option must be at least 1, got {self.batch_size}.")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError(f"The --max-concurrency option must be at least 1, got {self.max_concurrency}.")
        if self.report_path is not None and self.report_path.suffix.lower() not in REPORT_SUFFIXES:
            raise ValueError(f"The --report option must name a .csv or .json file, got {str(self.report_path)!r}.")
