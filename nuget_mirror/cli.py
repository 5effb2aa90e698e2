import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_BATCH_SIZE, DEFAULT_MIN_BATCH_INTERVAL_MS, MirrorConfig, MissingOptionError
from .core.coordinator import mirror
from .report import write_report

SENSITIVE_KEYS = {"api_key"}


def mask_sensitive(ns: argparse.Namespace) -> dict:
    """Return a dict copy of args with sensitive values masked."""
    data = vars(ns).copy()
    for k in list(data.keys()):
        if k in SENSITIVE_KEYS and data[k]:
            data[k] = "****"
    return data


def configure_logging(debug: bool, log_file: Path | None) -> None:
    level = logging.DEBUG if debug else logging.INFO
    handlers = []
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )

    noisy_level = logging.DEBUG if debug else logging.WARNING
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(noisy_level)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Import packages from one NuGet server into another")
    p.add_argument("--from-source", default="",
                   help="Service index URL of the package source whose packages should be exported.")
    p.add_argument("--to-source", default="",
                   help="Service index URL of the package source that should import packages.")
    p.add_argument("--batch-size", default=str(DEFAULT_BATCH_SIZE),
                   help="Number of packages processed in parallel per batch (default: %(default)s).")
    p.add_argument("--api-key", default=None,
                   help="API key used to push packages to the --to-source.")
    p.add_argument("--min-batch-interval", default=str(DEFAULT_MIN_BATCH_INTERVAL_MS),
                   help="Minimum interval between batch starts, in milliseconds (default: %(default)s).")
    p.add_argument("--max-concurrency", default=None,
                   help="Cap on packages in flight at once (default: the batch size).")
    p.add_argument("--sequential", action="store_true",
                   help="Process one package at a time, without batching or pacing.")
    p.add_argument("--report", type=Path, default=None,
                   help="Write a per-package summary to this .csv or .json file.")
    p.add_argument("--debug", action="store_true",
                   help="Enable verbose debug logging (incl. HTTP logs).")
    p.add_argument("--log-file", type=Path, default=None,
                   help="Write logs to this file instead of stderr.")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.log_file)

    log = logging.getLogger("cli")
    log.debug("Parsed args (masked): %s", mask_sensitive(args))

    try:
        cfg = MirrorConfig.from_args(args)
    except MissingOptionError as e:
        print(e)
        return 0
    except ValueError as e:
        print(e)
        return 1

    try:
        summary = asyncio.run(mirror(cfg))
        if cfg.report_path is not None:
            write_report(summary, cfg.report_path)
        print("Done!")
        return 0
    except KeyboardInterrupt:
        log.warning("Interrupted by user.")
        return 130
    except Exception:
        log.exception("Unhandled error during execution")
        return 1


if __name__ == "__main__":
    sys.exit(main())
