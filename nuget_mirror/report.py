import logging
from pathlib import Path

import pandas as pd

from .config import REPORT_SUFFIXES
from .types import RunSummary

logger = logging.getLogger(__name__)

COLUMNS = ["package_id", "version", "outcome", "path", "reason"]


def summary_frame(summary: RunSummary) -> pd.DataFrame:
    rows = [
        {
            "package_id": r.identity.id,
            "version": r.identity.normalized_version,
            "outcome": r.outcome.value,
            "path": str(r.path) if r.path else None,
            "reason": r.reason,
        }
        for r in summary.results
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def write_report(summary: RunSummary, path: Path) -> Path:
    """Write one row per processed identity as CSV or JSON, chosen by suffix."""
    df = summary_frame(summary)
    suffix = path.suffix.lower()
    if suffix not in REPORT_SUFFIXES:
        raise ValueError(f"Unsupported report format {path.suffix!r} (use .csv or .json)")

    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    else:
        df.to_json(path, orient="records", indent=2)
    logger.info("Saved report with %d rows to %s", len(df), path)
    return path
