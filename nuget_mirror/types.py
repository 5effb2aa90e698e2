"""
types.py
Package identities and per-unit results shared by the fetcher, importer
and coordinator.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

_VERSION_RE = re.compile(r"^(?P<release>\d+(?:\.\d+)*)(?P<pre>-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")


def normalize_version(version: str) -> str:
    """
    NuGet normalised version string: no build metadata, no leading zeros,
    a zero fourth part dropped and at least three release parts.
    Strings that don't look like a version are returned stripped of metadata.
    """
    raw = version.strip()
    m = _VERSION_RE.match(raw)
    if not m:
        return raw.split("+", 1)[0]

    parts = [str(int(p)) for p in m.group("release").split(".")]
    while len(parts) < 3:
        parts.append("0")
    if len(parts) == 4 and parts[3] == "0":
        parts = parts[:3]
    return ".".join(parts) + (m.group("pre") or "")


@dataclass(frozen=True)
class PackageIdentity:
    id: str
    version: str

    @property
    def normalized_version(self) -> str:
        return normalize_version(self.version)

    @property
    def lower_id(self) -> str:
        return self.id.lower()

    @property
    def lower_version(self) -> str:
        return self.normalized_version.lower()

    def __str__(self) -> str:
        return f"{self.id} {self.normalized_version}"


class Outcome(str, Enum):
    UPLOADED = "uploaded"
    SKIPPED_EXISTS = "skipped_exists"
    FAILED = "failed"


@dataclass
class UnitResult:
    identity: PackageIdentity
    outcome: Outcome
    path: Optional[Path] = None
    reason: Optional[str] = None

    @classmethod
    def uploaded(cls, identity: PackageIdentity, path: Path) -> "UnitResult":
        return cls(identity, Outcome.UPLOADED, path)

    @classmethod
    def skipped(cls, identity: PackageIdentity, path: Optional[Path] = None) -> "UnitResult":
        return cls(identity, Outcome.SKIPPED_EXISTS, path)

    @classmethod
    def failed(cls, identity: PackageIdentity, reason: str, path: Optional[Path] = None) -> "UnitResult":
        return cls(identity, Outcome.FAILED, path, reason)


@dataclass
class RunSummary:
    results: List[UnitResult] = field(default_factory=list)
    batches: int = 0

    def add(self, result: UnitResult) -> None:
        self.results.append(result)

    def counts(self) -> Dict[str, int]:
        c = Counter(r.outcome.value for r in self.results)
        return {o.value: c.get(o.value, 0) for o in Outcome}

    @property
    def failed(self) -> List[UnitResult]:
        return [r for r in self.results if r.outcome is Outcome.FAILED]
