"""
errors/aggregator.py - Aggregate per-key failures from a batch flush
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .taxonomy import ColorRouterError


@dataclass
class KeyFailure:
    """A single key that could not be resolved during a flush."""
    key: str
    error: Exception

    @property
    def kind(self) -> str:
        if isinstance(self.error, ColorRouterError):
            return self.error.kind.value
        return "unexpected"

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.error, ColorRouterError):
            detail = self.error.to_dict()
        else:
            detail = {"kind": "unexpected", "message": str(self.error)}
        return {"key": self.key, "error": detail}


@dataclass
class ErrorReport:
    """Aggregated error report."""

    total_errors: int = 0
    by_kind: Dict[str, int] = field(default_factory=dict)
    keys: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "by_kind": self.by_kind,
            "keys": self.keys,
            "summary": self.summary,
        }


class ErrorAggregator:
    """
    Collects key failures during a flush.
    """

    def __init__(self):
        self._failures: List[KeyFailure] = []

    def add(self, key: str, error: Exception) -> KeyFailure:
        """Record a failure for a key."""
        failure = KeyFailure(key=key, error=error)
        self._failures.append(failure)
        return failure

    @property
    def failures(self) -> List[KeyFailure]:
        return list(self._failures)

    def has_errors(self) -> bool:
        return bool(self._failures)

    def generate_report(self) -> ErrorReport:
        """Generate aggregated report."""
        report = ErrorReport(
            total_errors=len(self._failures),
            keys=[f.key for f in self._failures],
        )

        for failure in self._failures:
            report.by_kind[failure.kind] = report.by_kind.get(failure.kind, 0) + 1

        if report.total_errors:
            parts = ", ".join(f"{n} {kind}" for kind, n in sorted(report.by_kind.items()))
            report.summary = f"{report.total_errors} key(s) failed ({parts})"
        else:
            report.summary = "No errors"

        return report
