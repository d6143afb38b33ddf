"""Data structures shared by the pipeline stages."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .status import HostOutcome

# hostname -> parsed `sadf -j` document
HostReport = Dict[str, Dict[str, Any]]


@dataclass(frozen=True)
class MetricPoint:
    """One scalar sample addressed by a dotted Graphite path."""

    path: str
    value: float
    timestamp: int

    def to_line(self) -> str:
        """Render the point in Graphite plaintext format."""
        return f"{self.path} {self.value} {self.timestamp}\n"


@dataclass
class StageResult:
    """Aggregate of per-host outcomes for one stage."""

    stage: str
    outcomes: Dict[str, HostOutcome] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def record(self, host: str, outcome: HostOutcome, error: Optional[str] = None) -> None:
        self.outcomes[host] = outcome
        if error is not None:
            self.errors[host] = error

    def _hosts_with(self, outcome: HostOutcome) -> List[str]:
        return [host for host, value in self.outcomes.items() if value is outcome]

    @property
    def succeeded(self) -> List[str]:
        return self._hosts_with(HostOutcome.OK)

    @property
    def unsupported(self) -> List[str]:
        return self._hosts_with(HostOutcome.UNSUPPORTED)

    @property
    def failed(self) -> List[str]:
        return self._hosts_with(HostOutcome.FAILED)

    def summary(self) -> str:
        """
        Human-readable one-line summary.

        Returns:
            str: e.g. "collect: 3 ok, 1 unsupported, 0 failed"
        """
        return (
            f"{self.stage}: {len(self.succeeded)} ok, "
            f"{len(self.unsupported)} unsupported, {len(self.failed)} failed"
        )


@dataclass
class ExportResult:
    """Outcome of one metrics export pass."""

    points_sent: int = 0
    points_failed: int = 0
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"export: {self.points_sent} sent, {self.points_failed} failed"


@dataclass
class RunSummary:
    """Everything a finished session produced."""

    activation: Optional[StageResult] = None
    collection: Optional[StageResult] = None
    export: Optional[ExportResult] = None
    snapshot_path: Optional[Path] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def host_failures(self) -> int:
        """Number of host-scoped failures across activation and collection."""
        stages = [s for s in (self.activation, self.collection) if s is not None]
        return sum(len(stage.failed) for stage in stages)
