"""Perf collection workflow: activate, collect, export, snapshot."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from .collectors.activator import SamplerActivator
from .collectors.host_runner import HostRunner
from .collectors.report_collector import ReportCollector
from .config.models import HostConfig, PerfSystemConfig
from .services.graphite_client import GraphiteClient
from .services.metrics_exporter import MetricsExporter
from .services.snapshot import SnapshotWriter
from .utils.logger import setup_logger
from .utils.metrics import HostReport, RunSummary


@dataclass
class PerfSession:
    """
    The one test window this run measures.

    Created when the workflow starts (start fixed then); finalize() fixes
    the end. The last collected report is kept for callers.
    """

    hosts: List[HostConfig]
    start: datetime = field(default_factory=datetime.now)
    end: Optional[datetime] = None
    report: HostReport = field(default_factory=dict)

    def finalize(self, now: Optional[datetime] = None) -> datetime:
        """Fix the end timestamp, never earlier than start."""
        end = now or datetime.now()
        self.end = max(end, self.start)
        return self.end

    @property
    def finalized(self) -> bool:
        return self.end is not None


class PerfWorkflow:
    """
    Orchestrates one perf collection session across the fleet.

    Stages receive the session explicitly; the workflow only wires them to
    configuration.
    """

    def __init__(
        self,
        config: PerfSystemConfig,
        runner: HostRunner,
        logger: logging.Logger = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize workflow and open the session.

        Args:
            config: System configuration
            runner: Remote execution collaborator
            logger: Optional logger instance
            clock: Source of session timestamps
        """
        self.config = config
        self.runner = runner
        self.logger = logger or setup_logger("workflow")
        self.clock = clock
        self.session = PerfSession(hosts=list(config.hosts), start=clock())

        perf = config.perf
        self.activator = SamplerActivator(
            runner, self.logger, aggressive=perf.aggressive, max_workers=perf.max_workers
        )
        self.collector = ReportCollector(
            runner, self.logger, aggressive=perf.aggressive, max_workers=perf.max_workers
        )

        self.exporter = None
        if config.graphite.enabled:
            self.exporter = MetricsExporter(
                GraphiteClient(config.graphite, self.logger),
                config.graphite.prefix,
                self.logger,
                max_connections=config.graphite.max_connections
            )

        self.snapshot_writer = None
        if config.snapshot.enabled:
            self.snapshot_writer = SnapshotWriter(config.snapshot, self.logger)

        self.summary = RunSummary(started_at=self.session.start)

    @classmethod
    async def start(
        cls,
        config: PerfSystemConfig,
        runner: HostRunner,
        logger: logging.Logger = None,
        clock: Callable[[], datetime] = datetime.now
    ) -> "PerfWorkflow":
        """Create the workflow and activate sysstat on every host."""
        workflow = cls(config, runner, logger=logger, clock=clock)
        await workflow.setup()
        return workflow

    @property
    def enabled(self) -> bool:
        return self.config.perf.enabled

    async def setup(self) -> None:
        """Activate sysstat on every host, fail-soft per host."""
        if not self.enabled:
            self.logger.info("Perf collection disabled (collect_mode: off)")
            return

        self.logger.info(
            f"Perf collection mode '{self.config.perf.collect_mode}' "
            f"on {len(self.session.hosts)} host(s)"
        )
        self.summary.activation = await self.activator.activate_all(self.session.hosts)

    async def finish(self) -> RunSummary:
        """
        Close the session window and fan the report out.

        Returns:
            RunSummary: Stage results for the session

        Raises:
            PersistenceFailure: If the requested snapshot cannot be written
            MetricsEndpointError: If the Graphite endpoint is unusable
        """
        end = self.session.finalize(self.clock())
        self.summary.ended_at = end

        if not self.enabled:
            return self.summary

        self.logger.info("=" * 60)
        self.logger.info("Collecting perf data")
        self.logger.info("=" * 60)

        report, collection = await self.collector.collect(
            self.session.hosts, self.session.start, end
        )
        self.session.report = report
        self.summary.collection = collection

        try:
            if self.exporter is not None:
                self.summary.export = await self.exporter.export(report)
        finally:
            # The snapshot is written even when the endpoint is unusable
            if self.snapshot_writer is not None:
                self.summary.snapshot_path = self.snapshot_writer.save(report)

        duration = (end - self.session.start).total_seconds()
        self.logger.info("=" * 60)
        self.logger.info("Perf collection completed")
        self.logger.info(f"Window: {duration:.1f}s, {len(report)} host report(s)")
        for stage in (self.summary.activation, self.summary.collection, self.summary.export):
            if stage is not None:
                self.logger.info(stage.summary())
        self.logger.info("=" * 60)

        return self.summary

    def close(self) -> None:
        self.runner.close()
