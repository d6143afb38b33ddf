"""Retrieve sysstat reports for the test window from fleet hosts."""

import json
import logging
from datetime import datetime
from functools import partial
from typing import Any, Dict, Tuple

from ..config.models import HostConfig
from ..errors import ReportParseFailure
from ..platforms import classify
from ..utils.metrics import HostReport, StageResult
from ..utils.status import HostOutcome
from .base import HostStage, host_scoped
from .host_runner import HostRunner

DUMP_COMMAND = "sadf -j -- -A"
# sar exits 1/2 when some activities have no data for the window
WINDOW_EXIT_CODES = (0, 1, 2)
REPORT_NAMESPACE = "sysstat"


def window_command(start: datetime, end: datetime) -> str:
    """Build the sar invocation covering [start, end] at second precision."""
    return f"sar -A -s {start.strftime('%H:%M:%S')} -e {end.strftime('%H:%M:%S')}"


def parse_report(host: HostConfig, raw: str) -> Dict[str, Any]:
    """
    Parse a `sadf -j` dump.

    Args:
        host: Host the dump came from
        raw: Command stdout

    Returns:
        dict: Parsed document

    Raises:
        ReportParseFailure: If the dump is not a JSON object with the
            sysstat namespace
    """
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ReportParseFailure(f"Malformed sadf output: {e}", host=host.name) from e

    if not isinstance(document, dict) or REPORT_NAMESPACE not in document:
        raise ReportParseFailure(
            f"sadf output has no '{REPORT_NAMESPACE}' section", host=host.name
        )
    return document


class ReportCollector(HostStage):
    """Pulls the sysstat JSON dump from each supported host."""

    stage_name = "collect"

    def __init__(
        self,
        runner: HostRunner,
        logger: logging.Logger,
        aggressive: bool = False,
        max_workers: int = 1
    ):
        """
        Initialize collector.

        Args:
            runner: Remote execution collaborator
            logger: Logger instance
            aggressive: sysstat already polled every minute, skip the sar run
            max_workers: Hosts collected concurrently
        """
        super().__init__(runner, logger, max_workers=max_workers)
        self.aggressive = aggressive

    async def collect(self, hosts, start: datetime, end: datetime) -> Tuple[HostReport, StageResult]:
        """
        Collect the perf report for [start, end] from every host.

        Args:
            hosts: Hosts to collect from
            start: Window start
            end: Window end

        Returns:
            Tuple[HostReport, StageResult]: Reports keyed by hostname (only
                successful hosts) and per-host outcomes
        """
        report: HostReport = {}
        result = StageResult(stage=self.stage_name)
        self.logger.info(
            f"Collecting perf data from {len(hosts)} host(s) "
            f"for {start.strftime('%H:%M:%S')}-{end.strftime('%H:%M:%S')}"
        )

        for host, outcome, value in await self._fan_out(
            hosts, partial(self._collect_host, start=start, end=end)
        ):
            if outcome is HostOutcome.OK:
                report[host.hostname] = value
                result.record(host.name, outcome)
            else:
                result.record(host.name, outcome, value if outcome is HostOutcome.FAILED else None)

        self.logger.info(result.summary())
        for host_name, error in result.errors.items():
            self.logger.warning(f"Perf data dropped for {host_name}: {error}")
        return report, result

    @host_scoped
    def _collect_host(self, host: HostConfig, start: datetime, end: datetime):
        return self.collect_host(host, start, end)

    def collect_host(self, host: HostConfig, start: datetime, end: datetime):
        """
        Collect one host's report.

        Args:
            host: Host to collect from
            start: Window start
            end: Window end

        Returns:
            Parsed document, or HostOutcome.UNSUPPORTED

        Raises:
            RemoteCommandFailure: If sar or sadf fails
            ReportParseFailure: If the dump cannot be parsed
        """
        self.logger.info(f"Getting perf data for host: {host.name}")

        if not classify(host.platform).sampler_supported:
            self.logger.info(f"Perf (sysstat) not supported on host: {host.name} ({host.platform})")
            return HostOutcome.UNSUPPORTED

        if not self.aggressive:
            self.runner.exec(host, window_command(start, end), acceptable_exit_codes=WINDOW_EXIT_CODES)

        dump = self.runner.exec(host, DUMP_COMMAND)
        return parse_report(host, dump.stdout)
