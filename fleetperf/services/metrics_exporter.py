"""Flatten sysstat reports into Graphite metric points and ship them."""

import asyncio
import calendar
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from ..errors import MetricsTransportFailure
from ..utils.metrics import ExportResult, HostReport, MetricPoint
from .graphite_client import GraphiteClient

CPU_CATEGORY = "cpu-load-all"
CPU_ID_FIELD = "cpu"
MEMORY_CATEGORY = "memory"

_module_logger = logging.getLogger(__name__)


def short_hostname(hostname: str) -> str:
    return hostname.split(".", 1)[0]


def series_names(hostnames) -> Dict[str, str]:
    """
    Pick the Graphite node used for each report hostname.

    Normally the short hostname. Hosts whose short names collide fall back
    to the full hostname with dots replaced by underscores.

    Args:
        hostnames: Report keys

    Returns:
        Dict[str, str]: hostname -> series node
    """
    counts = Counter(short_hostname(h) for h in hostnames)
    return {
        h: short_hostname(h) if counts[short_hostname(h)] == 1 else h.replace(".", "_")
        for h in hostnames
    }


def interval_timestamp(entry: Dict[str, Any]) -> int:
    """
    Unix timestamp of a statistics entry.

    sadf prints the date and time in UTC.

    Raises:
        KeyError, TypeError, ValueError: If the timestamp fields are missing
            or malformed
    """
    stamp = entry["timestamp"]
    parsed = datetime.strptime(f"{stamp['date']} {stamp['time']}", "%Y-%m-%d %H:%M:%S")
    return calendar.timegm(parsed.timetuple())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _statistics(document: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for sysstat_host in document.get("sysstat", {}).get("hosts", []):
        yield from sysstat_host.get("statistics", [])


def _host_points(
    hostname: str,
    document: Dict[str, Any],
    base: str,
    logger: logging.Logger
) -> List[MetricPoint]:
    points: List[MetricPoint] = []

    for entry in _statistics(document):
        try:
            timestamp = interval_timestamp(entry)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping statistics entry without a usable timestamp on {hostname}: {e}")
            continue

        for core in entry.get(CPU_CATEGORY, []):
            core_id = core.get(CPU_ID_FIELD)
            for field, value in core.items():
                if field == CPU_ID_FIELD:
                    continue
                if not _is_number(value):
                    logger.debug(f"Skipping non-numeric cpu field {field} on {hostname}")
                    continue
                points.append(MetricPoint(f"{base}.cpu.{core_id}.{field}", value, timestamp))

        for field, value in entry.get(MEMORY_CATEGORY, {}).items():
            if not _is_number(value):
                logger.debug(f"Skipping non-numeric memory field {field} on {hostname}")
                continue
            points.append(MetricPoint(f"{base}.memory.{field}", value, timestamp))

    return points


def flatten_report(
    report: HostReport,
    prefix: str,
    logger: Optional[logging.Logger] = None,
    errors: Optional[List[str]] = None
) -> List[MetricPoint]:
    """
    Decompose a HostReport into independent scalar series.

    CPU fields become {prefix}.{host}.cpu.{core}.{field} and memory fields
    {prefix}.{host}.memory.{field}. Other categories are ignored. A host
    whose document does not have the sysstat layout contributes no points.

    Args:
        report: Parsed reports keyed by hostname
        prefix: Graphite namespace prefix
        logger: Optional logger instance
        errors: Optional list that receives one message per skipped host

    Returns:
        List[MetricPoint]: Points in report order
    """
    logger = logger or _module_logger
    names = series_names(report.keys())
    points: List[MetricPoint] = []

    for hostname, document in report.items():
        base = f"{prefix}.{names[hostname]}"
        try:
            points.extend(_host_points(hostname, document, base, logger))
        except (AttributeError, KeyError, TypeError) as e:
            message = f"Malformed sysstat report from {hostname}: {type(e).__name__}: {e}"
            logger.error(message, extra={'host': hostname})
            if errors is not None:
                errors.append(message)

    return points


class MetricsExporter:
    """Sends a flattened HostReport to Graphite."""

    def __init__(
        self,
        client: GraphiteClient,
        prefix: str,
        logger: logging.Logger,
        max_connections: int = 1
    ):
        """
        Initialize exporter.

        Args:
            client: Transport used for every point
            prefix: Graphite namespace prefix
            logger: Logger instance
            max_connections: Concurrent connections to the endpoint
        """
        self.client = client
        self.prefix = prefix
        self.max_connections = max_connections
        self.logger = logger.getChild(self.__class__.__name__)

    async def export(self, report: HostReport) -> ExportResult:
        """
        Flatten and send the report, one connection per point.

        Args:
            report: Parsed reports keyed by hostname

        Returns:
            ExportResult: Sent/failed counts and failure messages

        Raises:
            MetricsEndpointError: If the endpoint does not resolve
        """
        self.logger.info(f"Sending data to Graphite server: {self.client.endpoint}")
        self.client.resolve()

        result = ExportResult()
        points = flatten_report(report, self.prefix, self.logger, errors=result.errors)
        if not points:
            self.logger.info("No cpu or memory statistics to export")
            return result

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(
            max_workers=min(self.max_connections, len(points)),
            thread_name_prefix="fleetperf-export"
        ) as pool:
            tasks = [loop.run_in_executor(pool, self.client.send, point) for point in points]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for point, outcome in zip(points, outcomes):
            if isinstance(outcome, BaseException):
                result.points_failed += 1
                if isinstance(outcome, MetricsTransportFailure):
                    message = str(outcome)
                else:
                    message = f"Failed to send {point.path}: {outcome}"
                result.errors.append(message)
                self.logger.warning(message)
            else:
                result.points_sent += 1

        self.logger.info(result.summary())
        return result
