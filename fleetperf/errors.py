"""
Exceptions raised by the perf collection pipeline.

Host-scoped errors (RemoteCommandFailure, ReportParseFailure) and point-scoped
errors (MetricsTransportFailure) are caught by their stage and aggregated into
its result. Session-scoped errors (PersistenceFailure, MetricsEndpointError)
propagate to the caller.
"""

from typing import Optional, Sequence


class FleetPerfError(Exception):
    """Base class for all fleetperf errors."""

    def __init__(self, message: str, host: Optional[str] = None):
        self.host = host
        self.message = message
        super().__init__(f"[{host}] {message}" if host else message)


class RemoteCommandFailure(FleetPerfError):
    """A remote command exited with a status outside its acceptable set."""

    def __init__(
        self,
        host: str,
        command: str,
        exit_code: int,
        output: str = "",
        acceptable_exit_codes: Sequence[int] = (0,)
    ):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.acceptable_exit_codes = tuple(acceptable_exit_codes)
        detail = output.strip().splitlines()[-1] if output.strip() else ""
        message = (
            f"'{command}' exited with {exit_code} "
            f"(acceptable: {list(self.acceptable_exit_codes)})"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, host=host)


class ReportParseFailure(FleetPerfError):
    """The structured sysstat dump from a host could not be parsed."""


class PersistenceFailure(FleetPerfError):
    """The perf snapshot could not be written."""


class MetricsTransportFailure(FleetPerfError):
    """A single metric line could not be delivered to Graphite."""


class MetricsEndpointError(FleetPerfError):
    """The Graphite endpoint itself is unusable (e.g. does not resolve)."""
