"""Base class for per-host pipeline stages."""

import asyncio
import logging
from abc import ABC
from concurrent.futures import ThreadPoolExecutor
from functools import wraps
from typing import Any, Callable, List, Sequence, Tuple

from ..config.models import HostConfig
from ..utils.status import HostOutcome
from .host_runner import HostRunner

# (host, outcome, value or error message)
HostCall = Tuple[HostConfig, HostOutcome, Any]


class HostStage(ABC):
    """Runs one blocking operation per host, optionally in parallel."""

    stage_name = "stage"

    def __init__(self, runner: HostRunner, logger: logging.Logger, max_workers: int = 1):
        """
        Initialize stage.

        Args:
            runner: Remote execution collaborator
            logger: Logger instance
            max_workers: Hosts processed concurrently (1 = sequential)
        """
        self.runner = runner
        self.max_workers = max_workers
        self.logger = logger.getChild(self.__class__.__name__)

    async def _fan_out(
        self,
        hosts: Sequence[HostConfig],
        func: Callable[[HostConfig], HostCall]
    ) -> List[HostCall]:
        """
        Run func once per host on a bounded thread pool.

        Results are gathered back on the event loop in host order, so
        workers never share mutable state.

        Args:
            hosts: Hosts to process
            func: Blocking per-host callable, normally wrapped in @host_scoped

        Returns:
            List[HostCall]: One entry per host
        """
        if not hosts:
            return []

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(hosts)),
            thread_name_prefix=f"fleetperf-{self.stage_name}"
        ) as pool:
            tasks = [loop.run_in_executor(pool, func, host) for host in hosts]
            results = await asyncio.gather(*tasks, return_exceptions=True)

        calls = []
        for host, result in zip(hosts, results):
            if isinstance(result, BaseException):
                # host_scoped should have caught this; keep the batch going anyway
                self.logger.error(f"{self.stage_name} failed for {host.name}: {result}")
                calls.append((host, HostOutcome.FAILED, str(result)))
            else:
                calls.append(result)
        return calls


def host_scoped(func):
    """
    Decorator that turns a per-host failure into a FAILED outcome.

    The wrapped method returns the raw value on success; the wrapper returns
    a (host, outcome, value) triple and never raises for ordinary errors.

    Args:
        func: Stage method taking (self, host, ...)

    Returns:
        Wrapped function returning a HostCall
    """
    @wraps(func)
    def wrapper(self, host: HostConfig, *args, **kwargs) -> HostCall:
        try:
            value = func(self, host, *args, **kwargs)
        except Exception as e:
            self.logger.error(
                f"{self.stage_name} failed for {host.name}: {e}",
                extra={"host": host.name, "error_type": type(e).__name__}
            )
            return host, HostOutcome.FAILED, str(e)

        if value is HostOutcome.UNSUPPORTED:
            return host, HostOutcome.UNSUPPORTED, None
        return host, HostOutcome.OK, value
    return wrapper
