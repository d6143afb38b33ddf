"""Install and enable sysstat on fleet hosts."""

import logging
from typing import Sequence

from ..config.models import HostConfig
from ..platforms import POLLING_RULES, classify
from ..utils.metrics import StageResult
from ..utils.status import HostOutcome
from .base import HostStage, host_scoped
from .host_runner import HostRunner

SAMPLER_PACKAGES = ["sysstat"]

ENABLE_DEBIAN_COMMAND = "sed -i 's/ENABLED=\"false\"/ENABLED=\"true\"/' /etc/default/sysstat"
CRON_SYMLINK_COMMAND = "ln -s /etc/sysstat/sysstat.cron /etc/cron.d"
START_COMMAND = "service sysstat start"


class SamplerActivator(HostStage):
    """Prepares sysstat so that sar data exists for the test window."""

    stage_name = "activate"

    def __init__(
        self,
        runner: HostRunner,
        logger: logging.Logger,
        aggressive: bool = False,
        max_workers: int = 1
    ):
        """
        Initialize activator.

        Args:
            runner: Remote execution collaborator
            logger: Logger instance
            aggressive: Switch sysstat to one-minute polling
            max_workers: Hosts activated concurrently
        """
        super().__init__(runner, logger, max_workers=max_workers)
        self.aggressive = aggressive

    async def activate_all(self, hosts: Sequence[HostConfig]) -> StageResult:
        """
        Activate sysstat on every host, continuing past per-host failures.

        Args:
            hosts: Hosts to prepare

        Returns:
            StageResult: Per-host outcomes and errors
        """
        result = StageResult(stage=self.stage_name)
        self.logger.info(f"Setting up perf on {len(hosts)} host(s)")

        for host, outcome, value in await self._fan_out(hosts, self._activate_host):
            result.record(host.name, outcome, value if outcome is HostOutcome.FAILED else None)

        self.logger.info(result.summary())
        for host_name, error in result.errors.items():
            self.logger.warning(f"Perf setup failed on {host_name}: {error}")
        return result

    @host_scoped
    def _activate_host(self, host: HostConfig):
        return self.activate(host)

    def activate(self, host: HostConfig):
        """
        Install sysstat if required and make it record data.

        Args:
            host: Host to prepare

        Returns:
            HostOutcome.UNSUPPORTED for unsupported platforms, otherwise None

        Raises:
            RemoteCommandFailure: If a setup command fails
        """
        self.logger.info(f"Setup perf on host: {host.name}")
        caps = classify(host.platform)

        if not caps.sampler_supported:
            self.logger.info(f"Perf (sysstat) not supported on host: {host.name} ({host.platform})")
            return HostOutcome.UNSUPPORTED

        for package in SAMPLER_PACKAGES:
            if not self.runner.has_package(host, package):
                self.logger.info(f"Installing {package} on {host.name}")
                self.runner.install_package(host, package)

        if caps.needs_debian_activation:
            self.logger.info(f"Enabling sysstat in /etc/default/sysstat on {host.name}")
            self.runner.exec(host, ENABLE_DEBIAN_COMMAND)
        elif caps.needs_symlink_activation:
            self.logger.info(f"Linking /etc/sysstat/sysstat.cron into /etc/cron.d on {host.name}")
            # Exit 1 means the link already exists
            self.runner.exec(host, CRON_SYMLINK_COMMAND, acceptable_exit_codes=(0, 1))

        if self.aggressive:
            rule = POLLING_RULES.get(caps.family)
            if rule is not None:
                self.logger.info(f"Enabling aggressive sysstat polling on {host.name}")
                self.runner.exec(host, rule.command())

        if caps.autostart_supported:
            self.runner.exec(host, START_COMMAND)

        return None
