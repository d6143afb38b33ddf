"""Remote command execution and package management on fleet hosts."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Sequence

import paramiko

from ..config.models import HostConfig
from ..errors import FleetPerfError, RemoteCommandFailure
from ..platforms import PlatformFamily, platform_family
from .ssh_helper import SSHHelper


@dataclass
class CommandResult:
    """Exit status and output of one remote command."""

    exit_code: int
    stdout: str
    stderr: str = ""


# (presence check, install) per family
PACKAGE_COMMANDS: Dict[PlatformFamily, tuple] = {
    PlatformFamily.DEBIAN: (
        "dpkg -s {name}",
        "DEBIAN_FRONTEND=noninteractive apt-get install -y {name}",
    ),
    PlatformFamily.RPM: (
        "rpm -q {name}",
        "yum install -y {name}",
    ),
    PlatformFamily.SUSE: (
        "rpm -q {name}",
        "zypper --non-interactive install {name}",
    ),
}


class HostRunner(ABC):
    """Runs commands on hosts and reports their exit status."""

    @abstractmethod
    def exec(
        self,
        host: HostConfig,
        command: str,
        acceptable_exit_codes: Sequence[int] = (0,)
    ) -> CommandResult:
        """
        Run a command on a host.

        Args:
            host: Target host
            command: Shell command line
            acceptable_exit_codes: Exit codes that count as success

        Returns:
            CommandResult: Exit code and output

        Raises:
            RemoteCommandFailure: If the exit code is not acceptable
            Exception: Transport errors (connect, timeout) propagate as raised
        """

    def has_package(self, host: HostConfig, name: str) -> bool:
        check, _ = self._package_commands(host)
        result = self.exec(host, check.format(name=name), acceptable_exit_codes=(0, 1))
        return result.exit_code == 0

    def install_package(self, host: HostConfig, name: str) -> None:
        _, install = self._package_commands(host)
        self.exec(host, install.format(name=name))

    def close(self) -> None:
        """Release any connections held by the runner."""

    @staticmethod
    def _package_commands(host: HostConfig) -> tuple:
        family = platform_family(host.platform)
        if family not in PACKAGE_COMMANDS:
            raise FleetPerfError(
                f"No package manager known for platform '{host.platform}'",
                host=host.name
            )
        return PACKAGE_COMMANDS[family]


class SSHHostRunner(HostRunner):
    """HostRunner over paramiko, keeping one connection per host."""

    def __init__(
        self,
        logger: logging.Logger,
        command_timeout: float = 120,
        connect_timeout: float = 10
    ):
        """
        Initialize SSH runner.

        Args:
            logger: Logger instance
            command_timeout: Per-command channel timeout in seconds
            connect_timeout: SSH connect timeout in seconds
        """
        self.logger = logger.getChild(self.__class__.__name__)
        self.command_timeout = command_timeout
        self.connect_timeout = connect_timeout
        self._clients: Dict[str, paramiko.SSHClient] = {}
        self._lock = threading.Lock()

    def _client_for(self, host: HostConfig) -> paramiko.SSHClient:
        with self._lock:
            client = self._clients.get(host.name)
        if client is not None:
            transport = client.get_transport()
            if transport is not None and transport.is_active():
                return client
            SSHHelper.close_client(client, self.logger)

        client = SSHHelper.create_client(host, self.logger, timeout=self.connect_timeout)
        with self._lock:
            self._clients[host.name] = client
        return client

    def exec(
        self,
        host: HostConfig,
        command: str,
        acceptable_exit_codes: Sequence[int] = (0,)
    ) -> CommandResult:
        client = self._client_for(host)
        exit_code, stdout, stderr = SSHHelper.exec_command(
            client, command, timeout=self.command_timeout, logger=self.logger
        )

        if exit_code not in acceptable_exit_codes:
            raise RemoteCommandFailure(
                host.name, command, exit_code,
                output=stderr or stdout,
                acceptable_exit_codes=acceptable_exit_codes
            )

        return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)

    def close(self) -> None:
        with self._lock:
            clients, self._clients = self._clients, {}
        for client in clients.values():
            SSHHelper.close_client(client, self.logger)
