"""Shared SSH utilities for running commands on fleet hosts."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import paramiko

from ..config.models import HostConfig


class SSHHelper:
    """Helper class for SSH operations."""

    @staticmethod
    def create_client(
        host: HostConfig,
        logger: logging.Logger,
        timeout: float = 10
    ) -> paramiko.SSHClient:
        """
        Create SSH client with key authentication.

        Args:
            host: Host configuration
            logger: Logger instance
            timeout: Connect and banner timeout in seconds

        Returns:
            paramiko.SSHClient: Connected client

        Raises:
            Exception: If connection fails
        """
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            logger.debug(f"Connecting to {host.ssh_address}:{host.port} as {host.username}")

            client.connect(
                hostname=host.ssh_address,
                port=host.port,
                username=host.username,
                key_filename=host.ssh_key_path,
                timeout=timeout,
                banner_timeout=timeout
            )

            logger.debug(f"Successfully connected to {host.ssh_address}")
            return client

        except paramiko.AuthenticationException as e:
            logger.error(f"Authentication failed for {host.ssh_address}: {e}")
            client.close()
            raise

        except paramiko.SSHException as e:
            logger.error(f"SSH error connecting to {host.ssh_address}: {e}")
            client.close()
            raise

        except Exception as e:
            logger.error(f"Failed to connect to {host.ssh_address}: {e}")
            client.close()
            raise

    @staticmethod
    def exec_command(
        client: paramiko.SSHClient,
        command: str,
        timeout: float = 30,
        logger: Optional[logging.Logger] = None
    ) -> Tuple[int, str, str]:
        """
        Execute command on SSH client and return its exit code and output.

        Args:
            client: paramiko.SSHClient instance
            command: Command to execute
            timeout: Channel timeout in seconds
            logger: Optional logger instance

        Returns:
            Tuple[int, str, str]: Exit code, decoded stdout and stderr

        Raises:
            TimeoutError: If the command produces no data within timeout
        """
        if logger:
            logger.debug(f"Executing command: {command}")

        stdin, stdout, stderr = client.exec_command(command, timeout=timeout)

        # Both streams are drained together so neither can fill the channel
        # window while the other is being read
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="fleetperf-stderr") as pool:
            stderr_future = pool.submit(stderr.read)
            stdout_data = stdout.read().decode('utf-8', errors='replace')
            stderr_data = stderr_future.result().decode('utf-8', errors='replace')
        exit_code = stdout.channel.recv_exit_status()

        if logger:
            logger.debug(
                f"Command exited with {exit_code} ({len(stdout_data)} bytes)"
                + (f": {stderr_data.strip()}" if exit_code and stderr_data.strip() else "")
            )

        return exit_code, stdout_data, stderr_data

    @staticmethod
    def close_client(client: object, logger: Optional[logging.Logger] = None) -> None:
        """
        Close SSH client connection.

        Args:
            client: paramiko.SSHClient instance
            logger: Optional logger instance
        """
        try:
            if client:
                client.close()
                if logger:
                    logger.debug("SSH connection closed")
        except Exception as e:
            if logger:
                logger.warning(f"Error closing SSH connection: {e}")
