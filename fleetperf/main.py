"""Command-line entry point: measure a workload across the fleet."""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import List, Optional

from .collectors.host_runner import SSHHostRunner
from .config.loader import ConfigLoader
from .config.models import PerfSystemConfig
from .errors import FleetPerfError
from .utils.logger import setup_logger
from .workflow import PerfWorkflow

# Shell convention for "command not found"
WORKLOAD_START_FAILED = 127


class PerfApp:
    """
    One perf collection run.

    Activates sysstat on the fleet, runs (or waits for) the workload, then
    collects and ships the window's report.
    """

    def __init__(
        self,
        config_path: str = "config/config.yaml",
        collect_mode: Optional[str] = None,
        log_level: str = "INFO"
    ):
        """
        Initialize perf application.

        Args:
            config_path: Path to configuration file
            collect_mode: Override for perf.collect_mode
            log_level: Logging level
        """
        self.config_path = config_path
        self.logger = setup_logger("fleetperf", log_level)

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.collect_mode = collect_mode
        self.config = self._load_config()

        self.runner = SSHHostRunner(
            self.logger,
            command_timeout=self.config.perf.command_timeout,
            connect_timeout=self.config.perf.connect_timeout
        )

    def _load_config(self) -> PerfSystemConfig:
        """
        Load and validate configuration.

        Returns:
            PerfSystemConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path, collect_mode=self.collect_mode)
            self.logger.info(f"Configuration loaded: {len(config.hosts)} host(s)")
            return config

        except FileNotFoundError:
            self.logger.error(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config/config.yaml from config/config.example.yaml"
            )
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        An in-flight collection cannot be cancelled, so shutdown means exit.
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down")
        self.runner.close()
        sys.exit(130 if signum == signal.SIGINT else 143)

    async def run_workload(self, command: List[str], duration: Optional[float]) -> int:
        """
        Run the workload being measured.

        Args:
            command: Workload argv; empty to just wait
            duration: Seconds to wait when there is no command

        Returns:
            int: Workload exit status (0 when only waiting, 127 when the
                command could not be started)
        """
        if command:
            self.logger.info(f"Running workload: {' '.join(command)}")
            try:
                process = await asyncio.create_subprocess_exec(*command)
            except OSError as e:
                self.logger.error(f"Failed to start workload {command[0]}: {e}")
                return WORKLOAD_START_FAILED
            returncode = await process.wait()
            self.logger.info(f"Workload exited with {returncode}")
            return returncode

        if duration:
            self.logger.info(f"Waiting {duration:.0f}s for the workload window")
            await asyncio.sleep(duration)
        return 0

    async def run(self, command: List[str], duration: Optional[float] = None) -> int:
        """
        Execute one full session.

        Returns:
            int: Process exit code
        """
        workflow = await PerfWorkflow.start(self.config, self.runner, self.logger)
        try:
            workload_status = await self.run_workload(command, duration)
            summary = await workflow.finish()
        except FleetPerfError as e:
            self.logger.error(f"Perf collection failed: {e}")
            return 1
        finally:
            workflow.close()

        if summary.host_failures:
            self.logger.warning(f"{summary.host_failures} host-level failure(s) during perf collection")
        if summary.snapshot_path:
            self.logger.info(f"Snapshot: {summary.snapshot_path}")

        return 1 if workload_status else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fleetperf',
        description='Collect sysstat performance data from a fleet during a workload',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Measure a workload command
  fleetperf --config config/config.yaml -- ./run-tests.sh

  # Measure a fixed ten minute window with one-minute polling
  fleetperf --collect-mode aggressive --duration 600
        """
    )

    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--collect-mode',
        choices=['off', 'normal', 'aggressive'],
        help='Override perf.collect_mode from the configuration file'
    )

    parser.add_argument(
        '--duration',
        type=float,
        default=None,
        help='Seconds to wait between setup and collection when no command is given'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    parser.add_argument(
        'command',
        nargs=argparse.REMAINDER,
        help='Workload command to measure (after --)'
    )

    return parser


def main(argv: Optional[List[str]] = None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    command = list(args.command)
    if command and command[0] == '--':
        command = command[1:]

    try:
        app = PerfApp(
            config_path=args.config,
            collect_mode=args.collect_mode,
            log_level=args.log_level
        )
        sys.exit(asyncio.run(app.run(command, args.duration)))

    except Exception as e:
        logging.error(f"Perf run failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
