"""Shared pytest configuration and fixtures."""

import copy
import json
import threading

import pytest

from fleetperf.collectors.host_runner import CommandResult, HostRunner
from fleetperf.config.models import HostConfig
from fleetperf.errors import RemoteCommandFailure
from fleetperf.utils.logger import setup_logger


# 2026-10-18 12:00:01 UTC
SAMPLE_TIMESTAMP = 1792324801

SAMPLE_SADF = {
    "sysstat": {
        "hosts": [
            {
                "nodename": "agent-1",
                "sysname": "Linux",
                "statistics": [
                    {
                        "timestamp": {"date": "2026-10-18", "time": "12:00:01", "utc": 1, "interval": 60},
                        "cpu-load-all": [
                            {"cpu": "all", "usr": 12.3, "sys": 4.1},
                            {"cpu": "0", "usr": 10.0, "sys": 2.5},
                        ],
                        "memory": {"memfree": 1024, "memused": 2048, "memused-percent": 66.67},
                        "network": {"net-dev": [{"iface": "eth0", "rxpck": 1.0}]},
                    }
                ],
            }
        ]
    }
}


class RecordingRunner(HostRunner):
    """
    HostRunner that records every command and answers from a script.

    Responses are matched by command prefix, host-specific entries first.
    Unscripted commands succeed with empty output.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.closed = False
        self._lock = threading.Lock()

    def respond(self, prefix, exit_code=0, stdout="", host=None, error=None):
        self.responses[(host, prefix)] = error if error is not None else CommandResult(exit_code, stdout)

    def _lookup(self, host_name, command):
        for wanted in (host_name, None):
            for (host, prefix), response in self.responses.items():
                if host == wanted and command.startswith(prefix):
                    return response
        return CommandResult(0, "")

    def exec(self, host, command, acceptable_exit_codes=(0,)):
        with self._lock:
            self.calls.append((host.name, command, tuple(acceptable_exit_codes)))

        response = self._lookup(host.name, command)
        if isinstance(response, Exception):
            raise response
        if response.exit_code not in acceptable_exit_codes:
            raise RemoteCommandFailure(
                host.name, command, response.exit_code,
                output=response.stdout, acceptable_exit_codes=acceptable_exit_codes
            )
        return response

    def close(self):
        self.closed = True

    def commands_for(self, host_name):
        return [command for name, command, _ in self.calls if name == host_name]


def make_host(name="agent-1", platform="centos-7-x86_64", hostname=None):
    return HostConfig(
        name=name,
        platform=platform,
        hostname=hostname or f"{name}.delivery.example.net",
    )


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG")


@pytest.fixture
def sample_document():
    """A parsed `sadf -j` document with one interval."""
    return copy.deepcopy(SAMPLE_SADF)


@pytest.fixture
def runner():
    """Recording runner whose sadf dump returns the sample document."""
    runner = RecordingRunner()
    runner.respond("sadf", stdout=json.dumps(SAMPLE_SADF))
    return runner
