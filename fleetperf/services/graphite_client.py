"""Graphite plaintext protocol client."""

import logging
import socket

from ..config.models import GraphiteConfig
from ..errors import MetricsEndpointError, MetricsTransportFailure
from ..utils.metrics import MetricPoint


class GraphiteClient:
    """
    Sends metric points to a Graphite carbon listener.

    Every point gets its own short-lived TCP connection: connect, write one
    line, close. Swap this class out to batch or pool connections; the
    exporter only depends on resolve() and send().
    """

    def __init__(self, config: GraphiteConfig, logger: logging.Logger = None):
        """
        Initialize Graphite client.

        Args:
            config: Graphite configuration
            logger: Optional logger instance
        """
        self.server = config.server
        self.port = config.port
        self.timeout = config.send_timeout
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @property
    def endpoint(self) -> str:
        return f"{self.server}:{self.port}"

    def resolve(self) -> None:
        """
        Check that the endpoint resolves.

        Raises:
            MetricsEndpointError: If the server is unset or does not resolve
        """
        if not self.server:
            raise MetricsEndpointError("No Graphite server configured")
        try:
            socket.getaddrinfo(self.server, self.port, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise MetricsEndpointError(f"Cannot resolve Graphite server {self.endpoint}: {e}") from e

    def send(self, point: MetricPoint) -> None:
        """
        Deliver one point over a fresh connection.

        Args:
            point: Metric point to send

        Raises:
            MetricsTransportFailure: On connect, write or timeout errors
        """
        try:
            with socket.create_connection((self.server, self.port), timeout=self.timeout) as sock:
                sock.sendall(point.to_line().encode("utf-8"))
        except OSError as e:
            raise MetricsTransportFailure(
                f"Failed to send {point.path} to {self.endpoint}: {e}"
            ) from e
