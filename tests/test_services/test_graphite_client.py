"""Tests for GraphiteClient."""

import socket
import threading

import pytest
from unittest.mock import MagicMock, patch

from fleetperf.config.models import GraphiteConfig
from fleetperf.errors import MetricsEndpointError, MetricsTransportFailure
from fleetperf.services.graphite_client import GraphiteClient
from fleetperf.utils.metrics import MetricPoint

POINT = MetricPoint("ci.perf.web1.memory.memfree", 1024, 1792324801)


@pytest.fixture
def graphite_config():
    return GraphiteConfig(server="graphite.example.net", prefix="ci.perf", send_timeout=2)


class TestGraphiteClient:
    """Per-point delivery."""

    def test_defaults_to_carbon_port(self, graphite_config):
        assert GraphiteClient(graphite_config).endpoint == "graphite.example.net:2003"

    @patch('fleetperf.services.graphite_client.socket.create_connection')
    def test_send_opens_writes_and_closes(self, mock_connect, graphite_config):
        sock = MagicMock()
        mock_connect.return_value.__enter__.return_value = sock

        GraphiteClient(graphite_config).send(POINT)

        mock_connect.assert_called_once_with(("graphite.example.net", 2003), timeout=2)
        sock.sendall.assert_called_once_with(b"ci.perf.web1.memory.memfree 1024 1792324801\n")
        mock_connect.return_value.__exit__.assert_called_once()

    @patch('fleetperf.services.graphite_client.socket.create_connection')
    def test_connection_refused_raises_transport_failure(self, mock_connect, graphite_config):
        mock_connect.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(MetricsTransportFailure) as exc_info:
            GraphiteClient(graphite_config).send(POINT)
        assert POINT.path in str(exc_info.value)

    @patch('fleetperf.services.graphite_client.socket.create_connection')
    def test_timeout_raises_transport_failure(self, mock_connect, graphite_config):
        mock_connect.side_effect = socket.timeout("timed out")

        with pytest.raises(MetricsTransportFailure):
            GraphiteClient(graphite_config).send(POINT)

    @patch('fleetperf.services.graphite_client.socket.getaddrinfo')
    def test_resolve_failure_is_endpoint_error(self, mock_getaddrinfo, graphite_config):
        mock_getaddrinfo.side_effect = socket.gaierror("Name or service not known")

        with pytest.raises(MetricsEndpointError):
            GraphiteClient(graphite_config).resolve()

    def test_resolve_without_server(self):
        with pytest.raises(MetricsEndpointError):
            GraphiteClient(GraphiteConfig()).resolve()

    def test_delivers_line_to_listener(self):
        """End to end against a local TCP listener."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]
        received = []

        def accept():
            conn, _ = listener.accept()
            with conn:
                data = b""
                while True:
                    chunk = conn.recv(1024)
                    if not chunk:
                        break
                    data += chunk
                received.append(data)

        thread = threading.Thread(target=accept)
        thread.start()
        try:
            config = GraphiteConfig(server="127.0.0.1", port=port, prefix="ci.perf")
            GraphiteClient(config).send(POINT)
            thread.join(timeout=5)
        finally:
            listener.close()

        assert received == [b"ci.perf.web1.memory.memfree 1024 1792324801\n"]
