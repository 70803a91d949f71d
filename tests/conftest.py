"""
Test Configuration
==================

Pytest fixtures and test configuration for clash-console.
"""

import pytest

from clash_console.client import control_client
from clash_console.endpoint import Endpoint
from clash_console.feeds import connections_stream, logs_stream

from tests.helpers import FakeFeed


@pytest.fixture
def fake_feed():
    """Provide a fresh in-memory feed transport."""
    return FakeFeed()


@pytest.fixture
def endpoint():
    """Provide a resolved local endpoint with a secret."""
    return Endpoint(hostname="127.0.0.1", port=9090, secret="s3cret", protocol="http:")


@pytest.fixture
def sample_snapshot():
    """Provide a sample /connections message."""
    return {
        "uploadTotal": 1024,
        "downloadTotal": 4096,
        "connections": [
            {
                "id": "6f1c2a",
                "metadata": {
                    "network": "tcp",
                    "type": "HTTP",
                    "host": "example.com",
                    "sourceIP": "127.0.0.1",
                    "sourcePort": "51234",
                    "destinationPort": "443",
                    "destinationIP": "93.184.216.34",
                },
                "upload": 512,
                "download": 2048,
                "start": "2024-01-01T00:00:00.000Z",
                "chains": ["Tokyo-01", "Proxy"],
                "rule": "DomainSuffix",
                "rulePayload": "example.com",
            }
        ],
    }


@pytest.fixture(autouse=True)
def reset_singletons():
    """Forget process-wide singletons between tests."""
    yield
    logs_stream.reset()
    connections_stream.reset()
    control_client.reset()
