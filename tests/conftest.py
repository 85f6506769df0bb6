"""Pytest configuration for jsquad tests."""

import pytest
import signal
import sys

from compiler import parse_source
from semantic import SemanticAnalyzer


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "timeout(seconds): set custom timeout for test")


def timeout_handler(signum, frame):
    """Handle timeout signal."""
    pytest.fail("Test timed out")


@pytest.fixture(autouse=True)
def test_timeout(request):
    """Apply a timeout to all tests.

    Default is 10 seconds; a VM that ignores its step ceiling would otherwise
    hang the run. Use @pytest.mark.timeout(30) for a longer limit.
    """
    if sys.platform != "win32":
        marker = request.node.get_closest_marker("timeout")
        timeout_seconds = marker.args[0] if marker else 10

        old_handler = signal.signal(signal.SIGALRM, timeout_handler)
        signal.alarm(timeout_seconds)
        yield
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)
    else:
        yield


@pytest.fixture
def analyze():
    """Run a fresh analyzer over a tree."""
    return lambda tree: SemanticAnalyzer().analyze(tree)


@pytest.fixture
def parse():
    """Parse source text into a plain ESTree program."""
    return parse_source
