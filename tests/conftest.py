"""
Pytest configuration for agentcore tests.

This file configures pytest with custom markers, command-line options and
shared fixtures for running different types of tests.
"""

import pytest

from agentcore import RetryPolicy, background


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests with real API calls",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real API keys, use --run-e2e to run)"
    )
    config.addinivalue_line("markers", "openai: mark test as requiring OpenAI API key")


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --run-e2e is passed."""
    if config.getoption("--run-e2e"):
        return

    skip_e2e = pytest.mark.skip(reason="Need --run-e2e option to run end-to-end tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture
def ctx():
    """A live root context that is cancelled after the test."""
    context = background()
    yield context
    context.cancel()


@pytest.fixture
def no_wait_retry():
    """Retry policy with zero backoff so retry tests run instantly."""
    return RetryPolicy(max_retries=3, base_delay=0.0, max_delay=0.0, jitter_factor=0.0)
