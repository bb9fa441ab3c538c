"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from cepfinder.logging.context import clear_log_context

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ENV_VARS = [
    "CEPFINDER_DEADLINE",
    "CEPFINDER_REQUEST_TIMEOUT",
    "CEPFINDER_USER_AGENT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "ENVIRONMENT",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture
def brasilapi_body():
    """Recorded BrasilAPI body for 01001000."""
    return (FIXTURES_DIR / "provider_responses" / "brasilapi_01001000.json").read_bytes()


@pytest.fixture
def viacep_body():
    """Recorded ViaCEP body for 01001000."""
    return (FIXTURES_DIR / "provider_responses" / "viacep_01001000.json").read_bytes()


@pytest.fixture
def viacep_not_found_body():
    return (FIXTURES_DIR / "provider_responses" / "viacep_not_found.json").read_bytes()


@pytest.fixture
def brasilapi_not_found_body():
    return (FIXTURES_DIR / "provider_responses" / "brasilapi_not_found.json").read_bytes()
