"""Test-wide setup: .env.tests, the scorekeeper's structlog pipeline, clean log context."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import configure_structlog

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# same pipeline as the server, minus handlers; caplog renders the records
configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Each test starts without a bound match_id."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
