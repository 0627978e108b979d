import os
from pathlib import Path

import pytest
import structlog

# Directory name -> marker. The first match wins.
_DIRECTORY_MARKERS = (
    ("domain", pytest.mark.domain),
    ("application", pytest.mark.application),
    ("integration", pytest.mark.integration),
    ("bdd", pytest.mark.bdd),
)


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config environment before any context module is imported.

    The carts domain and the log setup both read ``PROTEAN_ENV`` at import.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Mark each test after the layer directory it lives in."""
    for item in items:
        parts = Path(item.fspath).parts
        for directory, marker in _DIRECTORY_MARKERS:
            if directory in parts:
                item.add_marker(marker)
                break

        # HTTP and end-to-end tests run slower unless they say otherwise
        if ("integration" in parts or "bdd" in parts) and not any(m.name == "fast" for m in item.iter_markers()):
            item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def _clean_log_context():
    """The checkout wizard binds order ids onto the log context; drop them after each test."""
    yield
    structlog.contextvars.clear_contextvars()
