"""
Shared fixtures for askdata tests.

Every test starts from a clean configuration: cached runtime config and the
cached default catalog are dropped, and the ASKDATA_* environment overrides
are removed.
"""

import sys
from pathlib import Path

import pytest

_tests_dir = Path(__file__).parent
_repo_root = _tests_dir.parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

from askdata.config.runtime_config import DirectiveContext, reset_config
from askdata.config.tool_catalog import get_default_catalog, reset_default_catalog

_ENV_OVERRIDES = (
    "ASKDATA_MAX_STEPS",
    "ASKDATA_MODEL",
    "ASKDATA_SQL_DIALECT",
    "ASKDATA_CATALOG_PATH",
)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Reset config caches and environment overrides around each test."""
    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_default_catalog()
    yield
    reset_config()
    reset_default_catalog()


@pytest.fixture
def catalog():
    """The bundled tool catalog."""
    return get_default_catalog()


@pytest.fixture
def directive_context():
    """A small, fixed directive context."""
    return DirectiveContext(
        sql_dialect="sqlite",
        possible_entities=("companies", "people"),
        verified_queries=(
            {"question": "How many companies?", "sql": "SELECT COUNT(*) FROM companies"},
        ),
    )
