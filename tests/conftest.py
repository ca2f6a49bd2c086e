import logging
import os
import pathlib
import sys
import pytest
from hypothesis import HealthCheck, settings


# The autouse config fixture below runs once per test, not per example.
settings.register_profile("btcu", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("btcu")

# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import btcu`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

SCENARIO_DIR = _REPO_ROOT / "tests" / "scenarios"


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: long-running property tests (skipped unless BTCU_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('BTCU_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set BTCU_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Fresh config singleton and no BTCU_* environment overrides per test."""
    from btcu.config import ConfigManager

    for key in list(os.environ):
        if key.startswith("BTCU_") and key != "BTCU_RUN_SLOW":
            monkeypatch.delenv(key, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()

    # Handlers installed by configure_logging may hold a captured stream.
    btcu_logger = logging.getLogger("btcu")
    for handler in list(btcu_logger.handlers):
        if getattr(handler, "_btcu_handler", False):
            btcu_logger.removeHandler(handler)


@pytest.fixture
def accounts():
    from btcu.session import DEFAULT_ACCOUNTS
    return dict(DEFAULT_ACCOUNTS)


@pytest.fixture
def deployer(accounts):
    return accounts["deployer"]


@pytest.fixture
def wallet1(accounts):
    return accounts["wallet_1"]


@pytest.fixture
def wallet2(accounts):
    return accounts["wallet_2"]


@pytest.fixture
def wallet3(accounts):
    return accounts["wallet_3"]


@pytest.fixture
def wallet4(accounts):
    return accounts["wallet_4"]


@pytest.fixture
def session():
    from btcu.session import Session
    return Session()


@pytest.fixture
def scenario_dir():
    return SCENARIO_DIR
