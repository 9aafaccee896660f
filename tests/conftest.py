"""Shared test fixtures for finresolve."""

import os
import tempfile
from decimal import Decimal

import pytest

from finresolve.profile.models import Account, Budget, SavingsGoal, SpendingEntry
from finresolve.sync.cache import LocalCache
from finresolve.sync.engine import ProfileSyncEngine
from finresolve.sync.memory import InMemoryGateway

# Short window so debounce tests run quickly.
DEBOUNCE = 0.05


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "cache_dir": os.path.join(tmp_dir, "cache"),
        },
        "sync": {"debounce_ms": 250},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "cache"))


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def engine(gateway, cache):
    return ProfileSyncEngine(gateway, cache, debounce_seconds=DEBOUNCE)


@pytest.fixture
def account():
    return Account(id="a1", name="GTBank", balance=Decimal("1000"))


@pytest.fixture
def budget():
    return Budget(id="b1", category="food", limit=Decimal("500"))


@pytest.fixture
def goal():
    return SavingsGoal(id="g1", name="Emergency fund", target=Decimal("10000"))


@pytest.fixture
def entry():
    return SpendingEntry(id="e1", category="food", amount=Decimal("25"), account_id="a1")
