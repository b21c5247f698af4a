"""Pytest configuration for the Interrogative Scanner."""
import os

import pytest

from interrogative.base.clock import ManualClock
from interrogative.base.config import AppConfig, LogConfig, StorageConfig, set_config
from interrogative.data.persistence import MemoryPersistence


def pytest_configure():
    # Tests start from empty stores and never write log files.
    os.environ.setdefault("INTERROGATIVE_SEED_DEMO", "false")
    os.environ.setdefault("INTERROGATIVE_LOG_FILE", "false")


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config(tmp_path):
    cfg = AppConfig(
        storage=StorageConfig(base_dir=tmp_path),
        log=LogConfig(file_enabled=False),
        seed_demo_data=False,
    )
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def memory():
    return MemoryPersistence()
