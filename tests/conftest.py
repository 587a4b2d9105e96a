"""
Shared test fixtures for the tag simulator test suite.
"""

import pytest

from hwsim.config.settings import StoreSettings
from hwsim.core.tag_store import TagStore
from hwsim.drivers.tag_device import TagDevice


@pytest.fixture
def tag_file(tmp_path):
    return tmp_path / "tags.txt"


@pytest.fixture
def store(tag_file):
    with TagStore(tag_file) as s:
        yield s


@pytest.fixture
def legacy_store(tag_file):
    with TagStore(tag_file, atomic_updates=False) as s:
        yield s


@pytest.fixture
def indexed_store(tag_file):
    with TagStore(tag_file, index_offsets=True) as s:
        yield s


@pytest.fixture
def settings(tmp_path, tag_file):
    return StoreSettings(tag_file=str(tag_file), _config_path=str(tmp_path / "hwsim.json"))


@pytest.fixture
def heater(store):
    return TagDevice(store, "HEATER1", {
        "SETPOINT": 120.0,
        "ENABLE": 0,
        "MODE": "IDLE",
    })
