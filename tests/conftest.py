"""Shared fixtures: golden YAML files and documents built from them."""

import copy
from pathlib import Path

import pytest

from metadata_editor.yaml_io import decode

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
GOLDEN_DIR = FIXTURES_DIR / "golden"
INVALID_DIR = FIXTURES_DIR / "invalid"

SAMPLE_NAME = "20230622_sample_metadata.yml"


def read_fixture(path: Path) -> str:
    # newline="" keeps the bytes as written
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


@pytest.fixture
def golden():
    return lambda name: read_fixture(GOLDEN_DIR / name)


@pytest.fixture
def invalid():
    return lambda name: read_fixture(INVALID_DIR / name)


@pytest.fixture
def golden_path():
    return lambda name: GOLDEN_DIR / name


@pytest.fixture
def invalid_path():
    return lambda name: INVALID_DIR / name


@pytest.fixture
def sample_text():
    return read_fixture(GOLDEN_DIR / SAMPLE_NAME)


@pytest.fixture
def sample_document(sample_text):
    """The realistic sample session; passes validation as is."""
    return decode(sample_text)


@pytest.fixture
def two_tetrodes():
    """Two tetrode groups with generated maps, ids 0 and 1."""
    groups = [
        {"id": 0, "location": "CA1", "device_type": "tetrode_12.5"},
        {"id": 1, "location": "CA3", "device_type": "tetrode_12.5"},
    ]
    maps = [
        {"ntrode_id": i, "electrode_group_id": i, "electrode_id": 0, "bad_channels": [], "map": {c: c for c in range(4)}}
        for i in range(2)
    ]
    return {"electrode_groups": copy.deepcopy(groups), "ntrode_electrode_group_channel_map": maps}
