"""
Shared pytest fixtures.

FISHLOG_CONFIG / FISHLOG_DATA_DIR are pointed at a scratch directory before
any logbook module is imported, so importing app.py never touches the
working tree.
"""

import os
import tempfile

_SCRATCH = tempfile.mkdtemp(prefix="fishlog-tests-")
os.environ.setdefault("FISHLOG_CONFIG", os.path.join(_SCRATCH, "config", "logbook.json"))
os.environ.setdefault("FISHLOG_DATA_DIR", os.path.join(_SCRATCH, "data"))

import pytest  # noqa: E402

from fishing_log import FishingLog  # noqa: E402
from logbook_store import CollectionStore, KeyValueStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    return CollectionStore(KeyValueStore(tmp_path / "data"))


@pytest.fixture
def log(tmp_path):
    return FishingLog(tmp_path / "data", {})


@pytest.fixture
def client(tmp_path):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient
    from app import create_app

    app = create_app(data_dir=tmp_path / "data", config_path=tmp_path / "config" / "logbook.json")
    with TestClient(app) as c:
        yield c
