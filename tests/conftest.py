"""Shared fixtures."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from feedwise.fetch.metrics import FetchMetrics
from feedwise.ingest.metrics import IngestMetrics
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.store.metrics import StoreMetrics
from feedwise.store.store import ContentStore


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Give every test fresh metrics singletons."""
    StoreMetrics.reset()
    FetchMetrics.reset()
    IngestMetrics.reset()
    RecommendMetrics.reset()
    yield


@pytest.fixture
def temp_db_path() -> Generator[Path]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_content.sqlite"


@pytest.fixture
def store(temp_db_path: Path) -> Generator[ContentStore]:
    """Create a connected content store."""
    store = ContentStore(temp_db_path)
    store.connect()
    yield store
    store.close()
