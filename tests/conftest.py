"""Root-level pytest fixtures for all tests.

Provides:
- A fake checkout gateway seeded with a two-item cart
- In-memory and file-backed consignment caches
- Isolation from any real multiship config or MULTISHIP_* environment
"""

import os

import pytest

from multiship.gateway.models import LineItem
from multiship.services.consignment_cache import (
    FileConsignmentStore,
    InMemoryConsignmentStore,
)
from tests.helpers import FakeGateway


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a live storefront"
    )


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep tests away from ~/.multiship and the caller's environment."""
    for key in list(os.environ):
        if key.startswith("MULTISHIP_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def item_a() -> LineItem:
    return LineItem(id="A", name="Tea Kettle", quantity=1, product_id=101)


@pytest.fixture
def item_b() -> LineItem:
    return LineItem(id="B", name="Mug", quantity=3, product_id=102)


@pytest.fixture
def gateway(item_a, item_b) -> FakeGateway:
    """Fake gateway whose cart holds A (qty 1) and B (qty 3)."""
    return FakeGateway(items=[item_a, item_b])


@pytest.fixture
def memory_cache() -> InMemoryConsignmentStore:
    return InMemoryConsignmentStore()


@pytest.fixture
def file_cache(tmp_path) -> FileConsignmentStore:
    return FileConsignmentStore(tmp_path / "sessions" / "chk-1.json")
