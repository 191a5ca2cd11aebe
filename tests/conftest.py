"""
Pytest configuration for the API tests.
"""

from __future__ import annotations

import pytest

from fake_dgraph import FakeDgraph, make_client


@pytest.fixture
def fake_dgraph() -> FakeDgraph:
    return FakeDgraph()


@pytest.fixture
async def dgraph_client(fake_dgraph):
    client = make_client(fake_dgraph)
    yield client
    await client.aclose()
