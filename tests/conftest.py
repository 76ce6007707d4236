"""Shared fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from _doubles import FakeClock, FakeProvider, FakeTransport

from aqiwatch.state.store import Store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Iterator[Store]:
    db = Store(":memory:")
    db.init_schema()
    yield db
    db.close()


@pytest.fixture
def provider(clock: FakeClock) -> FakeProvider:
    return FakeProvider(clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
