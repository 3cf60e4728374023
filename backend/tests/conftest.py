"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Centralized test configuration with component markers
WHY: Enable test organization, filtering, and shared test utilities
HOW: Define pytest markers, fixtures, and test helpers
"""

from datetime import timedelta

import pytest

from haggle.core.context_store import ConversationContextStore
from haggle.llm.provider_factory import reset_provider
from tests.fixtures.factories import (
    FrozenClock,
    ManualSweepScheduler,
    make_context,
    make_negotiation,
    sample_haggle,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


@pytest.fixture(autouse=True)
def reset_provider_singleton():
    """
    Reset provider singleton before each test.

    WHAT: Clear provider cache between tests
    WHY: Prevent test pollution and ensure clean state
    HOW: Call reset_provider() before and after each test
    """
    reset_provider()
    yield
    reset_provider()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def scheduler():
    return ManualSweepScheduler()


@pytest.fixture
def store(clock, scheduler):
    """Context store with a frozen clock and a manual sweep."""
    return ConversationContextStore(
        max_age=timedelta(hours=24),
        sweep_interval=timedelta(hours=1),
        clock=clock,
        scheduler=scheduler,
    )


@pytest.fixture
def context():
    return make_context()


@pytest.fixture
def negotiation():
    return make_negotiation()


@pytest.fixture
def sample_messages():
    return sample_haggle()
