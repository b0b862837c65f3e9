"""
Pytest configuration and shared fixtures for flowexpr tests.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from flowexpr.expression import (  # noqa: E402
    CollectingDiagnosticSink,
    ExpressionContext,
    ExpressionEngine,
)

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=UTC)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "security: Security tests")


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def fixed_clock():
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def sink() -> CollectingDiagnosticSink:
    """Diagnostics sink that records events."""
    return CollectingDiagnosticSink()


@pytest.fixture
def engine(sink, fixed_clock) -> ExpressionEngine:
    """Engine with collected diagnostics and a fixed clock."""
    return ExpressionEngine(diagnostics=sink, clock=fixed_clock)


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def sample_item() -> dict[str, Any]:
    """A typical current item."""
    return {
        "name": "John",
        "age": 30,
        "active": True,
        "score": 4.5,
        "address": {"city": "NYC", "zip": "10001"},
        "tags": ["a", "b", "c"],
        "items": [{"id": 1, "price": 10}, {"id": 2, "price": 25}],
        "nothing": None,
    }


@pytest.fixture
def sample_context(sample_item) -> ExpressionContext:
    """Context with node outputs, variables and metadata."""
    fetch_output = {"json": {"id": 42, "body": {"title": "Hello"}, "list": [5, 6]}}
    return ExpressionContext(
        current_item=sample_item,
        node_outputs={"node_1": fetch_output, "Fetch Data": fetch_output},
        variables={"apiUrl": "https://api.example.com", "env": "prod"},
        workflow={"id": "wf_1", "name": "My Workflow", "active": True},
        execution={"id": "exec_9", "mode": "manual"},
        input_items=[{"json": sample_item}],
    )
