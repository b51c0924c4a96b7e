"""Shared test fixtures for chronobranch.

Provides a fresh timeline store, branch manager and merge resolver, plus a
helper that runs a program and returns its ExecutionResult.
"""

import textwrap

import pytest

from chronobranch import RunConfig, compile_and_run
from chronobranch.errors import DiagnosticCollector
from chronobranch.runtime import (
    TimelineStore, BranchManager, MergeResolver, ExecutionContext, int_val,
)


@pytest.fixture
def store() -> TimelineStore:
    """Empty timeline store."""
    return TimelineStore()


@pytest.fixture
def manager(store: TimelineStore) -> BranchManager:
    return BranchManager(store)


@pytest.fixture
def diagnostics() -> DiagnosticCollector:
    return DiagnosticCollector()


@pytest.fixture
def resolver(store: TimelineStore, diagnostics: DiagnosticCollector) -> MergeResolver:
    return MergeResolver(store, diagnostics=diagnostics)


@pytest.fixture
def ctx() -> ExecutionContext:
    """Execution context over an empty store."""
    return ExecutionContext()


@pytest.fixture
def bound_x(store: TimelineStore) -> TimelineStore:
    """Store where x@0 = 3."""
    store.write("x", int_val(3))
    return store


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

def run(source: str, inputs=None, **settings):
    """Run dedented source with optional scripted inputs and config settings."""
    config = RunConfig().updated(settings) if settings else None
    return compile_and_run(textwrap.dedent(source), inputs=inputs, config=config)
