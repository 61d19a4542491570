"""
Test configuration for TaxLens tests.

No test makes a network call: every AI interaction goes through a mocked
Mistral client from scenarios.make_mock_mistral().
"""
from __future__ import annotations

import asyncio
from typing import Any

import pytest

from taxlens.graph.graph import set_resources


@pytest.fixture
def semaphore() -> asyncio.Semaphore:
    return asyncio.Semaphore(2)


@pytest.fixture
def graph_resources():
    """Register a mock client with the graph registry; cleared after the test."""

    def _register(mock_client: Any) -> Any:
        set_resources(mistral_client=mock_client, ai_semaphore=asyncio.Semaphore(2))
        return mock_client

    yield _register
    set_resources(mistral_client=None, ai_semaphore=None)
