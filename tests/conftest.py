"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest

from prompt_relay.delivery.timing import SimulatedClock
from prompt_relay.surface.scripted import ScriptedSurface


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep PROMPT_RELAY_* variables of the developer shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("PROMPT_RELAY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def clock() -> SimulatedClock:
    return SimulatedClock()


@pytest.fixture()
def surface() -> ScriptedSurface:
    return ScriptedSurface()
