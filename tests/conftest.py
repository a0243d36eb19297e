"""Shared fixtures for the SpecLight test suite."""

from __future__ import annotations

import pytest

from speclight.config import SettingsRegistry, SpecLightSettings
from speclight.engine.fixtures import FixtureRepository
from speclight.reporting.collector import ResultCollector


@pytest.fixture(autouse=True)
def _hermetic_speclight() -> None:
    """Every test starts with quiet settings, no collector and no shared fixtures."""
    SettingsRegistry.override(SpecLightSettings(print_outcomes=False, write_reports=False))
    ResultCollector.reset()
    FixtureRepository.clear()
    yield
    ResultCollector.reset()
    FixtureRepository.clear()
    SettingsRegistry.configure(None)


@pytest.fixture()
def collector() -> ResultCollector:
    """A private collector, injected into specs instead of the process one."""
    return ResultCollector()
