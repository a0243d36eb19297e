"""SpecLight: code-first Given/When/Then specs for Python tests.

Public API:
    - Spec: build steps with given/when/then/and_, then execute()
    - catch: mark a step as expected to raise
    - SpecFixture: base class for spec/step lifecycle hooks
    - Status: step outcome status
    - ResultCollector: process-wide store of executed specs
    - SettingsRegistry: speclight.yaml / SPECLIGHT_* settings
    - InvalidUsageError: raised when the engine is misused
"""

from __future__ import annotations

from speclight.config import SettingsRegistry, SpecLightSettings
from speclight.engine import (
    ScenarioBlock,
    Spec,
    SpecFixture,
    Status,
    Step,
    StepOutcome,
    catch,
)
from speclight.exceptions import (
    ExpectedExceptionNotRaised,
    InvalidUsageError,
    SpecLightError,
)
from speclight.reporting import ResultCollector, format_outcomes

__all__ = [
    "ExpectedExceptionNotRaised",
    "InvalidUsageError",
    "ResultCollector",
    "ScenarioBlock",
    "SettingsRegistry",
    "Spec",
    "SpecFixture",
    "SpecLightError",
    "SpecLightSettings",
    "Status",
    "Step",
    "StepOutcome",
    "catch",
    "format_outcomes",
]

__version__ = "0.1.0"
