"""Execution engine: specs, steps, outcomes and fixtures."""

from __future__ import annotations

from speclight.engine.data import ExtraData
from speclight.engine.reflector import CallerIdentity, find_calling_method
from speclight.engine.step import (
    CapturedError,
    ExpectedException,
    ScenarioBlock,
    Status,
    Step,
    StepOutcome,
    catch,
)
from speclight.engine.fixtures import FixtureRepository, PrintCurrentStepFixture, SpecFixture
from speclight.engine.spec import Spec

__all__ = [
    "CallerIdentity",
    "CapturedError",
    "ExpectedException",
    "ExtraData",
    "FixtureRepository",
    "PrintCurrentStepFixture",
    "ScenarioBlock",
    "Spec",
    "SpecFixture",
    "Status",
    "Step",
    "StepOutcome",
    "catch",
    "find_calling_method",
]
