"""Spec fixtures: cross-cutting hooks around specs and steps.

A fixture is registered on a spec by type (``spec.with_fixture(MyFixture)``).
Each concrete type is instantiated once per process by
``FixtureRepository`` and the same instance is handed to every spec that
asks for it, including specs running concurrently on other threads.
Fixtures therefore keep no per-spec state of their own; anything
spec-specific belongs in ``spec.data_bag`` or ``step.data``.

Hook order
----------
``spec_setup`` → for each step (``step_setup`` → step → ``step_teardown``)
→ ``spec_teardown``.  Fixtures are called in registration order for both
setup and teardown.  An exception from a hook is not caught: it aborts
the run.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, ClassVar, TypeVar

if TYPE_CHECKING:
    from speclight.engine.spec import Spec
    from speclight.engine.step import Step

__all__ = [
    "FixtureRepository",
    "PrintCurrentStepFixture",
    "SpecFixture",
]

log = logging.getLogger(__name__)

F = TypeVar("F", bound="SpecFixture")


class SpecFixture:
    """Base class for fixtures.  Override any subset of the hooks."""

    def spec_setup(self, spec: Spec) -> None:
        """Called once before the first step."""

    def step_setup(self, step: Step) -> None:
        """Called before every step, including ones that will be skipped."""

    def step_teardown(self, step: Step) -> None:
        """Called after every step, including skipped ones."""

    def spec_teardown(self, spec: Spec) -> None:
        """Called once after the last step, before cleanup actions."""


class PrintCurrentStepFixture(SpecFixture):
    """Announces each step as it starts, so a hanging step can be spotted.

    Added to every spec by default.
    """

    def step_setup(self, step: Step) -> None:
        if step.will_be_skipped:
            return
        log.info("%s %s", step.formatted_type.strip(), step.description)


class FixtureRepository:
    """Process-global fixture instances, one per concrete type.

    Class-level singleton; all access goes through class methods.
    """

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _fixtures: ClassVar[dict[type[SpecFixture], SpecFixture]] = {}

    @classmethod
    def get(cls, fixture_type: type[F]) -> F:
        """Return the shared instance of *fixture_type*, creating it on first use.

        Raises
        ------
        TypeError
            If *fixture_type* is not a ``SpecFixture`` subclass.
        """
        if not (isinstance(fixture_type, type) and issubclass(fixture_type, SpecFixture)):
            msg = f"Expected a SpecFixture subclass, got {fixture_type!r}"
            raise TypeError(msg)
        with cls._lock:
            fixture = cls._fixtures.get(fixture_type)
            if fixture is None:
                fixture = fixture_type()
                cls._fixtures[fixture_type] = fixture
                log.debug("Created shared fixture %s", fixture_type.__qualname__)
            return fixture  # type: ignore[return-value]

    @classmethod
    def clear(cls) -> None:
        """Drop every shared instance.  Intended for testing only."""
        with cls._lock:
            cls._fixtures.clear()

    @classmethod
    def registered_types(cls) -> frozenset[type[SpecFixture]]:
        with cls._lock:
            return frozenset(cls._fixtures)
