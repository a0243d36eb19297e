"""Spec: an ordered scenario of steps and the engine that runs it.

Usage::

    def test_login():
        Spec('''
            In order to see my orders
            As a customer
            I want to log in
        ''').given(i_have_an_account, "bob") \\
            .when(i_log_in_as, "bob") \\
            .then(i_see_the_greeting, "Hello bob") \\
            .execute()

Orchestration (``_run_outcomes`` + ``_after_execute``)::

    fixtures.spec_setup
    for step:  skip flag -> fixtures.step_setup -> step -> fixtures.step_teardown
    fixtures.spec_teardown
    cleanup actions            (all attempted, first error kept)
    collector.add(spec, module of the calling test)
    print outcomes
    raise cleanup error, else the first step error by step order

Exactly one exception escapes a run.  Step errors are captured on their
outcomes and re-raised as the same object, with the original traceback.
Fixture hook errors are not captured and abort the run where they occur.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import re
from typing import TYPE_CHECKING, Any

from speclight.config import SettingsRegistry
from speclight.engine.data import ExtraData
from speclight.engine.fixtures import FixtureRepository, PrintCurrentStepFixture
from speclight.engine.reflector import (
    describe_step,
    find_calling_method,
    is_synthetic_name,
    unwrap_callable,
)
from speclight.engine.step import ExpectedException, ScenarioBlock, Step
from speclight.exceptions import InvalidUsageError
from speclight.reporting.collector import ResultCollector
from speclight.reporting.presenter import print_outcomes

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from speclight.engine.fixtures import SpecFixture
    from speclight.engine.reflector import CallerIdentity
    from speclight.engine.step import StepOutcome

__all__ = ["Spec"]

log = logging.getLogger(__name__)

_LEADING_WHITESPACE = re.compile(r"^\s+", re.MULTILINE)

_ANONYMOUS_STEP_MESSAGE = """\
Don't pass lambdas as SpecLight steps: no readable description can be \
derived from them. To pass arguments to a step, give them after the step \
function instead of wrapping it:

    .and_(lambda: i_enter_the_username("Bob"))

becomes

    .and_(i_enter_the_username, "Bob")
"""


def _normalize_description(description: str) -> str:
    return _LEADING_WHITESPACE.sub("", description.strip())


def _cleanup_action(resource: Any) -> Callable[[], Any]:
    """Adapt *resource* into a zero-argument cleanup action."""
    for name in ("aclose", "close"):
        method = getattr(resource, name, None)
        if callable(method):
            return method
    exit_method = getattr(resource, "__exit__", None)
    if callable(exit_method):
        return functools.partial(exit_method, None, None, None)
    exit_method = getattr(resource, "__aexit__", None)
    if callable(exit_method):
        return functools.partial(exit_method, None, None, None)
    if callable(resource):
        return resource
    msg = f"Cannot use {type(resource).__name__} as a cleanup action"
    raise InvalidUsageError(msg)


class Spec:
    """An executable scenario built from Given/When/Then/And steps.

    Parameters
    ----------
    description:
        Free text (In order to / As a / I want).  Surrounding whitespace is
        stripped and every line's indentation removed.
    collector:
        Collector that receives the spec after execution.  Defaults to the
        process collector, ``ResultCollector.get()``.

    Invariants
    ----------
    * ``steps[i].index == i`` for every step.
    * After execution ``len(outcomes) == len(steps)`` and
      ``outcomes[i].step is steps[i]``.
    * A spec executes once.
    """

    def __init__(self, description: str, *, collector: ResultCollector | None = None) -> None:
        self.description = _normalize_description(description)
        self.steps: list[Step] = []
        self.tags: list[str] = []
        self.fixtures: list[SpecFixture] = []
        self.calling_method: CallerIdentity | None = None
        self.test_method_name_override: str | None = None
        self.outcomes: list[StepOutcome] | None = None
        self._extra_data = ExtraData()
        self._final_actions: list[Callable[[], Any]] = []
        self._collector = collector
        self._executed = False

        # added to all specs by default
        self.with_fixture(PrintCurrentStepFixture)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def data_bag(self) -> ExtraData:
        """Attribute-style view of the spec's extra data (``spec.data_bag.user``).

        Same store as ``data_dictionary``.  String values are printed with
        the outcomes.
        """
        return self._extra_data

    @property
    def data_dictionary(self) -> ExtraData:
        """Mapping view of the spec's extra data; same store as ``data_bag``."""
        return self._extra_data

    @property
    def name(self) -> str:
        """Display name: the override, else the calling test, else the first description line."""
        if self.test_method_name_override:
            return self.test_method_name_override
        if self.calling_method is not None:
            return self.calling_method.qualname
        return self.description.partition("\n")[0]

    @property
    def group_key(self) -> str:
        """Report group: the module of the calling test."""
        return self.calling_method.module if self.calling_method is not None else "__main__"

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_step(
        self,
        block: ScenarioBlock,
        func: Callable[..., Any],
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> Spec:
        """Append a step that calls ``func(*args, **kwargs)``.

        Raises
        ------
        InvalidUsageError
            If *func* is a lambda or otherwise has no usable name.
        """
        expected = func if isinstance(func, ExpectedException) else None
        target = expected.func if expected is not None else func
        named = unwrap_callable(target)
        if is_synthetic_name(getattr(named, "__name__", type(named).__name__)):
            raise InvalidUsageError(_ANONYMOUS_STEP_MESSAGE)

        kwargs = dict(kwargs or {})
        self.steps.append(
            Step(
                index=len(self.steps),
                block=block,
                description=description or describe_step(target, args, kwargs),
                action=functools.partial(target, *args, **kwargs),
                original=target,
                spec=self,
                arguments=tuple(args),
                expected=expected,
            )
        )
        return self

    def given(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Spec:
        return self.add_step(ScenarioBlock.GIVEN, func, args, kwargs)

    def when(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Spec:
        return self.add_step(ScenarioBlock.WHEN, func, args, kwargs)

    def then(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Spec:
        return self.add_step(ScenarioBlock.THEN, func, args, kwargs)

    def and_(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Spec:
        return self.add_step(ScenarioBlock.AND, func, args, kwargs)

    def tag(self, *tags: str) -> Spec:
        """Tag the most recently added step, or the spec if it has no steps yet."""
        target = self.steps[-1].tags if self.steps else self.tags
        target.extend(tags)
        return self

    def cleanup(self, action: Callable[[], Any] | Any) -> Spec:
        """Run *action* after the last step, whatever the outcome.

        Accepts a callable (sync or async), an object with ``close()`` /
        ``aclose()``, or a context manager.  Cleanups run in registration
        order; all are attempted and the first error is raised.
        """
        self._final_actions.append(_cleanup_action(action))
        return self

    def with_fixture(self, fixture_type: type[SpecFixture]) -> Spec:
        """Attach the shared instance of *fixture_type*; no-op if already attached."""
        if any(type(f) is fixture_type for f in self.fixtures):
            return self
        self.fixtures.append(FixtureRepository.get(fixture_type))
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, test_method_name_override: str | None = None) -> None:
        """Run the spec, print its results, and re-raise the first error.

        Blocks until the run completes.  Call it directly from the test
        function so the calling test is identified correctly.

        Raises
        ------
        InvalidUsageError
            If called from inside a running event loop (use
            ``await spec.execute_async()`` there) or if already executed.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            msg = "Spec.execute() cannot block inside a running event loop; await spec.execute_async() instead"
            raise InvalidUsageError(msg)

        self._begin(test_method_name_override)
        asyncio.run(self._execute())

    def execute_async(
        self, test_method_name_override: str | None = None
    ) -> Coroutine[Any, Any, None]:
        """Return a coroutine that runs the spec; see ``execute``.

        Not an ``async def``: the calling test is identified when this is
        called, not when the coroutine is first awaited.
        """
        self._begin(test_method_name_override)
        return self._execute()

    def _begin(self, test_method_name_override: str | None) -> None:
        if self._executed:
            msg = "A Spec can only be executed once"
            raise InvalidUsageError(msg)
        self._executed = True
        if self.calling_method is None:
            self.calling_method = find_calling_method()
        self.test_method_name_override = test_method_name_override or self.calling_method.function

    async def _execute(self) -> None:
        self.outcomes = await self._run_outcomes()
        await self._after_execute()

    async def _run_outcomes(self) -> list[StepOutcome]:
        for fixture in self.fixtures:
            fixture.spec_setup(self)

        skip = False
        outcomes: list[StepOutcome] = []
        for step in self.steps:
            step.will_be_skipped = skip
            for fixture in self.fixtures:
                fixture.step_setup(step)
            outcome = await step.execute()
            outcomes.append(outcome)
            skip = skip or outcome.causes_skip
            for fixture in self.fixtures:
                fixture.step_teardown(step)

        for fixture in self.fixtures:
            fixture.spec_teardown(self)
        return outcomes

    async def _after_execute(self) -> None:
        cleanup_error: Exception | None = None
        if self._final_actions:
            # a failing cleanup invalidates the run; its error wins over step errors
            try:
                await self._run_final_actions()
            except Exception as exc:
                cleanup_error = exc

        collector = self._collector if self._collector is not None else ResultCollector.get()
        collector.add(self, self.group_key)

        if SettingsRegistry.get().print_outcomes:
            print_outcomes(self)

        outcomes = self.outcomes or []
        log.info(
            "Spec %s finished: %d steps, %d failed or pending",
            self.name,
            len(outcomes),
            sum(1 for o in outcomes if o.causes_skip),
        )

        if cleanup_error is not None:
            raise cleanup_error
        for outcome in outcomes:
            if outcome.captured is not None:
                outcome.captured.reraise()

    async def _run_final_actions(self) -> None:
        first_error: Exception | None = None
        for action in self._final_actions:
            try:
                result = action()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                log.debug("Cleanup action %r failed: %r", action, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __repr__(self) -> str:
        first_line = self.description.partition("\n")[0]
        return f"<Spec {first_line!r} steps={len(self.steps)}>"
