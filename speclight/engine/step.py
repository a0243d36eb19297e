"""Steps, their outcomes, and the per-step execution state machine.

State machine (one pass per spec execution, no retries)::

    NOT_RUN --> SKIPPED           : will_be_skipped was set by the spec
    NOT_RUN --> RUNNING           : action invoked
    RUNNING --> PASSED            : returned, or raised the expected exception
    RUNNING --> FAILED            : raised anything else (error captured)
    RUNNING --> PENDING           : raised NotImplementedError (error captured)

Only FAILED and PENDING outcomes cause the remaining steps to be skipped.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, NoReturn

from speclight.engine.data import ExtraData
from speclight.engine.reflector import is_empty_body
from speclight.exceptions import ExpectedExceptionNotRaised

if TYPE_CHECKING:
    from collections.abc import Callable

    from speclight.engine.spec import Spec

__all__ = [
    "CapturedError",
    "ExpectedException",
    "ScenarioBlock",
    "Status",
    "Step",
    "StepOutcome",
    "catch",
]

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ScenarioBlock(str, Enum):  # noqa: UP042
    """Gherkin-style block a step belongs to."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"


_BLOCK_WIDTH = max(len(b.value) for b in ScenarioBlock)


class Status(str, Enum):  # noqa: UP042
    """Outcome status of one step."""

    NOT_RUN = "NotRun"
    PASSED = "Passed"
    FAILED = "Failed"
    PENDING = "Pending"
    SKIPPED = "Skipped"


# ---------------------------------------------------------------------------
# Expected-exception wrapper
# ---------------------------------------------------------------------------


class ExpectedException:
    """Marks a step callable as expected to raise *exc_type*.

    Built by ``catch``.  The wrapper keeps the wrapped callable's name so
    the step description is unchanged, and stores the exception it caught
    in ``caught`` so a later step can assert on it.

    ``caught`` holds the most recent catch only.  A wrapper shared by specs
    running concurrently is overwritten by whichever finishes last; each
    run's own exception is on ``StepOutcome.expected_error``.
    """

    def __init__(
        self, exc_type: type[BaseException], func: Callable[..., Any]
    ) -> None:
        self.exc_type = exc_type
        self.func = func
        self.caught: BaseException | None = None
        functools.update_wrapper(self, func)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"catch({self.exc_type.__name__}, {self.func!r})"


def catch(
    exc_type: type[BaseException], func: Callable[..., Any]
) -> ExpectedException:
    """Wrap *func* so that raising *exc_type* counts as a pass.

    Usage::

        withdraw = catch(InsufficientFunds, i_withdraw)
        spec.when(withdraw, 500).then(the_error_mentions_the_balance, withdraw)
    """
    return ExpectedException(exc_type, func)


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CapturedError:
    """An exception recorded by a step, kept for re-raising after the run.

    The exception object itself is stored, so its ``__traceback__`` still
    points at the frames where the step raised.  ``traceback_text`` is the
    rendering taken at capture time, for reports.
    """

    error: BaseException
    traceback_text: str

    @classmethod
    def capture(cls, error: BaseException) -> CapturedError:
        text = "".join(traceback.format_exception(error))
        return cls(error=error, traceback_text=text)

    def reraise(self) -> NoReturn:
        """Raise the original exception object unchanged."""
        raise self.error


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Result of executing one step; immutable once built.

    Attributes
    ----------
    step : Step
        The step this outcome belongs to (same index in ``spec.outcomes``).
    status : Status
        Terminal status of the step.
    execution_time : float
        Wall time in seconds; ``0.0`` for skipped steps.
    captured : CapturedError | None
        Unexpected or pending error raised by the action.
    empty : bool
        The action's body does nothing.
    exception_caught : bool
        The action raised the exception its ``catch`` wrapper expected.
    expected_error : BaseException | None
        The exception matched by ``catch`` in this run.
    """

    step: Step
    status: Status = Status.NOT_RUN
    execution_time: float = 0.0
    captured: CapturedError | None = None
    empty: bool = False
    exception_caught: bool = False
    expected_error: BaseException | None = None

    @property
    def error(self) -> BaseException | None:
        return self.captured.error if self.captured is not None else None

    @property
    def causes_skip(self) -> bool:
        """Should the remaining steps be skipped?"""
        return self.status in (Status.FAILED, Status.PENDING)


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------


@dataclass(slots=True, eq=False)
class Step:
    """A single described unit of work inside a ``Spec``.

    Created by ``Spec.add_step``; ``index`` is its position at append time.
    ``action`` is a zero-argument callable whose result is awaited when it
    is awaitable.  ``original`` is the named callable the description was
    derived from.
    """

    index: int
    block: ScenarioBlock
    description: str
    action: Callable[[], Any]
    original: Callable[..., Any]
    spec: Spec
    arguments: tuple[Any, ...] = ()
    tags: list[str] = field(default_factory=list)
    data: ExtraData = field(default_factory=ExtraData)
    expected: ExpectedException | None = None
    will_be_skipped: bool = False

    @property
    def formatted_type(self) -> str:
        """Block label right-aligned so descriptions line up."""
        return self.block.value.rjust(_BLOCK_WIDTH)

    @property
    def expected_exception(self) -> type[BaseException] | None:
        return self.expected.exc_type if self.expected is not None else None

    async def execute(self) -> StepOutcome:
        """Run the action once and classify the result."""
        if self.will_be_skipped:
            return StepOutcome(step=self, status=Status.SKIPPED)

        start = time.perf_counter()
        try:
            result = self.action()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            elapsed = time.perf_counter() - start
            return self._classify_error(exc, elapsed)
        elapsed = time.perf_counter() - start

        if self.expected is not None:
            missing = ExpectedExceptionNotRaised(self.expected.exc_type, self.description)
            return StepOutcome(
                step=self,
                status=Status.FAILED,
                execution_time=elapsed,
                captured=CapturedError.capture(missing),
            )
        return StepOutcome(
            step=self,
            status=Status.PASSED,
            execution_time=elapsed,
            empty=is_empty_body(self.original),
        )

    def _classify_error(self, exc: Exception, elapsed: float) -> StepOutcome:
        if self.expected is not None and isinstance(exc, self.expected.exc_type):
            self.expected.caught = exc
            return StepOutcome(
                step=self,
                status=Status.PASSED,
                execution_time=elapsed,
                exception_caught=True,
                expected_error=exc,
            )
        status = Status.PENDING if isinstance(exc, NotImplementedError) else Status.FAILED
        log.debug("Step %d '%s' %s: %r", self.index, self.description, status.value, exc)
        return StepOutcome(
            step=self,
            status=status,
            execution_time=elapsed,
            captured=CapturedError.capture(exc),
        )

    def __repr__(self) -> str:
        return f"<Step {self.index} {self.block.value} {self.description!r}>"
