"""Tests for speclight.engine.step: the per-step state machine.

Covers:
    Skipped        skip flag set: SKIPPED, zero time, action never invoked
    Passed         sync and async actions; empty bodies flagged
    Failed         unexpected errors captured with their traceback
    Pending        NotImplementedError is a distinct, skip-causing status
    Catch          expected exception passes, is stored; missing one fails
    Outcome        frozen; causes_skip derived from status
"""

from __future__ import annotations

import asyncio

import pytest

from speclight.engine.spec import Spec
from speclight.engine.step import (
    CapturedError,
    ScenarioBlock,
    Status,
    Step,
    StepOutcome,
    catch,
)
from speclight.exceptions import ExpectedExceptionNotRaised

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

calls: list[str] = []


def records_a_call() -> None:
    calls.append("called")


async def records_a_call_later() -> None:
    await asyncio.sleep(0)
    calls.append("async")


def does_nothing() -> None:
    pass


def explodes() -> None:
    raise RuntimeError("boom")


async def explodes_later() -> None:
    await asyncio.sleep(0)
    raise ValueError("async boom")


def is_not_written_yet() -> None:
    raise NotImplementedError


def divides_by_zero() -> float:
    return 1 / 0


def the_total_is_computed() -> int:
    return 40 + 2


def the_user_is_named() -> str:
    return "bob"


def refuses(amount: int) -> None:
    raise ValueError(f"refused {amount}")


def only_step(func, *args) -> Step:
    spec = Spec("step under test").given(func, *args)
    return spec.steps[0]


@pytest.fixture(autouse=True)
def _clear_calls() -> None:
    calls.clear()


# ---------------------------------------------------------------------------
# Skipped
# ---------------------------------------------------------------------------


class TestSkipped:
    @pytest.mark.asyncio
    async def test_skip_flag_skips_action(self) -> None:
        step = only_step(records_a_call)
        step.will_be_skipped = True
        outcome = await step.execute()
        assert outcome.status == Status.SKIPPED
        assert outcome.execution_time == 0.0
        assert outcome.error is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_skipped_does_not_cause_skip(self) -> None:
        step = only_step(explodes)
        step.will_be_skipped = True
        outcome = await step.execute()
        assert not outcome.causes_skip


# ---------------------------------------------------------------------------
# Passed
# ---------------------------------------------------------------------------


class TestPassed:
    @pytest.mark.asyncio
    async def test_sync_action(self) -> None:
        outcome = await only_step(records_a_call).execute()
        assert outcome.status == Status.PASSED
        assert not outcome.empty
        assert calls == ["called"]

    @pytest.mark.asyncio
    async def test_async_action_is_awaited(self) -> None:
        outcome = await only_step(records_a_call_later).execute()
        assert outcome.status == Status.PASSED
        assert calls == ["async"]

    @pytest.mark.asyncio
    async def test_empty_body_flagged(self) -> None:
        outcome = await only_step(does_nothing).execute()
        assert outcome.status == Status.PASSED
        assert outcome.empty

    @pytest.mark.asyncio
    @pytest.mark.parametrize("func", [the_total_is_computed, the_user_is_named])
    async def test_constant_return_is_not_empty(self, func) -> None:
        outcome = await only_step(func).execute()
        assert outcome.status == Status.PASSED
        assert not outcome.empty

    @pytest.mark.asyncio
    async def test_execution_time_recorded(self) -> None:
        outcome = await only_step(records_a_call_later).execute()
        assert outcome.execution_time >= 0.0

    @pytest.mark.asyncio
    async def test_arguments_passed_to_action(self) -> None:
        received: list[object] = []

        def receives(value: object) -> None:
            received.append(value)

        outcome = await only_step(receives, 7).execute()
        assert outcome.status == Status.PASSED
        assert received == [7]


# ---------------------------------------------------------------------------
# Failed / Pending
# ---------------------------------------------------------------------------


class TestFailed:
    @pytest.mark.asyncio
    async def test_error_captured(self) -> None:
        outcome = await only_step(explodes).execute()
        assert outcome.status == Status.FAILED
        assert isinstance(outcome.error, RuntimeError)
        assert str(outcome.error) == "boom"
        assert outcome.causes_skip

    @pytest.mark.asyncio
    async def test_async_error_captured(self) -> None:
        outcome = await only_step(explodes_later).execute()
        assert outcome.status == Status.FAILED
        assert isinstance(outcome.error, ValueError)

    @pytest.mark.asyncio
    async def test_traceback_points_at_raising_function(self) -> None:
        outcome = await only_step(explodes).execute()
        assert outcome.captured is not None
        assert "in explodes" in outcome.captured.traceback_text
        assert "RuntimeError: boom" in outcome.captured.traceback_text

    @pytest.mark.asyncio
    async def test_empty_flag_not_set_on_failure(self) -> None:
        outcome = await only_step(explodes).execute()
        assert not outcome.empty

    @pytest.mark.asyncio
    async def test_base_exceptions_propagate(self) -> None:
        def interrupts() -> None:
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            await only_step(interrupts).execute()


class TestPending:
    @pytest.mark.asyncio
    async def test_not_implemented_is_pending(self) -> None:
        outcome = await only_step(is_not_written_yet).execute()
        assert outcome.status == Status.PENDING
        assert isinstance(outcome.error, NotImplementedError)
        assert outcome.causes_skip


# ---------------------------------------------------------------------------
# Catch
# ---------------------------------------------------------------------------


class TestCatch:
    @pytest.mark.asyncio
    async def test_expected_exception_passes(self) -> None:
        wrapped = catch(ZeroDivisionError, divides_by_zero)
        step = only_step(wrapped)
        outcome = await step.execute()
        assert outcome.status == Status.PASSED
        assert outcome.exception_caught
        assert outcome.error is None
        assert not outcome.causes_skip
        assert isinstance(wrapped.caught, ZeroDivisionError)
        assert outcome.expected_error is wrapped.caught

    @pytest.mark.asyncio
    async def test_subclass_of_expected_exception_is_caught(self) -> None:
        outcome = await only_step(catch(ArithmeticError, divides_by_zero)).execute()
        assert outcome.exception_caught

    @pytest.mark.asyncio
    async def test_other_exception_still_fails(self) -> None:
        outcome = await only_step(catch(KeyError, explodes)).execute()
        assert outcome.status == Status.FAILED
        assert not outcome.exception_caught
        assert isinstance(outcome.error, RuntimeError)

    @pytest.mark.asyncio
    async def test_missing_exception_fails(self) -> None:
        outcome = await only_step(catch(ValueError, records_a_call)).execute()
        assert outcome.status == Status.FAILED
        assert isinstance(outcome.error, ExpectedExceptionNotRaised)
        assert "ValueError" in str(outcome.error)

    def test_description_uses_wrapped_name(self) -> None:
        step = only_step(catch(ZeroDivisionError, divides_by_zero))
        assert step.description == "divides by zero"
        assert step.expected_exception is ZeroDivisionError

    @pytest.mark.asyncio
    async def test_shared_wrapper_keeps_each_exception_on_its_outcome(self) -> None:
        refusing = catch(ValueError, refuses)
        first = await only_step(refusing, 1).execute()
        second = await only_step(refusing, 2).execute()
        assert str(first.expected_error) == "refused 1"
        assert str(second.expected_error) == "refused 2"
        assert refusing.caught is second.expected_error

    @pytest.mark.asyncio
    async def test_no_expected_error_without_catch(self) -> None:
        outcome = await only_step(explodes).execute()
        assert outcome.expected_error is None

    def test_wrapper_keeps_name(self) -> None:
        assert catch(ValueError, divides_by_zero).__name__ == "divides_by_zero"


# ---------------------------------------------------------------------------
# Outcome and step data
# ---------------------------------------------------------------------------


class TestOutcome:
    def test_outcome_is_frozen(self) -> None:
        outcome = StepOutcome(step=only_step(records_a_call), status=Status.PASSED)
        with pytest.raises(AttributeError):
            outcome.status = Status.FAILED  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("status", "causes_skip"),
        [
            (Status.NOT_RUN, False),
            (Status.PASSED, False),
            (Status.FAILED, True),
            (Status.PENDING, True),
            (Status.SKIPPED, False),
        ],
    )
    def test_causes_skip(self, status: Status, causes_skip: bool) -> None:
        outcome = StepOutcome(step=only_step(records_a_call), status=status)
        assert outcome.causes_skip is causes_skip

    def test_reraise_keeps_identity(self) -> None:
        error = RuntimeError("same object")
        captured = CapturedError.capture(error)
        with pytest.raises(RuntimeError) as exc_info:
            captured.reraise()
        assert exc_info.value is error

    @pytest.mark.parametrize(
        ("block", "label"),
        [
            (ScenarioBlock.GIVEN, "Given"),
            (ScenarioBlock.WHEN, " When"),
            (ScenarioBlock.THEN, " Then"),
            (ScenarioBlock.AND, "  And"),
        ],
    )
    def test_formatted_type_aligned(self, block: ScenarioBlock, label: str) -> None:
        spec = Spec("labels").add_step(block, records_a_call)
        assert spec.steps[0].formatted_type == label
