"""End-to-end scenarios: specs built and executed the way a test suite uses them.

Each scenario runs a full spec through the process collector with
reports enabled into a temporary directory, then checks outcomes,
the exception that escaped, and the written report.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from speclight import ResultCollector, SettingsRegistry, Spec, SpecLightSettings, Status, catch

# ---------------------------------------------------------------------------
# Steps for an imaginary shopping basket
# ---------------------------------------------------------------------------


class Basket:
    def __init__(self) -> None:
        self.items: list[str] = []

    def add(self, item: str) -> None:
        if not item:
            raise ValueError("item must not be empty")
        self.items.append(item)


basket = Basket()


def an_empty_basket() -> None:
    basket.items.clear()


def i_add(item: str) -> None:
    basket.add(item)


def the_basket_holds(count: int) -> None:
    assert len(basket.items) == count, f"basket holds {len(basket.items)}"


def the_checkout_explodes() -> None:
    raise RuntimeError("boom")


def the_receipt_is_printed() -> None:
    pass


@pytest.fixture()
def report_dir(tmp_path: Path) -> Path:
    SettingsRegistry.override(
        SpecLightSettings(print_outcomes=True, write_reports=True, report_dir=tmp_path)
    )
    return tmp_path


def written_report(report_dir: Path) -> str:
    results = ResultCollector.teardown()
    assert [r.ok for r in results] == [True]
    return (report_dir / f"{__name__}.speclight.md").read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_all_steps_pass(self, report_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        spec = Spec(
            """
            In order to buy things
            As a shopper
            I want to fill my basket
            """
        )
        spec.given(an_empty_basket).when(i_add, "book").then(the_basket_holds, 1)
        spec.execute()

        assert [o.status for o in spec.outcomes] == [Status.PASSED] * 3
        assert "Then the basket holds 1:" in capsys.readouterr().out
        report = written_report(report_dir)
        assert "## test_all_steps_pass (Passed)" in report
        assert "1 specs, 1 passed, 0 failed, 0 pending" in report

    def test_failure_skips_and_reraises(self, report_dir: Path) -> None:
        spec = Spec("Checkout failure").given(an_empty_basket).when(the_checkout_explodes)
        spec.then(the_receipt_is_printed)

        with pytest.raises(RuntimeError, match="boom") as exc_info:
            spec.execute()

        assert [o.status for o in spec.outcomes] == [Status.PASSED, Status.FAILED, Status.SKIPPED]
        assert exc_info.value is spec.outcomes[1].error
        assert exc_info.traceback[-1].name == "the_checkout_explodes"
        report = written_report(report_dir)
        assert "## test_failure_skips_and_reraises (Failed)" in report
        assert "**Step 2 error:** `RuntimeError: boom`" in report

    def test_empty_step_is_flagged(self, report_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        spec = Spec("Receipts").given(an_empty_basket).then(the_receipt_is_printed)
        spec.execute()

        outcome = spec.outcomes[1]
        assert outcome.status == Status.PASSED
        assert outcome.empty
        assert "Passed (Empty)" in capsys.readouterr().out
        assert "| Passed (Empty) |" in written_report(report_dir)

    def test_expected_exception_is_caught(self, report_dir: Path) -> None:
        adding_nothing = catch(ValueError, i_add)
        spec = Spec("Validation").given(an_empty_basket).when(adding_nothing, "")
        spec.then(the_basket_holds, 0)
        spec.execute()

        assert [o.status for o in spec.outcomes] == [Status.PASSED] * 3
        assert spec.outcomes[1].exception_caught
        assert not spec.steps[2].will_be_skipped
        assert str(adding_nothing.caught) == "item must not be empty"
        assert "| Passed (Exception Caught) |" in written_report(report_dir)

    def test_tags_and_data_reach_output(self, report_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        spec = Spec("Tagged").tag("basket", "smoke")
        spec.data_bag.shopper = "alice"
        spec.given(an_empty_basket).tag("setup")
        spec.steps[0].data["store"] = "north"
        spec.execute("filling the basket")

        out = capsys.readouterr().out
        assert "@basket, @smoke" in out
        assert "shopper: alice" in out
        assert "@setup\tstore: north" in out
        report = written_report(report_dir)
        assert "## filling the basket (Passed)" in report
        assert "- **shopper:** alice" in report
