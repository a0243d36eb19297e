"""Report files for collected specs: one markdown document per group.

Usage::

    from speclight.reporting.report import write_reports
    results = write_reports(collector.drain_all(), Path("build/speclight"))

A group that cannot be written is logged and returned as a failed
``ReportWriteResult``; it never stops the other groups.
"""

from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from speclight.engine.step import Status

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from speclight.engine.spec import Spec
    from speclight.engine.step import StepOutcome

__all__ = [
    "ReportDocument",
    "ReportWriteResult",
    "SpecReport",
    "StepReport",
    "render_report",
    "report_filename",
    "write_reports",
]

log = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9_.-]+")


# ---------------------------------------------------------------------------
# View models
# ---------------------------------------------------------------------------


class StepReport(BaseModel):
    """Read-only view of one step outcome."""

    model_config = ConfigDict(frozen=True)

    index: int
    block: str
    description: str
    status: Status
    execution_time: float
    empty: bool = False
    exception_caught: bool = False
    tags: list[str] = Field(default_factory=list)
    data: dict[str, str] = Field(default_factory=dict)
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: StepOutcome) -> StepReport:
        step = outcome.step
        error = outcome.error
        return cls(
            index=step.index,
            block=step.block.value,
            description=step.description,
            status=outcome.status,
            execution_time=outcome.execution_time,
            empty=outcome.empty,
            exception_caught=outcome.exception_caught,
            tags=list(step.tags),
            data={k: v for k, v in step.data.items() if isinstance(v, str)},
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )


class SpecReport(BaseModel):
    """Read-only view of one executed spec."""

    model_config = ConfigDict(frozen=True)

    name: str
    caller: str
    description: str
    tags: list[str] = Field(default_factory=list)
    data: dict[str, str] = Field(default_factory=dict)
    steps: list[StepReport] = Field(default_factory=list)

    @property
    def status(self) -> Status:
        """Worst step status: Failed > Pending > Passed (Skipped is not counted)."""
        statuses = {s.status for s in self.steps}
        if Status.FAILED in statuses:
            return Status.FAILED
        if Status.PENDING in statuses:
            return Status.PENDING
        return Status.PASSED

    @classmethod
    def from_spec(cls, spec: Spec) -> SpecReport:
        return cls(
            name=spec.name,
            caller=str(spec.calling_method) if spec.calling_method else "",
            description=spec.description,
            tags=list(spec.tags),
            data={k: v for k, v in spec.data_dictionary.items() if isinstance(v, str)},
            steps=[StepReport.from_outcome(o) for o in spec.outcomes or []],
        )


class ReportDocument(BaseModel):
    """All specs collected for one group."""

    group: str
    generated_at: str
    specs: list[SpecReport] = Field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for s in self.specs if s.status == Status.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for s in self.specs if s.status == Status.FAILED)

    @property
    def pending(self) -> int:
        return sum(1 for s in self.specs if s.status == Status.PENDING)

    @classmethod
    def from_specs(cls, group: str, specs: Iterable[Spec]) -> ReportDocument:
        return cls(
            group=group,
            generated_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            specs=[SpecReport.from_spec(s) for s in specs],
        )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_report(doc: ReportDocument) -> str:
    """Render a group report to markdown."""
    lines: list[str] = []

    lines.append(f"# SpecLight results: {doc.group}")
    lines.append("")
    lines.append(f"**Generated:** {doc.generated_at}")
    lines.append(
        f"**Summary:** {len(doc.specs)} specs, {doc.passed} passed, "
        f"{doc.failed} failed, {doc.pending} pending"
    )
    lines.append("")

    for spec in doc.specs:
        lines.append(f"## {spec.name} ({spec.status.value})")
        lines.append("")
        if spec.tags:
            lines.append(" ".join(f"`@{t}`" for t in spec.tags))
            lines.append("")
        lines.extend(f"> {line}" if line else ">" for line in spec.description.splitlines())
        lines.append("")
        for key, value in spec.data.items():
            lines.append(f"- **{key}:** {value}")
        if spec.data:
            lines.append("")

        if not spec.steps:
            continue

        lines.append("| # | Step | Status | Time (s) | Tags |")
        lines.append("|---|------|--------|----------|------|")
        for step in spec.steps:
            status = step.status.value
            if step.empty:
                status += " (Empty)"
            if step.exception_caught:
                status += " (Exception Caught)"
            tags = ", ".join(f"@{t}" for t in step.tags)
            lines.append(
                f"| {step.index + 1} | {step.block} {_cell(step.description)} | {status} "
                f"| {step.execution_time:.3f} | {tags} |"
            )
        lines.append("")

        errors = [s for s in spec.steps if s.error]
        for step in errors:
            lines.append(f"**Step {step.index + 1} error:** `{_cell(step.error or '')}`")
        if errors:
            lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReportWriteResult:
    """Outcome of writing one group's report."""

    group: str
    path: Path
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def report_filename(group: str) -> str:
    """File name for *group*, e.g. ``tests.test_login.speclight.md``."""
    return f"{_UNSAFE_FILENAME.sub('_', group) or 'specs'}.speclight.md"


def write_reports(
    groups: Mapping[str, Iterable[Spec]],
    directory: Path,
    *,
    json_dump: bool = False,
) -> list[ReportWriteResult]:
    """Write one report per group into *directory*.

    Failures are logged and recorded per group; nothing is raised.
    """
    results: list[ReportWriteResult] = []
    for group, specs in groups.items():
        path = directory / report_filename(group)
        try:
            doc = ReportDocument.from_specs(group, specs)
            log.info("Writing SpecLight report to '%s'", path)
            directory.mkdir(parents=True, exist_ok=True)
            path.write_text(render_report(doc), encoding="utf-8")
            if json_dump:
                path.with_suffix(".json").write_text(doc.model_dump_json(indent=2), encoding="utf-8")
            results.append(ReportWriteResult(group=group, path=path))
        except Exception as exc:
            log.exception("Failed to write SpecLight report to '%s'", path)
            results.append(ReportWriteResult(group=group, path=path, error=repr(exc)))
    return results
