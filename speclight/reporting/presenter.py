"""Console rendering of a completed spec's outcomes.

``format_outcomes`` is a pure function from a spec to display lines;
``print_outcomes`` writes them.  Output layout::

    > SpecLight results:

    @smoke, @login
    In order to use the site
    As a user
    I want to log in

    Given i have an account:	Passed              (0.001) sec.	@fast
     When i log in "bob":   	Failed              (0.012) sec.
     Then i see my name:    	Skipped             (0.000) sec.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from speclight.engine.step import Status

if TYPE_CHECKING:
    from speclight.engine.spec import Spec
    from speclight.engine.step import StepOutcome

__all__ = [
    "EMPTY_SUFFIX",
    "EXCEPTION_CAUGHT_SUFFIX",
    "MAX_STATUS_LABEL_LENGTH",
    "format_extra_data",
    "format_outcomes",
    "print_outcomes",
    "status_label",
]

EMPTY_SUFFIX = " (Empty)"
EXCEPTION_CAUGHT_SUFFIX = " (Exception Caught)"

#: Width of the longest label ``status_label`` can produce.
MAX_STATUS_LABEL_LENGTH = max(len(s.value) for s in Status) + max(
    len(EMPTY_SUFFIX), len(EXCEPTION_CAUGHT_SUFFIX)
)


def format_extra_data(data: Mapping[str, Any]) -> str | None:
    """Render the string-valued entries of *data*; other values are not printed."""
    items = [f"{key}: {value}" for key, value in data.items() if isinstance(value, str)]
    return ", ".join(items) if items else None


def _format_tags(tags: list[str]) -> str:
    return ", ".join(f"@{t}" for t in tags)


def status_label(outcome: StepOutcome) -> str:
    label = outcome.status.value
    if outcome.empty:
        label += EMPTY_SUFFIX
    if outcome.exception_caught:
        label += EXCEPTION_CAUGHT_SUFFIX
    return label


def format_outcomes(spec: Spec) -> list[str]:
    """Return the display lines for *spec*.

    A spec without outcomes renders the header, tags, description and
    spec data only.
    """
    lines = ["> SpecLight results:", ""]
    if spec.tags:
        lines.append(_format_tags(spec.tags))
    lines.append(spec.description)
    lines.append("")

    spec_data = format_extra_data(spec.data_dictionary)
    if spec_data:
        lines.append(spec_data)
        lines.append("")

    outcomes = spec.outcomes or []
    if not outcomes:
        return lines

    message_width = max(len(o.step.description) + len(o.step.formatted_type) for o in outcomes) + 3
    for o in outcomes:
        step = o.step
        message = f"{step.formatted_type} {step.description}:"
        status = status_label(o).ljust(MAX_STATUS_LABEL_LENGTH + 1)
        cells = [
            message.ljust(message_width),
            f"{status}({o.execution_time:.3f}) sec.",
            _format_tags(step.tags),
            format_extra_data(step.data),
        ]
        lines.append("\t".join(c for c in cells if c is not None).rstrip())
    return lines


def print_outcomes(spec: Spec, write_line: Callable[[str], Any] = print) -> None:
    for line in format_outcomes(spec):
        write_line(line)
