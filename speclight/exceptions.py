"""Exception hierarchy for SpecLight.

Only misuse of the engine raises immediately.  Failures inside step
actions are captured on their ``StepOutcome`` and re-raised unchanged
after the run, so they never appear here.
"""

from __future__ import annotations

__all__ = [
    "ExpectedExceptionNotRaised",
    "InvalidUsageError",
    "SpecLightError",
]


class SpecLightError(Exception):
    """Base exception for errors raised by SpecLight itself."""

    pass


class InvalidUsageError(SpecLightError, ValueError):
    """Raised when the engine is driven in a way it does not support.

    Examples: an anonymous step callable, executing a spec twice, or a
    blocking ``execute()`` from inside a running event loop.
    """

    pass


class ExpectedExceptionNotRaised(SpecLightError, AssertionError):
    """A step wrapped with ``catch`` completed without raising."""

    def __init__(self, expected: type[BaseException], description: str) -> None:
        self.expected = expected
        self.description = description
        super().__init__(
            f"Expected {expected.__name__} to be raised by step '{description}'"
        )
