"""Reflection helpers: caller discovery, step naming and empty-body detection.

Steps are described from the name of the callable they run, so a step
must be a named function or method.  Lambdas carry a synthetic
``<lambda>`` name that cannot be turned into readable text and are
rejected by ``Spec`` using ``is_synthetic_name``.
"""

from __future__ import annotations

import dis
import functools
import inspect
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

__all__ = [
    "CallerIdentity",
    "describe_step",
    "find_calling_method",
    "humanize",
    "is_empty_body",
    "is_synthetic_name",
    "unwrap_callable",
]

_PACKAGE = __name__.partition(".")[0]

# Split CamelCase names: "IEnterTheUsername" -> "I Enter The Username".
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """The test function that called ``Spec.execute``.

    Attributes
    ----------
    module : str
        ``__name__`` of the calling module; used as the report group key.
    qualname : str
        Qualified name of the calling function (``TestLogin.test_ok``).
    filename : str
        Source file of the calling frame.
    lineno : int
        Line of the ``execute`` call.
    """

    module: str
    qualname: str
    filename: str = ""
    lineno: int = 0

    @property
    def function(self) -> str:
        """Bare function name, without enclosing class or ``<locals>``."""
        return self.qualname.rpartition(".")[2]

    def __str__(self) -> str:
        return f"{self.module}.{self.qualname}"


def _is_internal(frame: Any) -> bool:
    module = frame.f_globals.get("__name__", "")
    return module == _PACKAGE or module.startswith(_PACKAGE + ".")


def find_calling_method() -> CallerIdentity:
    """Return the identity of the first stack frame outside this package."""
    frame = inspect.currentframe()
    try:
        while frame is not None and _is_internal(frame):
            frame = frame.f_back
        if frame is None:
            return CallerIdentity(module="__main__", qualname="<unknown>")
        code = frame.f_code
        return CallerIdentity(
            module=frame.f_globals.get("__name__", "__main__"),
            qualname=code.co_qualname,
            filename=code.co_filename,
            lineno=frame.f_lineno,
        )
    finally:
        del frame


# ---------------------------------------------------------------------------
# Step naming
# ---------------------------------------------------------------------------


def is_synthetic_name(name: str) -> bool:
    """True for interpreter-generated names such as ``<lambda>``."""
    return not name or name.startswith("<")


def unwrap_callable(func: Callable[..., Any]) -> Callable[..., Any]:
    """Strip ``functools.partial`` layers and bound-method wrappers."""
    while True:
        if isinstance(func, functools.partial):
            func = func.func
        elif inspect.ismethod(func):
            func = func.__func__
        else:
            return func


def humanize(name: str) -> str:
    """Turn ``i_enter_the_username`` or ``IEnterTheUsername`` into words."""
    words = _CAMEL_BOUNDARY.sub(" ", name).replace("_", " ").split()
    if not words:
        return name
    head, *rest = words
    return " ".join(
        [head]
        + [w.lower() if w[:1].isupper() and w[1:].islower() else w for w in rest]
    )


def _format_argument(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return repr(value)


def describe_step(
    func: Callable[..., Any],
    args: tuple[Any, ...] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> str:
    """Build a step description from the callable name and its arguments.

    ``partial`` arguments are included, so ``partial(i_login_as, "bob")``
    and ``(i_login_as, "bob")`` both read ``i login as "bob"``.
    """
    bound_args: list[Any] = []
    bound_kwargs: dict[str, Any] = {}
    while isinstance(func, functools.partial):
        bound_args[:0] = func.args
        bound_kwargs = {**func.keywords, **bound_kwargs}
        func = func.func
    bound_args.extend(args)
    bound_kwargs.update(kwargs or {})

    text = humanize(getattr(func, "__name__", type(func).__name__))
    parts = [_format_argument(a) for a in bound_args]
    parts.extend(f"{k}={_format_argument(v)}" for k, v in bound_kwargs.items())
    if parts:
        text = f"{text} {', '.join(parts)}"
    return text


# ---------------------------------------------------------------------------
# Empty-body detection
# ---------------------------------------------------------------------------


def _noop() -> None:
    pass


def _documented_noop() -> None:
    """Reference body: docstring only."""


async def _async_noop() -> None:
    pass


async def _documented_async_noop() -> None:
    """Reference body: docstring only."""


_EMPTY_BODIES = frozenset(
    f.__code__.co_code
    for f in (_noop, _documented_noop, _async_noop, _documented_async_noop)
)

_CONST_OPS = frozenset({"LOAD_CONST", "RETURN_CONST"})


def is_empty_body(func: Callable[..., Any]) -> bool:
    """True when the callable's body does nothing (``pass``, ``...``, docstring).

    Used to flag steps that were stubbed out and forgotten.  Callables
    without Python bytecode (builtins, callable objects) are never empty.
    """
    code = getattr(unwrap_callable(func), "__code__", None)
    if code is None or code.co_code not in _EMPTY_BODIES:
        return False
    # `return "bob"` compiles to the docstring-only bytecode; only the constant differs
    return all(
        ins.argval is None
        for ins in dis.get_instructions(code)
        if ins.opname in _CONST_OPS
    )
