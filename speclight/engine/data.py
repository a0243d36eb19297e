"""Extra-data store shared by specs and steps.

A single insertion-ordered ``dict`` is exposed two ways: as a mapping
(``data["user"]``) and as attributes (``data.user``).  Both views read
and write the same backing store, so a fixture can set ``spec.data_bag.x``
and the presenter will see ``spec.data_dictionary["x"]``.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any

from speclight.exceptions import InvalidUsageError

__all__ = ["ExtraData"]


class ExtraData(MutableMapping[str, Any]):
    """Ordered ``str`` → value mapping with attribute-style access."""

    __slots__ = ("_store",)

    def __init__(self) -> None:
        object.__setattr__(self, "_store", {})

    # -- mapping view ------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._store[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            msg = f"Extra data keys must be str, got {type(key).__name__}"
            raise InvalidUsageError(msg)
        self._store[key] = value

    def __delitem__(self, key: str) -> None:
        del self._store[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    # -- attribute view ----------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name == "_store":
            raise AttributeError(name)
        try:
            return self._store[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._store[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        return f"ExtraData({self._store!r})"
