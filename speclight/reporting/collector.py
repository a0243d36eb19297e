"""Process-wide collector of completed specs, grouped for reporting.

Every executed ``Spec`` is added under its group key (the module of the
test that ran it).  Specs finish on many threads at once, so the
collector is the one shared mutable structure in the engine; it guards
its groups with a single lock and callers never lock.

Lifecycle
---------
- ``ResultCollector.get()``  lazily creates the process instance and,
  when ``write_reports`` is enabled, registers an ``atexit`` flush.
- ``ResultCollector.teardown()``  drains, writes reports, drops the instance.
- ``ResultCollector.reset()``  drops the instance without writing
  (for testing only).
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import TYPE_CHECKING, ClassVar

from speclight.config import SettingsRegistry
from speclight.reporting.report import ReportWriteResult, write_reports

if TYPE_CHECKING:
    from pathlib import Path

    from speclight.engine.spec import Spec

__all__ = ["ResultCollector"]

log = logging.getLogger(__name__)


class ResultCollector:
    """Thread-safe multi-map: group key → specs in insertion order."""

    # ── class-level singleton state ──────────────────────
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()
    _instance: ClassVar[ResultCollector | None] = None
    _exit_hook_registered: ClassVar[bool] = False

    __slots__ = ("_groups", "_lock")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: dict[str, list[Spec]] = {}

    # ── instance API ─────────────────────────────────────

    def add(self, spec: Spec, group_key: str) -> None:
        """Append a completed *spec* under *group_key*."""
        with self._lock:
            self._groups.setdefault(group_key, []).append(spec)

    def drain_all(self) -> dict[str, list[Spec]]:
        """Return every group collected so far and empty the collector.

        Intended for a single call at shutdown; inserts racing with the
        drain land either in the returned batch or in the next one.
        """
        with self._lock:
            drained = self._groups
            self._groups = {}
        return drained

    def groups(self) -> dict[str, tuple[Spec, ...]]:
        """Snapshot of the current groups, without draining."""
        with self._lock:
            return {key: tuple(specs) for key, specs in self._groups.items()}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(specs) for specs in self._groups.values())

    def flush(self, directory: Path | None = None) -> list[ReportWriteResult]:
        """Drain and write one report per group."""
        settings = SettingsRegistry.get()
        target = directory if directory is not None else settings.resolved_report_dir()
        groups = self.drain_all()
        if not groups:
            return []
        return write_reports(groups, target, json_dump=settings.report_json)

    # ── class-level lifecycle ────────────────────────────

    @classmethod
    def get(cls) -> ResultCollector:
        """Return the process collector, creating it on first call."""
        inst = cls._instance
        if inst is not None:
            return inst

        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
                if SettingsRegistry.get().write_reports and not cls._exit_hook_registered:
                    atexit.register(cls._flush_at_exit)
                    cls._exit_hook_registered = True
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the process collector without writing.  Testing only."""
        with cls._instance_lock:
            cls._instance = None
            if cls._exit_hook_registered:
                atexit.unregister(cls._flush_at_exit)
                cls._exit_hook_registered = False

    @classmethod
    def teardown(cls) -> list[ReportWriteResult]:
        """Flush the process collector's reports and drop it."""
        with cls._instance_lock:
            inst = cls._instance
            cls._instance = None
            if cls._exit_hook_registered:
                atexit.unregister(cls._flush_at_exit)
                cls._exit_hook_registered = False
        if inst is None:
            return []
        return inst.flush()

    @classmethod
    def _flush_at_exit(cls) -> None:
        cls._exit_hook_registered = False
        inst = cls._instance
        if inst is not None:
            results = inst.flush()
            log.debug("Wrote %d SpecLight report group(s) at exit", len(results))
