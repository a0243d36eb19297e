"""SpecLight settings: defaults, ``speclight.yaml`` and environment overrides.

Resolution order (later wins):

1. Field defaults of ``SpecLightSettings``.
2. ``speclight.yaml``: the path given to ``SettingsRegistry.configure``,
   otherwise the first one found walking up from the working directory.
3. ``SPECLIGHT_*`` environment variables.

Example ``speclight.yaml``::

    print_outcomes: true
    write_reports: true
    report_dir: build/speclight
    report_json: false

``SettingsRegistry`` is a thread-safe lazy singleton, in the same shape
as the other process-wide registries: ``get()`` loads once, ``reset()``
forces a reload and ``override()`` pins explicit settings for tests.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, ClassVar

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

__all__ = [
    "SETTINGS_FILENAME",
    "SettingsRegistry",
    "SettingsValidationError",
    "SpecLightSettings",
]

SETTINGS_FILENAME = "speclight.yaml"

#: Environment variable -> settings field.
ENV_VARS: dict[str, str] = {
    "SPECLIGHT_PRINT_OUTCOMES": "print_outcomes",
    "SPECLIGHT_WRITE_REPORTS": "write_reports",
    "SPECLIGHT_REPORT_DIR": "report_dir",
    "SPECLIGHT_REPORT_JSON": "report_json",
}


class SettingsValidationError(ValueError):
    """Raised when ``speclight.yaml`` or a ``SPECLIGHT_*`` variable is invalid."""


class SpecLightSettings(BaseModel):
    """Validated SpecLight settings.

    Attributes
    ----------
    print_outcomes : bool
        Print each spec's outcome lines after it runs.
    write_reports : bool
        Write one report per group when the process exits.
    report_dir : Path | None
        Directory for report files; ``None`` means the working directory.
    report_json : bool
        Also write a JSON dump next to each markdown report.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    print_outcomes: bool = True
    write_reports: bool = True
    report_dir: Path | None = None
    report_json: bool = False

    def resolved_report_dir(self) -> Path:
        return self.report_dir if self.report_dir is not None else Path.cwd()


class SettingsRegistry:
    """Thread-safe singleton accessor for ``SpecLightSettings``."""

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _instance: ClassVar[SpecLightSettings | None] = None
    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def configure(cls, yaml_path: Path | str | None) -> None:
        """Point at an explicit settings file (``None`` restores discovery).

        Takes effect on the next load, so it also resets the cached settings.
        """
        with cls._lock:
            cls._yaml_path = Path(yaml_path) if yaml_path is not None else None
            cls._instance = None

    @classmethod
    def get(cls) -> SpecLightSettings:
        """Return the settings, loading them on first call."""
        inst = cls._instance
        if inst is not None:
            return inst

        with cls._lock:
            if cls._instance is None:
                cls._instance = cls._load()
            return cls._instance

    @classmethod
    def override(cls, settings: SpecLightSettings) -> None:
        """Install *settings* as-is, bypassing file and environment."""
        with cls._lock:
            cls._instance = settings

    @classmethod
    def reset(cls) -> None:
        """Forget the cached settings (for testing / reload)."""
        with cls._lock:
            cls._instance = None

    # -- internal helpers --------------------------------------------------

    @classmethod
    def _resolve_path(cls) -> Path | None:
        if cls._yaml_path is not None:
            return cls._yaml_path

        p = Path.cwd()
        for _ in range(10):
            candidate = p / SETTINGS_FILENAME
            if candidate.exists():
                return candidate
            if p.parent == p:
                break
            p = p.parent
        return None

    @classmethod
    def _load(cls) -> SpecLightSettings:
        data: dict[str, Any] = {}
        path = cls._resolve_path()
        if path is not None:
            data.update(_read_yaml(path))

        for var, field_name in ENV_VARS.items():
            value = os.environ.get(var)
            if value is not None and value != "":
                data[field_name] = value

        try:
            return SpecLightSettings.model_validate(data)
        except ValidationError as exc:
            msg = f"Invalid SpecLight settings: {exc}"
            raise SettingsValidationError(msg) from exc


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a settings file; a missing explicit path is an error."""
    if not path.exists():
        msg = f"{SETTINGS_FILENAME} not found: {path}"
        raise FileNotFoundError(msg)

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"Expected YAML mapping at top level, got {type(raw).__name__}"
        raise SettingsValidationError(msg)
    return raw
