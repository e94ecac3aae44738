"""
Persistent storage for settings, imported events and the derived template.

Files (inside the data directory):

    settings.json      per-user rolling/term settings
    base_events.json   events of all imports, with active/tombstone flags
    imports.json       log of imports
    generation.json    template events + template meta + slot assignments

Design rationale:
- the template, its meta and the slot assignments are ONE derived snapshot
  (a "generation"); it is written to a temporary file and swapped in with
  os.replace, so readers see either the old or the new generation, never a mix
- settings are user state and are never touched by an import
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from mytimetable.model import (
    BaseEvent,
    CycleTemplateEvent,
    RollingSettings,
    SlotAssignment,
    TemplateMeta,
)

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "MYTIMETABLE_DATA_DIR"


@dataclass(frozen=True)
class Generation:
    template_events: tuple[CycleTemplateEvent, ...]
    meta: TemplateMeta
    assignments: tuple[SlotAssignment, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "template_events": [e.to_dict() for e in self.template_events],
            "assignments": [a.to_dict() for a in self.assignments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Generation":
        return cls(
            template_events=tuple(CycleTemplateEvent.from_dict(e) for e in data.get("template_events", [])),
            meta=TemplateMeta.from_dict(data["meta"]),
            assignments=tuple(SlotAssignment.from_dict(a) for a in data.get("assignments", [])),
        )


def default_data_dir() -> Path:
    """
    Return the data directory: $MYTIMETABLE_DATA_DIR if set, else data/ inside the package.

    Using a function instead of a constant makes testing easier,
    because tests can override the location.
    """
    env = os.environ.get(DATA_DIR_ENV, "").strip()
    if env:
        return Path(env)
    return Path(__file__).resolve().parent / "data"


def _resolve(path: str | Path | None, filename: str) -> Path:
    return Path(path) if path is not None else default_data_dir() / filename


def _read_json(path: Path) -> Any:
    """
    Read JSON, returning None if the file is missing or unreadable.
    """
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return None


def _write_json_atomic(path: Path, payload: Any) -> None:
    """
    Write JSON to a temp file next to the target and swap it in.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def load_settings(path: str | Path | None = None) -> RollingSettings:
    """
    Load settings. Missing or invalid files give the defaults.
    """
    data = _read_json(_resolve(path, "settings.json"))
    if not isinstance(data, dict):
        return RollingSettings()
    try:
        return RollingSettings.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Invalid settings file, using defaults: %s", exc)
        return RollingSettings()


def save_settings(settings: RollingSettings, path: str | Path | None = None) -> None:
    _write_json_atomic(_resolve(path, "settings.json"), settings.to_dict())


# ---------------------------------------------------------------------------
# Base events and import log
# ---------------------------------------------------------------------------


def load_base_events(path: str | Path | None = None) -> list[BaseEvent]:
    data = _read_json(_resolve(path, "base_events.json"))
    if not isinstance(data, list):
        return []
    out: list[BaseEvent] = []
    for raw in data:
        try:
            out.append(BaseEvent.from_dict(raw))
        except (KeyError, TypeError, ValueError):
            continue
    return out


def save_base_events(events: Iterable[BaseEvent], path: str | Path | None = None) -> None:
    _write_json_atomic(_resolve(path, "base_events.json"), [e.to_dict() for e in events])


def load_imports(path: str | Path | None = None) -> list[dict[str, Any]]:
    data = _read_json(_resolve(path, "imports.json"))
    return [x for x in data if isinstance(x, dict)] if isinstance(data, list) else []


def append_import(record: dict[str, Any], path: str | Path | None = None) -> None:
    target = _resolve(path, "imports.json")
    records = load_imports(target)
    records.append(record)
    _write_json_atomic(target, records)


# ---------------------------------------------------------------------------
# Template generation
# ---------------------------------------------------------------------------


def load_generation(path: str | Path | None = None) -> Generation | None:
    """
    Load the current generation, or None if no template was built yet.
    """
    data = _read_json(_resolve(path, "generation.json"))
    if not isinstance(data, dict):
        return None
    try:
        return Generation.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Invalid generation file ignored: %s", exc)
        return None


def save_generation(generation: Generation, path: str | Path | None = None) -> None:
    """
    Replace the stored generation as a whole.
    """
    _write_json_atomic(_resolve(path, "generation.json"), generation.to_dict())
    logger.info(
        "Committed generation: %d template events, %d assignments",
        len(generation.template_events),
        len(generation.assignments),
    )


@dataclass(frozen=True)
class Store:
    """
    The set of files of one user, all inside one directory.
    """

    root: Path

    @classmethod
    def default(cls) -> "Store":
        return cls(default_data_dir())

    @property
    def settings_path(self) -> Path:
        return self.root / "settings.json"

    @property
    def base_events_path(self) -> Path:
        return self.root / "base_events.json"

    @property
    def imports_path(self) -> Path:
        return self.root / "imports.json"

    @property
    def generation_path(self) -> Path:
        return self.root / "generation.json"

    def load_settings(self) -> RollingSettings:
        return load_settings(self.settings_path)

    def save_settings(self, settings: RollingSettings) -> None:
        save_settings(settings, self.settings_path)

    def load_base_events(self) -> list[BaseEvent]:
        return load_base_events(self.base_events_path)

    def save_base_events(self, events: Iterable[BaseEvent]) -> None:
        save_base_events(events, self.base_events_path)

    def load_imports(self) -> list[dict[str, Any]]:
        return load_imports(self.imports_path)

    def append_import(self, record: dict[str, Any]) -> None:
        append_import(record, self.imports_path)

    def load_generation(self) -> Generation | None:
        return load_generation(self.generation_path)

    def save_generation(self, generation: Generation) -> None:
        save_generation(generation, self.generation_path)
