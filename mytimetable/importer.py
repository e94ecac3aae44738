"""
Import pipeline: feed text -> base events -> template -> slot assignments.

Everything is computed in memory first. Only when the parse and the build
succeeded is anything written, and the derived template is committed as one
generation. A failed import leaves the stored state untouched.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterable

from mytimetable.mapping import apply_mapping
from mytimetable.model import BaseEvent, TemplateMeta
from mytimetable.parse import hash_string, parse_feed
from mytimetable.slots import build_slot_assignments
from mytimetable.storage import Generation, Store
from mytimetable.template import build_template

logger = logging.getLogger(__name__)

# Called with the name of what changed ("template"), after the commit.
ChangeListener = Callable[[str], None]


@dataclass(frozen=True)
class ImportResult:
    batch_id: str
    count: int
    anchor_monday: str
    cycle_dates: list[str]
    template_count: int
    assignment_count: int


def merge_base_events(existing: Iterable[BaseEvent], parsed: Iterable[BaseEvent], batch_id: str) -> list[BaseEvent]:
    """
    Upsert parsed events into the stored ones.

    - new id: inserted
    - same id, same content hash: only marked as seen in this batch
    - same id, changed content: fields overwritten, id kept
    - stored but not in this batch: active=False (soft delete)
    """
    by_id: dict[str, BaseEvent] = {}
    for ev in existing:
        by_id[ev.id] = ev

    seen: set = set()
    for ev in parsed:
        seen.add(ev.id)
        old = by_id.get(ev.id)
        if old is not None and old.content_hash == ev.content_hash:
            by_id[ev.id] = replace(old, active=True, last_seen_batch_id=batch_id)
            continue
        by_id[ev.id] = replace(ev, active=True, last_seen_batch_id=batch_id)

    out: list[BaseEvent] = []
    for ev_id, ev in by_id.items():
        if ev_id not in seen and ev.active:
            ev = replace(ev, active=False)
        out.append(ev)
    return out


def _notify(on_change: ChangeListener | None, what: str) -> None:
    if on_change is not None:
        on_change(what)


def import_feed(
    feed_text: str,
    name: str,
    store: Store,
    tz: str | None = None,
    batch_id: str | None = None,
    on_change: ChangeListener | None = None,
) -> ImportResult:
    """
    Run a full import against a store.

    Raises FeedParseError / TemplateBuildError before anything is written.
    """
    batch_id = batch_id or str(int(time.time() * 1000))
    settings = store.load_settings()
    zone = tz or settings.timezone

    parsed = parse_feed(feed_text, batch_id, tz=zone)
    build = build_template(parsed, tz=zone)
    assignments = build_slot_assignments(build.template_events)

    merged = merge_base_events(store.load_base_events(), parsed, batch_id)

    store.save_base_events(merged)
    store.save_generation(Generation(build.template_events, build.meta, tuple(assignments)))
    store.append_import(
        {
            "batch_id": batch_id,
            "imported_at": datetime.now(timezone.utc).isoformat(),
            "name": name,
            "feed_hash": hash_string(feed_text),
            "count": len(parsed),
        }
    )
    logger.info("Imported %r as batch %s: %d events, %d inactive", name, batch_id, len(parsed), sum(1 for e in merged if not e.active))
    _notify(on_change, "template")

    return ImportResult(
        batch_id=batch_id,
        count=len(parsed),
        anchor_monday=build.meta.anchor_monday.isoformat(),
        cycle_dates=[d.isoformat() for d in build.meta.cycle_dates],
        template_count=len(build.template_events),
        assignment_count=len(assignments),
    )


def apply_template_mapping(
    store: Store,
    shift: int,
    flipped: bool,
    on_change: ChangeListener | None = None,
) -> TemplateMeta:
    """
    Apply a mapping correction to the stored template and rebuild slot assignments.

    Raises MappingError if no template was built yet.
    """
    current = store.load_generation()
    if current is None:
        meta, events = apply_mapping(None, (), shift, flipped)
    else:
        meta, events = apply_mapping(current.meta, current.template_events, shift, flipped)
    assignments = build_slot_assignments(events)

    store.save_generation(Generation(events, meta, tuple(assignments)))
    _notify(on_change, "template")
    return meta
