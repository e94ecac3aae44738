"""
Slot resolution: exactly one assignment per (day label, slot).

Template events are mapped to one of 13 fixed slots by period code (or by
title keywords). When several events land in the same slot, the winner is:

    class  beats  duty  beats  break
    then earlier start time, then title (alphabetical)

The assignment list is always rebuilt from scratch.
"""

from __future__ import annotations

import logging
from typing import Iterable

from mytimetable.model import (
    AssignmentKind,
    Category,
    CycleTemplateEvent,
    DayLabel,
    SlotAssignment,
    SlotId,
)

logger = logging.getLogger(__name__)


SLOT_DEFS: list[tuple[SlotId, str]] = [
    (SlotId.BEFORE, "Before school"),
    (SlotId.RC, "Roll call"),
    (SlotId.P1, "Period 1"),
    (SlotId.P2, "Period 2"),
    (SlotId.R1, "Recess 1"),
    (SlotId.R2, "Recess 2"),
    (SlotId.P3, "Period 3"),
    (SlotId.P4, "Period 4"),
    (SlotId.L1, "Lunch 1"),
    (SlotId.L2, "Lunch 2"),
    (SlotId.P5, "Period 5"),
    (SlotId.P6, "Period 6"),
    (SlotId.AFTER, "After school"),
]

SLOT_LABELS: dict[SlotId, str] = dict(SLOT_DEFS)

_PERIOD_TO_SLOT: dict[str, SlotId] = {
    "BEFORE SCHOOL": SlotId.BEFORE,
    "BEFORE": SlotId.BEFORE,
    "AFTER SCHOOL": SlotId.AFTER,
    "AFTER": SlotId.AFTER,
    "RC": SlotId.RC,
    "ROLL CALL": SlotId.RC,
    "ROLLCALL": SlotId.RC,
    "1": SlotId.P1,
    "2": SlotId.P2,
    "3": SlotId.P3,
    "4": SlotId.P4,
    "5": SlotId.P5,
    "6": SlotId.P6,
    "R1": SlotId.R1,
    "RECESS 1": SlotId.R1,
    "RECESS": SlotId.R1,
    "R2": SlotId.R2,
    "RECESS 2": SlotId.R2,
    "L1": SlotId.L1,
    "LUNCH 1": SlotId.L1,
    "LUNCH": SlotId.L1,
    "L2": SlotId.L2,
    "LUNCH 2": SlotId.L2,
}

_KIND_RANK: dict[AssignmentKind, int] = {
    AssignmentKind.CLASS: 0,
    AssignmentKind.DUTY: 1,
    AssignmentKind.BREAK: 2,
    AssignmentKind.FREE: 3,
}


def slot_for_event(period_code: str | None, title: str) -> SlotId | None:
    """
    Map a period code (or, failing that, the title) to a slot id.
    Returns None if nothing matches.
    """
    p = (period_code or "").strip().upper()
    if p in _PERIOD_TO_SLOT:
        return _PERIOD_TO_SLOT[p]

    t = (title or "").upper()
    if "BEFORE SCHOOL" in t:
        return SlotId.BEFORE
    if "AFTER SCHOOL" in t:
        return SlotId.AFTER

    return None


def kind_for_category(category: Category) -> AssignmentKind:
    if category is Category.CLASS:
        return AssignmentKind.CLASS
    if category is Category.DUTY:
        return AssignmentKind.DUTY
    return AssignmentKind.BREAK


def _rank(ev: CycleTemplateEvent) -> tuple[int, int, str]:
    return (_KIND_RANK[kind_for_category(ev.category)], ev.start_minutes, ev.title)


def build_slot_assignments(template_events: Iterable[CycleTemplateEvent]) -> list[SlotAssignment]:
    """
    Rebuild all slot assignments from the template, one per (day label, slot).

    Events that fit no slot are left out. Output is ordered by canonical day
    label, then slot order.
    """
    best: dict[tuple[DayLabel, SlotId], CycleTemplateEvent] = {}
    unslotted = 0

    for ev in template_events:
        slot_id = slot_for_event(ev.period_code, ev.title)
        if slot_id is None:
            unslotted += 1
            continue

        key = (ev.day_label, slot_id)
        current = best.get(key)
        if current is None or _rank(ev) < _rank(current):
            best[key] = ev

    if unslotted:
        logger.debug("%d template events match no slot", unslotted)

    slot_order = {slot_id: i for i, (slot_id, _) in enumerate(SLOT_DEFS)}
    label_order = {label: i for i, label in enumerate(DayLabel)}

    out: list[SlotAssignment] = []
    for (label, slot_id), ev in sorted(best.items(), key=lambda kv: (label_order[kv[0][0]], slot_order[kv[0][1]])):
        out.append(
            SlotAssignment(
                day_label=label,
                slot_id=slot_id,
                kind=kind_for_category(ev.category),
                source_template_event_id=ev.id,
            )
        )
    return out
