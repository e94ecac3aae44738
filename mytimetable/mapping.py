"""
Mapping correction for a wrongly anchored template.

A correction is a pair (shift, flipped):
- shift rotates which canonical label sits at cycle position 0
- flipped swaps A and B on every label

TemplateMeta stores the correction currently baked into the template's labels.
Applying a new pair relabels from the stored pair to the new one, so applying
(0, False) always returns to the labels the builder produced.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable

from mytimetable.errors import MappingError
from mytimetable.model import CANONICAL_LABELS, CycleTemplateEvent, DayLabel, TemplateMeta

logger = logging.getLogger(__name__)


def label_for_position(position: int, shift: int, flipped: bool) -> DayLabel:
    """
    Label of cycle position 0..9 under a correction: rotate, then optionally flip.
    """
    n = len(CANONICAL_LABELS)
    label = CANONICAL_LABELS[(position + shift) % n]
    return label.flipped() if flipped else label


def labelling(shift: int, flipped: bool) -> list[DayLabel]:
    return [label_for_position(i, shift, flipped) for i in range(len(CANONICAL_LABELS))]


def _check_shift(shift: int) -> None:
    if not 0 <= shift < len(CANONICAL_LABELS):
        raise MappingError(f"Shift must be between 0 and {len(CANONICAL_LABELS) - 1}, got {shift}")


def mapping_preview(meta: TemplateMeta, shift: int, flipped: bool) -> list[tuple[date, DayLabel]]:
    """
    Show which label every cycle date would get. Does not modify anything.
    """
    _check_shift(shift)
    return [(d, label_for_position(i, shift, flipped)) for i, d in enumerate(meta.cycle_dates)]


def relabel_map(old_shift: int, old_flipped: bool, new_shift: int, new_flipped: bool) -> dict[DayLabel, DayLabel]:
    old = labelling(old_shift, old_flipped)
    new = labelling(new_shift, new_flipped)
    return {o: n for o, n in zip(old, new)}


def relabel_id(event_id: str, old_label: DayLabel, new_label: DayLabel) -> str:
    """
    Replace only the label prefix of a template event id ('MonA-1a2b3c').
    """
    prefix = f"{old_label.value}-"
    if event_id.startswith(prefix):
        return f"{new_label.value}-{event_id[len(prefix):]}"
    return event_id


def apply_mapping(
    meta: TemplateMeta | None,
    template_events: Iterable[CycleTemplateEvent],
    shift: int,
    flipped: bool,
) -> tuple[TemplateMeta, tuple[CycleTemplateEvent, ...]]:
    """
    Relabel the template from the stored correction to (shift, flipped).

    Returns the new meta and the new event collection; the inputs are not
    touched. Raises MappingError if no template was ever built.
    """
    if meta is None:
        raise MappingError("No template metadata found. Import a feed and build the template first.")
    _check_shift(shift)

    mapping = relabel_map(meta.shift, meta.flipped, shift, flipped)

    out: list[CycleTemplateEvent] = []
    changed = 0
    for ev in template_events:
        new_label = mapping[ev.day_label]
        if new_label is ev.day_label:
            out.append(ev)
            continue
        out.append(replace(ev, day_label=new_label, id=relabel_id(ev.id, ev.day_label, new_label)))
        changed += 1

    new_meta = replace(meta, shift=shift, flipped=flipped)
    logger.info(
        "Applied mapping shift=%d flipped=%s (was shift=%d flipped=%s): %d events relabelled",
        shift,
        flipped,
        meta.shift,
        meta.flipped,
        changed,
    )
    return new_meta, tuple(out)
