"""
Position remapping after accept/reject decisions.

The working document is the enhanced buffer. Rejecting a change restores the
original text at the change's enhanced range, which shifts every later change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from .models import Buffer, ChangeRecord, UserDecision

logger = structlog.get_logger(__name__)


class DecisionConflictError(ValueError):
    """A settled decision cannot be changed to a different one."""


@dataclass(frozen=True)
class DecisionResult:
    text: str
    records: List[ChangeRecord]
    applied: bool


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def remap_after_decision(
    records: Sequence[ChangeRecord],
    modified_id: str,
    replacement_length: int,
    *,
    buffer_length: int,
    buffer: Buffer = Buffer.ORIGINAL,
) -> List[ChangeRecord]:
    """
    Shift the ranges of `buffer` after the span of `modified_id` was replaced
    by `replacement_length` characters. `buffer_length` is the length after the edit.

    Records starting at or before the edit are untouched, records starting at or
    after its end move by the length delta, and records starting strictly inside
    it collapse to the edit start.
    """
    target = next((r for r in records if r.id == modified_id), None)
    if target is None:
        logger.warning("remap target not found", change_id=modified_id)
        return list(records)

    s, e = target.span(buffer)
    delta = replacement_length - (e - s)
    if delta == 0:
        return list(records)

    out: List[ChangeRecord] = []
    for rec in records:
        start, end = rec.span(buffer)
        if rec.id == modified_id:
            new_start, new_end = s, s + replacement_length
        elif start <= s:
            out.append(rec)
            continue
        elif start >= e:
            new_start, new_end = start + delta, end + delta
        else:
            new_start = s
            new_end = end + delta if end >= e else s

        new_start = _clamp(new_start, buffer_length)
        new_end = max(new_start, _clamp(new_end, buffer_length))
        out.append(rec.with_span(buffer, new_start, new_end))
    return out


def apply_decision(
    text: str,
    records: Sequence[ChangeRecord],
    record_id: str,
    decision: UserDecision,
) -> DecisionResult:
    """
    Apply a user decision to the enhanced working text.

    Accepting keeps the text. Rejecting puts the original text back and remaps the
    enhanced ranges of the other records. If the live text no longer holds the
    change, nothing is modified and `applied` is False.
    """
    records = list(records)
    target: Optional[ChangeRecord] = next((r for r in records if r.id == record_id), None)
    if target is None:
        raise KeyError(record_id)

    if decision is UserDecision.PENDING:
        raise ValueError("Decision must be accepted or rejected.")

    if target.user_decision is decision:
        return DecisionResult(text=text, records=records, applied=False)
    if target.user_decision is not UserDecision.PENDING:
        raise DecisionConflictError(
            f"Change {record_id} is already {target.user_decision.value}, cannot mark {decision.value}."
        )

    if decision is UserDecision.ACCEPTED:
        updated = [
            r.model_copy(update={"user_decision": UserDecision.ACCEPTED}) if r.id == record_id else r
            for r in records
        ]
        return DecisionResult(text=text, records=updated, applied=True)

    start, end = target.enhanced_start, target.enhanced_end
    if end > len(text) or text[start:end] != target.enhanced_text:
        logger.warning(
            "change no longer matches working text, leaving positions unchanged",
            change_id=record_id,
            enhanced_range=(start, end),
        )
        return DecisionResult(text=text, records=records, applied=False)

    new_text = text[:start] + target.original_text + text[end:]
    remapped = remap_after_decision(
        records,
        record_id,
        len(target.original_text),
        buffer_length=len(new_text),
        buffer=Buffer.ENHANCED,
    )
    updated = [
        r.model_copy(update={"user_decision": UserDecision.REJECTED}) if r.id == record_id else r
        for r in remapped
    ]
    return DecisionResult(text=new_text, records=updated, applied=True)
