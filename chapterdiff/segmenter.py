"""
Segmentation: aligner operations -> position-aware change segments.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .models import OpKind, Operation, Segment, SegmentOp


def segment(operations: Iterable[Operation]) -> List[Segment]:
    """
    Walk operations keeping offsets in both buffers.

    A DELETE immediately followed by an INSERT becomes one REPLACE; a DELETE is
    only emitted on its own once the next operation is known not to be an INSERT.
    """
    segments: List[Segment] = []
    original_pos = 0
    enhanced_pos = 0
    pending_delete: Optional[Segment] = None

    for op in operations:
        text = op.text
        if not text:
            continue

        if op.kind is OpKind.EQUAL:
            if pending_delete is not None:
                segments.append(pending_delete)
                pending_delete = None
            original_pos += len(text)
            enhanced_pos += len(text)

        elif op.kind is OpKind.DELETE:
            if pending_delete is not None:
                # two deletes in a row: extend
                pending_delete = Segment(
                    op=SegmentOp.DELETE,
                    original_text=pending_delete.original_text + text,
                    enhanced_text="",
                    original_start=pending_delete.original_start,
                    original_end=original_pos + len(text),
                    enhanced_start=enhanced_pos,
                    enhanced_end=enhanced_pos,
                )
            else:
                pending_delete = Segment(
                    op=SegmentOp.DELETE,
                    original_text=text,
                    enhanced_text="",
                    original_start=original_pos,
                    original_end=original_pos + len(text),
                    enhanced_start=enhanced_pos,
                    enhanced_end=enhanced_pos,
                )
            original_pos += len(text)

        elif op.kind is OpKind.INSERT:
            if pending_delete is not None:
                segments.append(
                    Segment(
                        op=SegmentOp.REPLACE,
                        original_text=pending_delete.original_text,
                        enhanced_text=text,
                        original_start=pending_delete.original_start,
                        original_end=pending_delete.original_end,
                        enhanced_start=pending_delete.enhanced_start,
                        enhanced_end=enhanced_pos + len(text),
                    )
                )
                pending_delete = None
            else:
                segments.append(
                    Segment(
                        op=SegmentOp.INSERT,
                        original_text="",
                        enhanced_text=text,
                        original_start=original_pos,
                        original_end=original_pos,
                        enhanced_start=enhanced_pos,
                        enhanced_end=enhanced_pos + len(text),
                    )
                )
            enhanced_pos += len(text)

    if pending_delete is not None:
        segments.append(pending_delete)

    return segments
