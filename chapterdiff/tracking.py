"""
Change collection: align, segment, validate positions and classify.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional

import structlog

from .aligner import align
from .classifier import classify
from .config import AlignConfig, ClassifierConfig
from .models import ChangeRecord, Segment
from .segmenter import segment

logger = structlog.get_logger(__name__)


def _range_matches(buffer: str, start: int, end: int, expected: str) -> bool:
    if start < 0 or end < start or end > len(buffer):
        return False
    return buffer[start:end] == expected


def position_is_valid(item: ChangeRecord | Segment, original: str, enhanced: str) -> bool:
    """Both recorded ranges must still slice out exactly the recorded texts."""
    return _range_matches(original, item.original_start, item.original_end, item.original_text) and _range_matches(
        enhanced, item.enhanced_start, item.enhanced_end, item.enhanced_text
    )


def filter_valid(records: Iterable[ChangeRecord], original: str, enhanced: str) -> List[ChangeRecord]:
    """Drop records whose positions no longer match the live buffers."""
    kept: List[ChangeRecord] = []
    for rec in records:
        if position_is_valid(rec, original, enhanced):
            kept.append(rec)
        else:
            logger.warning(
                "dropping change with stale position",
                change_id=rec.id,
                original_range=(rec.original_start, rec.original_end),
                enhanced_range=(rec.enhanced_start, rec.enhanced_end),
            )
    return kept


def collect_changes(
    original: str,
    enhanced: str,
    *,
    align_cfg: Optional[AlignConfig] = None,
    classifier_cfg: Optional[ClassifierConfig] = None,
) -> List[ChangeRecord]:
    """Run one alignment pass and return classified, position-validated change records."""
    align_cfg = align_cfg or AlignConfig()
    classifier_cfg = classifier_cfg or ClassifierConfig()

    ops = align(
        original,
        enhanced,
        granularity=align_cfg.granularity,
        timeout_sec=align_cfg.timeout_sec,
        line_mode=align_cfg.line_mode,
        semantic_cleanup=align_cfg.semantic_cleanup,
        consolidate_words=align_cfg.consolidate_words,
    )
    segments = segment(ops)

    records: List[ChangeRecord] = []
    for seg in segments:
        if not position_is_valid(seg, original, enhanced):
            logger.warning(
                "skipping segment with invalid position",
                op=seg.op.value,
                original_range=(seg.original_start, seg.original_end),
                enhanced_range=(seg.enhanced_start, seg.enhanced_end),
            )
            continue
        if not seg.original_text and not seg.enhanced_text:
            continue

        c = classify(seg, classifier_cfg)
        records.append(
            ChangeRecord(
                change_type=c.change_type,
                original_text=seg.original_text,
                enhanced_text=seg.enhanced_text,
                original_start=seg.original_start,
                original_end=seg.original_end,
                enhanced_start=seg.enhanced_start,
                enhanced_end=seg.enhanced_end,
                confidence_score=c.confidence_score,
                semantic_impact=c.semantic_impact,
            )
        )

    logger.info(
        "changes collected",
        operations=len(ops),
        segments=len(segments),
        records=len(records),
    )
    return records


def change_statistics(records: Iterable[ChangeRecord]) -> Dict[str, Dict[str, int]]:
    """Counts by change type, semantic impact and user decision."""
    records = list(records)
    return {
        "change_type": dict(Counter(r.change_type.value for r in records)),
        "semantic_impact": dict(Counter(r.semantic_impact.value for r in records)),
        "user_decision": dict(Counter(r.user_decision.value for r in records)),
    }
