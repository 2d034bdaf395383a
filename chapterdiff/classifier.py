"""
Heuristic change classification: type, confidence and semantic impact.

Rules are ordered and the first match wins. All thresholds come from ClassifierConfig.
"""

from __future__ import annotations

from typing import Optional

from .config import ClassifierConfig
from .models import ChangeType, Classification, Segment, SegmentOp, SemanticImpact

_DEFAULT = ClassifierConfig()


def classify(segment: Segment, cfg: Optional[ClassifierConfig] = None) -> Classification:
    cfg = cfg or _DEFAULT
    if not segment.original_text and not segment.enhanced_text:
        return Classification(ChangeType.STYLE, cfg.confidence_fallback, SemanticImpact.LOW)

    return Classification(
        change_type=classify_type(segment, cfg),
        confidence_score=confidence_score(segment, cfg),
        semantic_impact=semantic_impact(segment, cfg),
    )


def classify_type(segment: Segment, cfg: ClassifierConfig = _DEFAULT) -> ChangeType:
    original = segment.original_text
    enhanced = segment.enhanced_text

    if segment.op is SegmentOp.INSERT:
        return _by_length(len(enhanced), cfg)
    if segment.op is SegmentOp.DELETE:
        return _by_length(len(original), cfg)

    if len(original) == 1 and len(enhanced) == 1:
        if original.lower() == enhanced.lower():
            return ChangeType.CAPITALIZATION
        if original in cfg.punctuation_chars or enhanced in cfg.punctuation_chars:
            return ChangeType.PUNCTUATION

    if original.strip() == enhanced.strip() and original != enhanced:
        return ChangeType.WHITESPACE

    if _has_quote(original, cfg) or _has_quote(enhanced, cfg):
        return ChangeType.DIALOGUE

    if len(original) <= cfg.short_text_max and len(enhanced) <= cfg.short_text_max:
        return ChangeType.GRAMMAR

    if len(original) > cfg.long_text_min or len(enhanced) > cfg.long_text_min:
        return ChangeType.STYLE

    return ChangeType.STRUCTURE


def confidence_score(segment: Segment, cfg: ClassifierConfig = _DEFAULT) -> float:
    if segment.op in (SegmentOp.INSERT, SegmentOp.DELETE):
        return cfg.confidence_edit

    if len(segment.original_text) == 1 and len(segment.enhanced_text) == 1:
        return cfg.confidence_single_char

    total = len(segment.original_text) + len(segment.enhanced_text)
    if total > cfg.very_long_total:
        return cfg.confidence_very_long
    if total > cfg.long_text_min:
        return cfg.confidence_long
    return cfg.confidence_default


def semantic_impact(segment: Segment, cfg: ClassifierConfig = _DEFAULT) -> SemanticImpact:
    total = len(segment.original_text) + len(segment.enhanced_text)
    if total <= cfg.low_impact_max:
        return SemanticImpact.LOW
    if total > cfg.high_impact_min:
        return SemanticImpact.HIGH
    return SemanticImpact.MEDIUM


def _by_length(length: int, cfg: ClassifierConfig) -> ChangeType:
    if length <= cfg.short_text_max:
        return ChangeType.GRAMMAR
    if length > cfg.long_text_min:
        return ChangeType.STYLE
    return ChangeType.STRUCTURE


def _has_quote(text: str, cfg: ClassifierConfig) -> bool:
    return any(ch in cfg.quote_chars for ch in text)
