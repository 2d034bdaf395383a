"""
Data models: diff operations, change segments and persisted change records.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

from pydantic import BaseModel, Field, model_validator


class OpKind(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class SegmentOp(str, Enum):
    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


class ChangeType(str, Enum):
    GRAMMAR = "grammar"
    PUNCTUATION = "punctuation"
    CAPITALIZATION = "capitalization"
    WHITESPACE = "whitespace"
    DIALOGUE = "dialogue"
    STRUCTURE = "structure"
    STYLE = "style"


class SemanticImpact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserDecision(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Buffer(str, Enum):
    """Which text buffer a range refers to."""
    ORIGINAL = "original"
    ENHANCED = "enhanced"


@dataclass(frozen=True)
class Operation:
    """One aligner operation. EQUAL text belongs to both buffers."""
    kind: OpKind
    text: str


@dataclass(frozen=True)
class Segment:
    """
    One contiguous edit with half-open ranges into both buffers.
    Pure inserts have an empty original range, pure deletes an empty enhanced range.
    """
    op: SegmentOp
    original_text: str
    enhanced_text: str
    original_start: int
    original_end: int
    enhanced_start: int
    enhanced_end: int


@dataclass(frozen=True)
class Classification:
    change_type: ChangeType
    confidence_score: float
    semantic_impact: SemanticImpact


def new_record_id() -> str:
    return uuid.uuid4().hex


class ChangeRecord(BaseModel):
    """A classified edit between the original and enhanced chapter text."""
    id: str = Field(default_factory=new_record_id)
    change_type: ChangeType
    original_text: str
    enhanced_text: str
    original_start: int = Field(..., ge=0)
    original_end: int = Field(..., ge=0)
    enhanced_start: int = Field(..., ge=0)
    enhanced_end: int = Field(..., ge=0)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    semantic_impact: SemanticImpact
    user_decision: UserDecision = UserDecision.PENDING

    @model_validator(mode="after")
    def _check_ranges(self) -> "ChangeRecord":
        if self.original_start > self.original_end:
            raise ValueError("original_start must not exceed original_end")
        if self.enhanced_start > self.enhanced_end:
            raise ValueError("enhanced_start must not exceed enhanced_end")
        if not self.original_text and not self.enhanced_text:
            raise ValueError("original_text and enhanced_text cannot both be empty")
        return self

    def span(self, buffer: Buffer) -> Tuple[int, int]:
        if buffer is Buffer.ORIGINAL:
            return self.original_start, self.original_end
        return self.enhanced_start, self.enhanced_end

    def with_span(self, buffer: Buffer, start: int, end: int) -> "ChangeRecord":
        if buffer is Buffer.ORIGINAL:
            return self.model_copy(update={"original_start": start, "original_end": end})
        return self.model_copy(update={"enhanced_start": start, "enhanced_end": end})

    def to_row(self, refinement_id: str) -> Dict[str, Any]:
        """Flatten to the `ai_change_tracking` row layout."""
        return {
            "refinement_id": refinement_id,
            "id": self.id,
            "change_type": self.change_type.value,
            "original_text": self.original_text,
            "enhanced_text": self.enhanced_text,
            # legacy single-buffer offsets
            "position_start": self.original_start,
            "position_end": self.original_end,
            "original_position_start": self.original_start,
            "original_position_end": self.original_end,
            "enhanced_position_start": self.enhanced_start,
            "enhanced_position_end": self.enhanced_end,
            "confidence_score": self.confidence_score,
            "semantic_impact": self.semantic_impact.value,
            "user_decision": self.user_decision.value,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ChangeRecord":
        original_start = row.get("original_position_start", row["position_start"])
        original_end = row.get("original_position_end", row["position_end"])
        enhanced_start = row.get("enhanced_position_start")
        enhanced_end = row.get("enhanced_position_end")
        if enhanced_start is None:
            # legacy rows only carry the original range
            enhanced_start = original_start
            enhanced_end = original_start + len(row.get("enhanced_text", ""))
        return cls(
            id=row["id"],
            change_type=row["change_type"],
            original_text=row.get("original_text", ""),
            enhanced_text=row.get("enhanced_text", ""),
            original_start=original_start,
            original_end=original_end,
            enhanced_start=enhanced_start,
            enhanced_end=enhanced_end,
            confidence_score=row["confidence_score"],
            semantic_impact=row.get("semantic_impact", SemanticImpact.MEDIUM),
            user_decision=row.get("user_decision", UserDecision.PENDING),
        )
