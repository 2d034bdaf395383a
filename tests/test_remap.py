"""
Tests for position remapping and accept/reject decisions.
"""

import pytest

from chapterdiff.models import Buffer, ChangeRecord, ChangeType, SemanticImpact, UserDecision
from chapterdiff.remap import DecisionConflictError, apply_decision, remap_after_decision
from chapterdiff.tracking import collect_changes


def _rec(record_id, start, end, *, enhanced_start=None, enhanced_end=None):
    return ChangeRecord(
        id=record_id,
        change_type=ChangeType.STRUCTURE,
        original_text="x" * max(1, end - start),
        enhanced_text="y",
        original_start=start,
        original_end=end,
        enhanced_start=start if enhanced_start is None else enhanced_start,
        enhanced_end=end if enhanced_end is None else enhanced_end,
        confidence_score=0.85,
        semantic_impact=SemanticImpact.MEDIUM,
    )


def _by_id(records):
    return {r.id: r for r in records}


class TestRemapAfterDecision:

    def test_later_records_shift_by_delta(self):
        records = [_rec("A", 10, 15), _rec("B", 20, 25)]

        out = _by_id(remap_after_decision(records, "A", 2, buffer_length=27))

        assert out["A"].span(Buffer.ORIGINAL) == (10, 12)
        assert out["B"].span(Buffer.ORIGINAL) == (17, 22)

    def test_earlier_records_unchanged(self):
        records = [_rec("A", 2, 5), _rec("B", 10, 15)]

        out = _by_id(remap_after_decision(records, "B", 8, buffer_length=40))

        assert out["A"] == records[0]
        assert out["B"].span(Buffer.ORIGINAL) == (10, 18)

    def test_same_length_is_noop(self):
        records = [_rec("A", 10, 15), _rec("B", 20, 25)]
        assert remap_after_decision(records, "A", 5, buffer_length=30) == records

    def test_unknown_id_leaves_records(self):
        records = [_rec("A", 10, 15)]
        assert remap_after_decision(records, "missing", 2, buffer_length=30) == records

    def test_shifted_ranges_are_clamped(self):
        records = [_rec("A", 10, 15), _rec("B", 20, 25)]

        out = _by_id(remap_after_decision(records, "A", 2, buffer_length=20))

        assert out["B"].span(Buffer.ORIGINAL) == (17, 20)

    def test_records_inside_the_edit_collapse_to_its_start(self):
        records = [_rec("A", 10, 20), _rec("inner", 12, 14), _rec("straddle", 15, 25)]

        out = _by_id(remap_after_decision(records, "A", 3, buffer_length=30))

        assert out["A"].span(Buffer.ORIGINAL) == (10, 13)
        assert out["inner"].span(Buffer.ORIGINAL) == (10, 10)
        assert out["straddle"].span(Buffer.ORIGINAL) == (10, 18)

    def test_only_the_requested_buffer_moves(self):
        records = [
            _rec("A", 10, 15, enhanced_start=10, enhanced_end=12),
            _rec("B", 20, 25, enhanced_start=17, enhanced_end=22),
        ]

        out = _by_id(remap_after_decision(records, "A", 6, buffer_length=40, buffer=Buffer.ENHANCED))

        assert out["B"].span(Buffer.ENHANCED) == (21, 26)
        assert out["B"].span(Buffer.ORIGINAL) == (20, 25)


class TestApplyDecision:

    @pytest.fixture
    def chapter_records(self, original_chapter, enhanced_chapter):
        return collect_changes(original_chapter, enhanced_chapter)

    def test_accept_keeps_text(self, enhanced_chapter, chapter_records):
        target = chapter_records[0]

        result = apply_decision(enhanced_chapter, chapter_records, target.id, UserDecision.ACCEPTED)

        assert result.applied
        assert result.text == enhanced_chapter
        assert _by_id(result.records)[target.id].user_decision is UserDecision.ACCEPTED

    def test_reject_restores_original_text(self):
        records = collect_changes("teh cat sat", "the cat sat")

        result = apply_decision("the cat sat", records, records[0].id, UserDecision.REJECTED)

        assert result.applied
        assert result.text == "teh cat sat"
        assert result.records[0].user_decision is UserDecision.REJECTED

    @pytest.mark.parametrize("reverse", [False, True])
    def test_rejecting_everything_gives_back_the_original(
        self, original_chapter, enhanced_chapter, chapter_records, reverse
    ):
        text = enhanced_chapter
        records = chapter_records
        order = [r.id for r in (reversed(chapter_records) if reverse else chapter_records)]

        for record_id in order:
            result = apply_decision(text, records, record_id, UserDecision.REJECTED)
            assert result.applied
            text, records = result.text, result.records

            for r in records:
                if r.user_decision is UserDecision.PENDING:
                    assert text[r.enhanced_start:r.enhanced_end] == r.enhanced_text

        assert text == original_chapter

    def test_same_decision_twice_is_noop(self, enhanced_chapter, chapter_records):
        target = chapter_records[0]
        first = apply_decision(enhanced_chapter, chapter_records, target.id, UserDecision.ACCEPTED)

        second = apply_decision(first.text, first.records, target.id, UserDecision.ACCEPTED)

        assert not second.applied
        assert second.records == first.records

    def test_settled_decision_cannot_flip(self, enhanced_chapter, chapter_records):
        target = chapter_records[0]
        accepted = apply_decision(enhanced_chapter, chapter_records, target.id, UserDecision.ACCEPTED)

        with pytest.raises(DecisionConflictError):
            apply_decision(accepted.text, accepted.records, target.id, UserDecision.REJECTED)

    def test_pending_is_not_a_decision(self, enhanced_chapter, chapter_records):
        with pytest.raises(ValueError):
            apply_decision(enhanced_chapter, chapter_records, chapter_records[0].id, UserDecision.PENDING)

    def test_unknown_record(self, enhanced_chapter, chapter_records):
        with pytest.raises(KeyError):
            apply_decision(enhanced_chapter, chapter_records, "nope", UserDecision.REJECTED)

    def test_edited_working_text_is_left_alone(self, chapter_records, enhanced_chapter):
        target = chapter_records[-1]
        edited = "PREFIX " + enhanced_chapter

        result = apply_decision(edited, chapter_records, target.id, UserDecision.REJECTED)

        assert not result.applied
        assert result.text == edited
        assert result.records == chapter_records
