"""
Tests for the enhance-and-track pipeline and the config-driven run.
"""

import json

import pytest

from chapterdiff.config import ChapterDiffConfig, ProjectConfig
from chapterdiff.llm import EnhancementError
from chapterdiff.pipeline import enhance_and_track, run_from_config


class TestEnhanceAndTrack:

    def test_records_attached(self, tracker, original_chapter, enhanced_chapter):
        result = enhance_and_track(tracker, lambda _text: enhanced_chapter, "ref-1", original_chapter)

        assert result.enhanced == enhanced_chapter
        assert result.tracking_ok
        assert not result.superseded
        assert result.records
        assert [r.id for r in tracker.records("ref-1")] == [r.id for r in result.records]

    def test_enhancer_errors_propagate(self, tracker, store, original_chapter):
        def failing(_text):
            raise EnhancementError("empty response")

        with pytest.raises(EnhancementError):
            enhance_and_track(tracker, failing, "ref-1", original_chapter)
        assert store.fetch_records("ref-1") == []

    def test_tracking_failure_keeps_enhanced_text(self, tracker, monkeypatch, original_chapter, enhanced_chapter):
        def broken(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(tracker, "complete_pass", broken)

        result = enhance_and_track(tracker, lambda _text: enhanced_chapter, "ref-1", original_chapter)

        assert result.enhanced == enhanced_chapter
        assert not result.tracking_ok
        assert result.records == []

    def test_newer_pass_supersedes(self, tracker, original_chapter, enhanced_chapter):
        def enhance_while_user_resubmits(_text):
            tracker.begin_pass("ref-1")
            return enhanced_chapter

        result = enhance_and_track(tracker, enhance_while_user_resubmits, "ref-1", original_chapter)

        assert result.superseded
        assert result.records == []
        assert tracker.records("ref-1") == []


def test_run_from_config(tmp_path, original_chapter, enhanced_chapter):
    original_path = tmp_path / "chapter.txt"
    enhanced_path = tmp_path / "chapter.enhanced.txt"
    original_path.write_text(original_chapter, encoding="utf-8")
    enhanced_path.write_text(enhanced_chapter, encoding="utf-8")
    out_dir = tmp_path / "out"

    cfg = ChapterDiffConfig(
        project=ProjectConfig(
            original_path=str(original_path),
            enhanced_path=str(enhanced_path),
            refinement_id="chapter-7",
            output_dir=str(out_dir),
        )
    )

    report = run_from_config(cfg)

    assert (out_dir / "change_report.pdf").read_bytes().startswith(b"%PDF")
    assert report == str(out_dir / "change_report.pdf")
    assert (out_dir / "enhanced.txt").read_text(encoding="utf-8") == enhanced_chapter

    payload = json.loads((out_dir / "changes.json").read_text(encoding="utf-8"))
    assert payload["refinement_id"] == "chapter-7"
    assert payload["tracking_ok"] is True
    assert payload["changes"]
    assert sum(payload["statistics"]["change_type"].values()) == len(payload["changes"])
    for row in payload["changes"]:
        start, end = row["original_position_start"], row["original_position_end"]
        assert original_chapter[start:end] == row["original_text"]


def test_run_from_config_with_injected_enhancer(tmp_path):
    original_path = tmp_path / "chapter.txt"
    original_path.write_text("teh cat sat", encoding="utf-8")
    cfg = ChapterDiffConfig(
        project=ProjectConfig(original_path=str(original_path), output_dir=str(tmp_path / "out"))
    )

    run_from_config(cfg, enhance=lambda text: text.replace("teh", "the"))

    payload = json.loads((tmp_path / "out" / "changes.json").read_text(encoding="utf-8"))
    assert [(c["original_text"], c["enhanced_text"]) for c in payload["changes"]] == [("teh", "the")]
