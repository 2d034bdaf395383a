"""
High-level pipeline:
- start a tracking pass for the refinement
- enhance the chapter text (LLM or pre-computed)
- align, classify and store the changes
- write changes.json and the PDF change report
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from .config import ChapterDiffConfig
from .llm import OpenRouterChapterEnhancer
from .models import ChangeRecord
from .report import save_change_report_pdf
from .store import InMemoryRecordStore
from .tracker import ChangeTracker
from .tracking import change_statistics

logger = structlog.get_logger(__name__)


@dataclass
class EnhancementResult:
    refinement_id: str
    original: str
    enhanced: str
    records: List[ChangeRecord] = field(default_factory=list)
    tracking_ok: bool = True
    superseded: bool = False


def enhance_and_track(
    tracker: ChangeTracker,
    enhance: Callable[[str], str],
    refinement_id: str,
    original: str,
) -> EnhancementResult:
    """
    Enhance `original` and record the changes for `refinement_id`.

    Enhancement errors propagate. Change tracking errors do not: the enhanced
    text is still returned, with no changes attached.
    """
    ticket = tracker.begin_pass(refinement_id)
    enhanced = enhance(original)

    result = EnhancementResult(refinement_id=refinement_id, original=original, enhanced=enhanced)
    try:
        records = tracker.complete_pass(ticket, original, enhanced)
    except Exception:
        logger.exception("change tracking failed, continuing without changes", refinement_id=refinement_id)
        result.tracking_ok = False
        return result

    if records is None:
        result.superseded = True
    else:
        result.records = records
    return result


def run_from_config(cfg: ChapterDiffConfig, *, enhance: Optional[Callable[[str], str]] = None) -> str:
    """Run the full pipeline and return the report PDF path."""
    os.makedirs(cfg.project.output_dir, exist_ok=True)

    changes_json = os.path.join(cfg.project.output_dir, "changes.json")
    enhanced_txt = os.path.join(cfg.project.output_dir, "enhanced.txt")
    report_pdf = os.path.join(cfg.project.output_dir, "change_report.pdf")

    original = Path(cfg.project.original_path).read_text(encoding="utf-8")

    if enhance is None:
        if cfg.project.enhanced_path:
            enhanced_text = Path(cfg.project.enhanced_path).read_text(encoding="utf-8")
            enhance = lambda _text: enhanced_text  # noqa: E731
        else:
            enhance = OpenRouterChapterEnhancer(
                api_key=cfg.llm.resolved_api_key(),
                model=cfg.llm.model,
                base_url=cfg.llm.base_url,
                site_url=cfg.llm.site_url,
                site_name=cfg.llm.site_name,
                temperature=cfg.llm.temperature,
                max_tokens=cfg.llm.max_tokens,
                timeout_sec=cfg.llm.timeout_sec,
                max_retries=cfg.llm.max_retries,
            )

    tracker = ChangeTracker(
        InMemoryRecordStore(),
        align_cfg=cfg.align,
        classifier_cfg=cfg.classifier,
    )
    result = enhance_and_track(tracker, enhance, cfg.project.refinement_id, original)

    Path(enhanced_txt).write_text(result.enhanced, encoding="utf-8")
    payload = {
        "refinement_id": result.refinement_id,
        "tracking_ok": result.tracking_ok,
        "statistics": change_statistics(result.records),
        "changes": [r.to_row(result.refinement_id) for r in result.records],
    }
    Path(changes_json).write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    save_change_report_pdf(
        result.records,
        report_pdf,
        title=cfg.report.title,
        truncate_chars=cfg.report.truncate_chars,
    )

    logger.info("done", changes=len(result.records), report=report_pdf)
    return report_pdf
