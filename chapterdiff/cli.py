"""
Command-line interface.

Usage:
  chapterdiff run --config chapterdiff.yaml
  chapterdiff diff original.txt enhanced.txt [--granularity word] [--out changes.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import AlignConfig, ChapterDiffConfig, configure_logging
from .pipeline import run_from_config
from .tracking import change_statistics, collect_changes


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="chapterdiff", description="Character-accurate change tracking for chapter text.")
    parser.add_argument("--log-level", default=None, help="Override the log level (DEBUG, INFO, ...).")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run_p = sub.add_parser("run", help="Enhance/track a chapter using a YAML config.")
    run_p.add_argument("--config", required=True, help="Path to YAML config file.")

    diff_p = sub.add_parser("diff", help="Print the classified changes between two text files.")
    diff_p.add_argument("original", help="Original text file.")
    diff_p.add_argument("enhanced", help="Enhanced text file.")
    diff_p.add_argument("--granularity", choices=["char", "word"], default="char")
    diff_p.add_argument("--refinement-id", default="local")
    diff_p.add_argument("--out", default=None, help="Write JSON here instead of stdout.")

    args = parser.parse_args(argv)

    if args.cmd == "run":
        cfg = ChapterDiffConfig.from_yaml(args.config)
        configure_logging(args.log_level or cfg.runtime.log_level)
        run_from_config(cfg)

    elif args.cmd == "diff":
        configure_logging(args.log_level or "WARNING", stream=sys.stderr)
        original = Path(args.original).read_text(encoding="utf-8")
        enhanced = Path(args.enhanced).read_text(encoding="utf-8")
        records = collect_changes(original, enhanced, align_cfg=AlignConfig(granularity=args.granularity))
        payload = json.dumps(
            {
                "statistics": change_statistics(records),
                "changes": [r.to_row(args.refinement_id) for r in records],
            },
            ensure_ascii=False,
            indent=2,
        )
        if args.out:
            Path(args.out).write_text(payload, encoding="utf-8")
        else:
            sys.stdout.write(payload + "\n")
