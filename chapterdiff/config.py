"""
YAML-driven configuration for chapterdiff.

Design choice:
- Put all parameters in YAML, except secrets (API key), which should come from an env var.
- Classification thresholds are plain config values so they can be tuned without code changes.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Literal, Optional

import structlog
import yaml
from pydantic import BaseModel, Field


class ProjectConfig(BaseModel):
    original_path: str
    enhanced_path: Optional[str] = None  # generated through the LLM when missing
    refinement_id: str = "local"
    output_dir: str = "chapterdiff_output"


class LLMConfig(BaseModel):
    provider: Literal["openrouter"] = "openrouter"
    api_key_env: str = "OPENROUTER_API_KEY"
    api_key: Optional[str] = None  # discouraged; prefer env
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "openai/gpt-4o-mini"
    site_url: str = ""
    site_name: str = ""
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout_sec: float = 90.0
    max_retries: int = 2

    def resolved_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        key = os.getenv(self.api_key_env, "")
        if not key:
            raise ValueError(
                f"Missing API key. Set env var '{self.api_key_env}' or provide llm.api_key in YAML."
            )
        return key


class AlignConfig(BaseModel):
    granularity: Literal["char", "word"] = "char"
    timeout_sec: float = 1.0  # 0 = no time budget
    line_mode: bool = True
    semantic_cleanup: bool = True
    consolidate_words: bool = True


class ClassifierConfig(BaseModel):
    short_text_max: int = 10
    long_text_min: int = 50
    very_long_total: int = 100
    low_impact_max: int = 3
    high_impact_min: int = 50

    punctuation_chars: str = ".!?,:;"
    quote_chars: str = "\"'«»“”‘’"

    confidence_default: float = Field(0.85, ge=0.0, le=1.0)
    confidence_edit: float = Field(0.9, ge=0.0, le=1.0)
    confidence_single_char: float = Field(0.95, ge=0.0, le=1.0)
    confidence_long: float = Field(0.75, ge=0.0, le=1.0)
    confidence_very_long: float = Field(0.6, ge=0.0, le=1.0)
    confidence_fallback: float = Field(0.5, ge=0.0, le=1.0)


class NavigationConfig(BaseModel):
    measurer: Literal["approximate", "font"] = "approximate"
    container_width: float = 720.0
    viewport_height: float = 600.0
    visibility_fraction: float = 1.0 / 3.0
    line_height: float = 24.0
    avg_char_width: float = 8.0
    font_name: str = "helv"
    font_size: float = 16.0


class ReportConfig(BaseModel):
    title: str = "Change Tracking Report"
    truncate_chars: int = 4000


class RuntimeConfig(BaseModel):
    log_level: str = "INFO"


class ChapterDiffConfig(BaseModel):
    project: ProjectConfig
    llm: LLMConfig = Field(default_factory=LLMConfig)
    align: AlignConfig = Field(default_factory=AlignConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ChapterDiffConfig":
        path = Path(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return cls.model_validate(data)


def configure_logging(level: str = "INFO", stream=None) -> None:
    """Route structlog through stdlib logging with a console renderer."""
    stream = stream or sys.stdout
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=stream,
        format="%(message)s",
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
