"""
Navigation: character offset -> vertical scroll target.

Two ways to get there:
- measure the height of the text before the offset with a layout measurer
  (font metrics off-screen, or a chars-per-line approximation when headless);
- walk already-rendered text nodes (e.g. lines of a rendered PDF page) and
  return the top of the node holding the offset.

Navigation state is an explicit value passed in and returned, never module state.
"""

from __future__ import annotations

import abc
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import fitz  # PyMuPDF
import structlog

from .config import NavigationConfig
from .models import ChangeRecord

logger = structlog.get_logger(__name__)

_WRAP_TOKEN = re.compile(r"\S+\s*|\s+")


class TextLayoutMeasurer(Protocol):
    def measure_height(self, text: str, width: float) -> float:
        ...


class _WrappingMeasurer(abc.ABC):
    """Greedy pre-wrap layout: hard newlines break, long words overflow onto extra lines."""

    line_height: float

    @abc.abstractmethod
    def text_width(self, text: str) -> float:
        ...

    def count_lines(self, text: str, width: float) -> int:
        if not text:
            return 0
        if width <= 0:
            raise ValueError("width must be positive")

        paragraphs = text.split("\n")
        if paragraphs[-1] == "":
            paragraphs.pop()

        lines = 0
        for para in paragraphs:
            lines += 1
            used = 0.0
            for token in _WRAP_TOKEN.findall(para):
                word = token.rstrip()
                w = self.text_width(word)
                if word and used > 0 and used + w > width:
                    lines += 1
                    used = 0.0
                if w > width:
                    extra = math.ceil(w / width) - 1
                    lines += extra
                    used = w - extra * width
                else:
                    used += w
                # trailing spaces hang past the edge, they never force a wrap
                used += self.text_width(token[len(word):])
        return lines

    def measure_height(self, text: str, width: float) -> float:
        return self.count_lines(text, width) * self.line_height


class ApproximateLayoutMeasurer(_WrappingMeasurer):
    """Fixed average character width; for servers and tests."""

    def __init__(self, *, avg_char_width: float = 8.0, line_height: float = 24.0):
        self.avg_char_width = avg_char_width
        self.line_height = line_height

    def text_width(self, text: str) -> float:
        return len(text) * self.avg_char_width


class FontLayoutMeasurer(_WrappingMeasurer):
    """Real glyph advances from a PDF base font via PyMuPDF."""

    def __init__(self, *, font_name: str = "helv", font_size: float = 16.0, line_height: Optional[float] = None):
        self.font_name = font_name
        self.font_size = font_size
        self.line_height = line_height if line_height is not None else font_size * 1.5

    def text_width(self, text: str) -> float:
        if not text:
            return 0.0
        return fitz.get_text_length(text, fontname=self.font_name, fontsize=self.font_size)


def measurer_from_config(cfg: NavigationConfig) -> TextLayoutMeasurer:
    if cfg.measurer == "font":
        return FontLayoutMeasurer(font_name=cfg.font_name, font_size=cfg.font_size, line_height=cfg.line_height)
    return ApproximateLayoutMeasurer(avg_char_width=cfg.avg_char_width, line_height=cfg.line_height)


def locate(
    buffer: str,
    offset: int,
    container_width: float,
    *,
    measurer: TextLayoutMeasurer,
    viewport_height: float = 600.0,
    visibility_fraction: float = 1.0 / 3.0,
) -> int:
    """
    Scroll offset (px) that brings `offset` into view: measured height of the text
    before it, minus a fraction of the viewport. Returns 0 when measuring fails.
    """
    if not buffer or offset <= 0:
        return 0
    offset = min(offset, len(buffer))
    try:
        height = measurer.measure_height(buffer[:offset], container_width)
    except Exception as e:
        logger.warning("text measurement failed", error=f"{type(e).__name__}: {e}")
        return 0
    return max(0, int(height - viewport_height * visibility_fraction))


@dataclass(frozen=True)
class TextNode:
    """A rendered run of text and its vertical extent."""
    text: str
    top: float
    bottom: float


def text_nodes_from_page(page: fitz.Page) -> List[TextNode]:
    """
    Extract rendered lines from page.get_text("dict") in reading order:
    - sort blocks by (y0, x0)
    - lines by (y0, x0)
    - spans by (y0, x0)

    Span text is kept as rendered (no whitespace folding) so node lengths add up
    to buffer offsets.
    """
    d = page.get_text("dict")
    blocks = [b for b in d.get("blocks", []) if b.get("type", 0) == 0]
    blocks.sort(key=lambda b: (b["bbox"][1], b["bbox"][0]))

    nodes: List[TextNode] = []
    for b in blocks:
        lines = sorted(b.get("lines", []), key=lambda ln: (ln["bbox"][1], ln["bbox"][0]))
        for ln in lines:
            spans = sorted(ln.get("spans", []), key=lambda sp: (sp["bbox"][1], sp["bbox"][0]))
            text = "".join(sp.get("text", "") for sp in spans)
            if not text:
                continue
            x0, y0, x1, y1 = ln["bbox"]
            nodes.append(TextNode(text=text, top=y0, bottom=y1))
    return nodes


def locate_in_nodes(
    nodes: List[TextNode],
    offset: int,
    *,
    container_top: float = 0.0,
    separator_len: int = 1,
) -> int:
    """
    Walk rendered nodes summing their text lengths and return the top of the node
    holding `offset`, relative to the container. Each node boundary consumes
    `separator_len` characters of the buffer (the break the renderer swallowed).
    """
    if not nodes:
        return 0
    consumed = 0
    for node in nodes:
        end = consumed + len(node.text)
        if offset < end + separator_len:
            return max(0, int(node.top - container_top))
        consumed = end + separator_len
    return max(0, int(nodes[-1].top - container_top))


@dataclass(frozen=True)
class NavigationState:
    selected_change_id: Optional[str] = None
    original_range: Optional[Tuple[int, int]] = None
    enhanced_range: Optional[Tuple[int, int]] = None
    original_scroll: int = 0
    enhanced_scroll: int = 0


def navigate_to_change(
    record: ChangeRecord,
    original: str,
    enhanced: str,
    *,
    measurer: TextLayoutMeasurer,
    cfg: Optional[NavigationConfig] = None,
) -> NavigationState:
    """Highlight ranges and scroll targets for both panels."""
    cfg = cfg or NavigationConfig()
    kwargs = dict(
        measurer=measurer,
        viewport_height=cfg.viewport_height,
        visibility_fraction=cfg.visibility_fraction,
    )
    state = NavigationState(
        selected_change_id=record.id,
        original_range=(record.original_start, record.original_end),
        enhanced_range=(record.enhanced_start, record.enhanced_end),
        original_scroll=locate(original, record.original_start, cfg.container_width, **kwargs),
        enhanced_scroll=locate(enhanced, record.enhanced_start, cfg.container_width, **kwargs),
    )
    logger.debug(
        "navigated to change",
        change_id=record.id,
        original_scroll=state.original_scroll,
        enhanced_scroll=state.enhanced_scroll,
    )
    return state


def clear_navigation() -> NavigationState:
    return NavigationState()
