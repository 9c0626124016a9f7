"""
overlay.py: presentation helpers for OCR results.

Two independent consumers of a detection result:
 - map_boxes_to_display(words, ...) -> DisplayBox list in the caller's pixel space
 - highlight_text_html(text, medicines) -> HTML-safe text with <mark> around medicine names
"""

import html
import logging
import re
from dataclasses import dataclass, asdict
from typing import Iterable, List, Optional, Sequence, Tuple

import config
from ocr_module import OCRWord

logger = logging.getLogger(__name__)

# Entities produced by html.escape; highlight patterns must never match inside them
HTML_ENTITY_REGEX = re.compile(r"&(?:amp|lt|gt|quot|#x27);")


@dataclass(frozen=True)
class DisplayBox:
    text: str
    x: float
    y: float
    width: float
    height: float
    is_medicine: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


# -------------------------
# Geometry mapper
# -------------------------
def _axis_scale(display: Optional[float], natural: Optional[float]) -> float:
    # Unknown or zero sizes on either side mean identity scaling
    if not natural or not display or natural <= 0 or display <= 0:
        return 1.0
    return display / natural


def scale_factors(natural_width, natural_height, display_width, display_height) -> Tuple[float, float]:
    return (
        _axis_scale(display_width, natural_width),
        _axis_scale(display_height, natural_height),
    )


def is_medicine_word(text: str, entity_keys: Iterable[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(key and key in lowered for key in entity_keys)


def map_boxes_to_display(
    words: Iterable[OCRWord],
    natural_width: float,
    natural_height: float,
    display_width: float,
    display_height: float,
    entity_keys: Sequence[str] = (),
) -> List[DisplayBox]:
    """Rescale source-image word boxes into display space. Words without a box are skipped."""
    scale_x, scale_y = scale_factors(natural_width, natural_height, display_width, display_height)
    min_size = config.MIN_BOX_SIZE

    boxes = []
    for word in words:
        if word is None or word.bbox is None:
            continue
        x0, y0, x1, y1 = word.bbox
        boxes.append(DisplayBox(
            text=word.text,
            x=x0 * scale_x,
            y=y0 * scale_y,
            width=max(min_size, (x1 - x0) * scale_x),
            height=max(min_size, (y1 - y0) * scale_y),
            is_medicine=is_medicine_word(word.text, entity_keys),
        ))
    logger.debug(f"Mapped {len(boxes)} word boxes (scale {scale_x:.3f} x {scale_y:.3f})")
    return boxes


# -------------------------
# Highlighter
# -------------------------
def escape_html(text: Optional[str]) -> str:
    return html.escape(text or "", quote=True)


def _surface_forms(medicines) -> List[str]:
    """Terms to highlight, in result order: the word as read, then the canonical key."""
    terms = []
    for m in medicines:
        if isinstance(m, str):
            candidates = [m]
        else:
            candidates = [getattr(m, "matched_word", None), getattr(m, "entity_key", None)]
        for term in candidates:
            if term and term.lower() not in (t.lower() for t in terms):
                terms.append(term)
    return terms


def highlight_text_html(text: Optional[str], medicines, css_class: str = None) -> str:
    """
    Escape text for HTML and wrap whole-word, case-insensitive occurrences of
    each detected medicine in <mark>. Earlier terms win overlapping spans.
    """
    escaped = escape_html(text)
    if not escaped or not medicines:
        return escaped
    css_class = css_class or config.HIGHLIGHT_CLASS

    entities = [m.span() for m in HTML_ENTITY_REGEX.finditer(escaped)]
    hits = []
    for term in _surface_forms(medicines):
        pattern = re.compile(r"\b" + re.escape(escape_html(term)) + r"\b", re.IGNORECASE)
        for match in pattern.finditer(escaped):
            start, end = match.span()
            if any(start < h_end and h_start < end for h_start, h_end in hits):
                continue
            # a match may contain whole entities (escaped "&" in the term) but never split one
            if any(start < e_end and e_start < end and not (start <= e_start and e_end <= end)
                   for e_start, e_end in entities):
                continue
            hits.append((start, end))

    if not hits:
        return escaped

    out = []
    pos = 0
    open_tag = f'<mark class="{escape_html(css_class)}">'
    for start, end in sorted(hits):
        out.append(escaped[pos:start])
        out.append(f"{open_tag}{escaped[start:end]}</mark>")
        pos = end
    out.append(escaped[pos:])
    return "".join(out)
