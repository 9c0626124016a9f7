"""
ocr_module.py: OCR text cleanup and request pipeline
Raw OCR text/words → normalization → tokens → medicine matching → overlay + highlight
"""

import re
import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import config

# Logging setup
logger = logging.getLogger(__name__)

BBox = Tuple[float, float, float, float]

# ---------- OCR confusion table ----------
# Digits/symbols the OCR engine commonly reads in place of letters
OCR_CONFUSIONS = str.maketrans({
    "\u00a0": " ",
    "0": "o",
    "1": "l",
    "5": "s",
    "@": "a",
})

TOKEN_SPLIT_REGEX = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class OCRWord:
    """One recognized word and its box in source-image pixels (x0, y0, x1, y1)."""
    text: str
    bbox: Optional[BBox] = None


# ---------- Normalization ----------
def normalize_text(text: Optional[str]) -> str:
    """Fix common OCR character confusions and non-breaking spaces."""
    if not text:
        return ""
    return text.translate(OCR_CONFUSIONS)


# ---------- Tokenization ----------
def tokenize(text: Optional[str], min_length: int = None) -> List[str]:
    """Split text into lowercase alphanumeric tokens, dropping short noise."""
    if not text:
        return []
    if min_length is None:
        min_length = config.MIN_TOKEN_LENGTH
    return [t for t in TOKEN_SPLIT_REGEX.split(text.lower()) if len(t) >= min_length]


# ---------- Word boxes ----------
def parse_bbox(raw: Any) -> Optional[BBox]:
    """Accept {"x0","y0","x1","y1"} mappings or 4-item sequences; anything else is None."""
    if raw is None:
        return None
    try:
        if isinstance(raw, dict):
            coords = (raw["x0"], raw["y0"], raw["x1"], raw["y1"])
        elif isinstance(raw, (list, tuple)) and len(raw) == 4:
            coords = tuple(raw)
        else:
            return None
        x0, y0, x1, y1 = (float(c) for c in coords)
    except (KeyError, TypeError, ValueError):
        return None
    # "nan"/"inf" parse fine but cannot be drawn
    if not all(math.isfinite(c) for c in (x0, y0, x1, y1)):
        return None
    return x0, y0, x1, y1


def clean_words(raw_words: Optional[Iterable[Any]]) -> List[OCRWord]:
    """Turn raw OCR word entries into OCRWord objects with normalized text."""
    words = []
    for entry in raw_words or []:
        if isinstance(entry, OCRWord):
            words.append(OCRWord(text=normalize_text(entry.text), bbox=entry.bbox))
            continue
        if not isinstance(entry, dict):
            logger.debug(f"Skipping unrecognized word entry: {entry!r}")
            continue
        bbox = parse_bbox(entry.get("bbox"))
        if entry.get("bbox") is not None and bbox is None:
            logger.debug(f"Malformed bbox for word {entry.get('text')!r}: {entry.get('bbox')!r}")
        words.append(OCRWord(text=normalize_text(entry.get("text") or ""), bbox=bbox))
    return words


# ---------- Main pipeline ----------
def process_ocr_result(
    text: Optional[str],
    words: Optional[Iterable[Any]] = None,
    natural_size: Optional[Tuple[float, float]] = None,
    display_size: Optional[Tuple[float, float]] = None,
) -> Dict[str, Any]:
    """
    Run detection, box remapping and highlighting over one OCR result.

    Returns a dict with "medicines" (DetectionResult list), "highlighted_html"
    and "boxes" (DisplayBox list). Degenerate input gives empty outputs.
    """
    from drug_matcher import detect_medicines
    from overlay import highlight_text_html, map_boxes_to_display

    cleaned = normalize_text(text)
    medicines = detect_medicines(cleaned)
    highlighted = highlight_text_html(cleaned, medicines)

    boxes = []
    if words:
        natural_w, natural_h = natural_size or (0, 0)
        display_w, display_h = display_size or (0, 0)
        boxes = map_boxes_to_display(
            clean_words(words),
            natural_w, natural_h, display_w, display_h,
            entity_keys=[m.entity_key for m in medicines],
        )

    return {
        "medicines": medicines,
        "highlighted_html": highlighted,
        "boxes": boxes,
    }
