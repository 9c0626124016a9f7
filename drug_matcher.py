import json
import logging
from dataclasses import dataclass, asdict
from enum import IntEnum
from typing import Dict, Iterable, Iterator, List, Optional

from rapidfuzz.distance import Levenshtein

import config
from ocr_module import normalize_text, tokenize

# Configure logging
logger = logging.getLogger(__name__)


class MatchTier(IntEnum):
    """Match quality; a higher value is a stronger match."""
    FUZZY = 1
    SUBSTRING = 2
    EXACT = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class MedicineRecord:
    key: str
    display_name: Optional[str] = None
    purpose: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    side_effects: Optional[str] = None
    contraindications: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def placeholder_record(key: str) -> MedicineRecord:
    """Generic info for a key we recognize but have no reference data for."""
    return MedicineRecord(
        key=key,
        display_name=key,
        purpose="Information not available",
        dosage="Consult your doctor",
        instructions="Take as prescribed",
        side_effects="Consult your doctor",
        contraindications="Consult your doctor",
    )


class MedicineVocabulary:
    """Read-only medicine vocabulary: ordered match keys plus reference records."""

    def __init__(self, keys: Iterable[str] = (), records: Iterable[MedicineRecord] = ()):
        # dict keeps insertion order, which is the tie-break order for matching
        self._keys = tuple(dict.fromkeys(k.strip().lower() for k in keys if k and k.strip()))
        self._records: Dict[str, MedicineRecord] = {r.key: r for r in records}

    def lookup(self, key: str) -> Optional[MedicineRecord]:
        return self._records.get(key)

    def all_keys(self) -> Iterator[str]:
        return iter(self._keys)

    def __contains__(self, key) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    @classmethod
    def from_dict(cls, data: dict) -> "MedicineVocabulary":
        """Build from {"medicine_keys": [...], "medicine_info": {key: {...}}}."""
        info = data.get("medicine_info") or {}
        keys = list(data.get("medicine_keys") or info.keys())
        records = []
        for key, fields in info.items():
            fields = fields or {}
            records.append(MedicineRecord(
                key=key.strip().lower(),
                display_name=fields.get("display_name"),
                purpose=fields.get("purpose"),
                dosage=fields.get("dosage"),
                instructions=fields.get("instructions"),
                side_effects=fields.get("side_effects"),
                contraindications=fields.get("contraindications"),
            ))
        return cls(keys, records)


def load_vocabulary(path: str = None) -> MedicineVocabulary:
    """Load the vocabulary file; on failure log it and continue with an empty vocabulary."""
    path = path or config.MEDICINE_DATA_FILE
    try:
        with open(path, 'r', encoding='utf-8') as f:
            vocabulary = MedicineVocabulary.from_dict(json.load(f))
        logger.info(f"Loaded {len(vocabulary)} medicine keys from {path}")
        return vocabulary
    except Exception as e:
        logger.error(f"Failed to load medicine vocabulary from {path}: {e}")
        return MedicineVocabulary()


# Loaded once at import time, shared read-only by every request
VOCABULARY = load_vocabulary()


@dataclass(frozen=True)
class TokenMatch:
    entity_key: str
    token: str
    tier: MatchTier
    distance: Optional[int] = None


@dataclass(frozen=True)
class DetectionResult:
    entity_key: str
    matched_word: str
    tier: MatchTier
    record: MedicineRecord
    distance: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "name": self.entity_key,
            "info": self.record.to_dict(),
            "matched_word": self.matched_word,
            "tier": self.tier.label,
            "distance": self.distance,
        }


def fuzzy_threshold(key: str) -> int:
    """Maximum edit distance allowed against this key."""
    if len(key) <= config.SHORT_KEY_MAX_LENGTH:
        return config.SHORT_KEY_MAX_DISTANCE
    return config.LONG_KEY_MAX_DISTANCE


def edit_distance(a: str, b: str, max_distance: int = None) -> int:
    """Levenshtein distance (unit insert/delete/substitute, no transpositions).

    With max_distance set, anything farther comes back as max_distance + 1.
    """
    return Levenshtein.distance(a, b, score_cutoff=max_distance)


def match_token(token: str, vocabulary: MedicineVocabulary = None) -> Optional[TokenMatch]:
    """Best match for one token: exact > substring > fuzzy, ties go to vocabulary order."""
    if not token:
        return None
    vocabulary = vocabulary if vocabulary is not None else VOCABULARY
    best = None

    for key in vocabulary.all_keys():
        # 1. Exact
        if token == key:
            return TokenMatch(key, token, MatchTier.EXACT, 0)

        # Only an exact match can beat a substring one
        if best is not None and best.tier == MatchTier.SUBSTRING:
            continue

        # 2. Substring (long tokens only, so short keys don't hit unrelated words)
        if len(token) >= config.SUBSTRING_MIN_TOKEN_LENGTH and key in token:
            best = TokenMatch(key, token, MatchTier.SUBSTRING)
            continue

        if best is not None:
            continue

        # 3. Fuzzy
        max_dist = fuzzy_threshold(key)
        dist = edit_distance(token, key, max_dist)
        if dist <= max_dist:
            best = TokenMatch(key, token, MatchTier.FUZZY, dist)

    return best


def assemble_results(
    matches: Iterable[Optional[TokenMatch]],
    vocabulary: MedicineVocabulary = None,
) -> List[DetectionResult]:
    """
    Collapse per-token matches into one result per entity key.

    The first match for a key keeps its position; only a later match of a
    strictly higher tier replaces its word and tier.
    """
    vocabulary = vocabulary if vocabulary is not None else VOCABULARY
    found: Dict[str, TokenMatch] = {}
    for match in matches:
        if match is None:
            continue
        current = found.get(match.entity_key)
        if current is None or match.tier > current.tier:
            found[match.entity_key] = match

    results = []
    for key, match in found.items():
        record = vocabulary.lookup(key) or placeholder_record(key)
        results.append(DetectionResult(
            entity_key=key,
            matched_word=match.token,
            tier=match.tier,
            record=record,
            distance=match.distance,
        ))
    return results


def detect_medicines(text: Optional[str], vocabulary: MedicineVocabulary = None) -> List[DetectionResult]:
    """Find known medicines in raw OCR text. Empty or missing text gives []."""
    if not text or not text.strip():
        return []
    vocabulary = vocabulary if vocabulary is not None else VOCABULARY

    tokens = tokenize(normalize_text(text))
    logger.debug(f"Tokens extracted: {tokens}")

    matches = []
    for token in tokens:
        match = match_token(token, vocabulary)
        if match is not None:
            logger.debug(f"{match.tier.label} match: {token!r} -> {match.entity_key} (distance: {match.distance})")
        matches.append(match)

    results = assemble_results(matches, vocabulary)
    logger.info(f"Detected {len(results)} medicines: {[r.entity_key for r in results]}")
    return results
