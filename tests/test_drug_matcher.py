import json

import pytest

from drug_matcher import (
    VOCABULARY,
    DetectionResult,
    MatchTier,
    MedicineRecord,
    MedicineVocabulary,
    TokenMatch,
    assemble_results,
    detect_medicines,
    edit_distance,
    fuzzy_threshold,
    load_vocabulary,
    match_token,
    placeholder_record,
)


@pytest.fixture
def vocab():
    return MedicineVocabulary(
        keys=["paracetamol", "dolo", "crocin", "ors"],
        records=[
            MedicineRecord(key="paracetamol", display_name="Paracetamol", purpose="Fever"),
            MedicineRecord(key="dolo", display_name="Dolo 650", purpose="Fever, body pain"),
            MedicineRecord(key="crocin", display_name="Crocin"),
        ],
    )


# -------------------------
# Vocabulary store
# -------------------------
def test_vocabulary_lookup_and_order(vocab):
    assert list(vocab.all_keys()) == ["paracetamol", "dolo", "crocin", "ors"]
    assert vocab.lookup("dolo").display_name == "Dolo 650"
    assert vocab.lookup("ors") is None
    assert vocab.lookup("unknown") is None
    assert "crocin" in vocab
    assert len(vocab) == 4


def test_vocabulary_keys_are_lowercased_and_deduplicated():
    vocab = MedicineVocabulary(keys=["Dolo", "dolo ", "", "Crocin"])
    assert list(vocab.all_keys()) == ["dolo", "crocin"]


def test_load_vocabulary_from_file(tmp_path):
    path = tmp_path / "meds.json"
    path.write_text(json.dumps({
        "medicine_keys": ["dolo", "ors"],
        "medicine_info": {"dolo": {"display_name": "Dolo 650", "side_effects": "Nausea"}},
    }), encoding="utf-8")
    vocab = load_vocabulary(str(path))
    assert list(vocab.all_keys()) == ["dolo", "ors"]
    assert vocab.lookup("dolo") == MedicineRecord(key="dolo", display_name="Dolo 650", side_effects="Nausea")


def test_load_vocabulary_missing_file_gives_empty(tmp_path):
    vocab = load_vocabulary(str(tmp_path / "missing.json"))
    assert len(vocab) == 0
    assert detect_medicines("Dolo 650", vocab) == []


def test_load_vocabulary_invalid_json_gives_empty(tmp_path):
    path = tmp_path / "meds.json"
    path.write_text('{"medicine_keys": ["dolo",', encoding="utf-8")
    vocab = load_vocabulary(str(path))
    assert len(vocab) == 0


def test_load_vocabulary_bad_info_entry_gives_empty(tmp_path):
    path = tmp_path / "meds.json"
    path.write_text(json.dumps({
        "medicine_keys": ["dolo"],
        "medicine_info": {"dolo": "Dolo 650"},
    }), encoding="utf-8")
    vocab = load_vocabulary(str(path))
    assert len(vocab) == 0


def test_shipped_vocabulary_is_loaded():
    assert "paracetamol" in VOCABULARY
    assert VOCABULARY.lookup("paracetamol").display_name == "Paracetamol (Acetaminophen)"
    assert VOCABULARY.lookup("calpol") is None


# -------------------------
# Edit distance / thresholds
# -------------------------
def test_edit_distance():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("paracetmol", "paracetamol") == 1
    assert edit_distance("", "abc") == 3
    # transpositions cost two edits
    assert edit_distance("ab", "ba") == 2


def test_edit_distance_cutoff():
    assert edit_distance("kitten", "sitting", 1) == 2


def test_fuzzy_threshold_depends_on_key_length():
    assert fuzzy_threshold("dolo") == 1
    assert fuzzy_threshold("calpo") == 1
    assert fuzzy_threshold("calpol") == 2
    assert fuzzy_threshold("paracetamol") == 2


# -------------------------
# Matcher
# -------------------------
def test_exact_match(vocab):
    assert match_token("dolo", vocab) == TokenMatch("dolo", "dolo", MatchTier.EXACT, 0)


def test_exact_beats_earlier_fuzzy_candidate():
    vocab = MedicineVocabulary(keys=["dolo", "dola"])
    match = match_token("dola", vocab)
    assert match.entity_key == "dola"
    assert match.tier == MatchTier.EXACT


def test_exact_beats_earlier_substring_candidate():
    vocab = MedicineVocabulary(keys=["vitamin", "vitaminc"])
    match = match_token("vitaminc", vocab)
    assert match.entity_key == "vitaminc"
    assert match.tier == MatchTier.EXACT


def test_substring_beats_earlier_fuzzy_candidate():
    vocab = MedicineVocabulary(keys=["crocine", "crocin"])
    match = match_token("crocins", vocab)
    assert match.entity_key == "crocin"
    assert match.tier == MatchTier.SUBSTRING


def test_substring_match(vocab):
    match = match_token("crocinplus", vocab)
    assert match.entity_key == "crocin"
    assert match.tier == MatchTier.SUBSTRING
    assert match.distance is None


def test_substring_needs_long_token():
    vocab = MedicineVocabulary(keys=["ors"])
    assert match_token("doors", vocab).tier == MatchTier.SUBSTRING
    # four letters: no substring tier, but still one edit away
    assert match_token("fors", vocab).tier == MatchTier.FUZZY
    assert match_token("xyorsz", vocab).tier == MatchTier.SUBSTRING


@pytest.mark.parametrize("token, key, matched", [
    ("dolx", "dolo", True),
    ("doxx", "dolo", False),
    ("paracetmol", "paracetamol", True),
    ("parcetmol", "paracetamol", True),
    ("parctmol", "paracetamol", False),
])
def test_fuzzy_thresholds(vocab, token, key, matched):
    match = match_token(token, vocab)
    if matched:
        assert match.entity_key == key
        assert match.tier == MatchTier.FUZZY
    else:
        assert match is None


def test_fuzzy_tie_goes_to_vocabulary_order():
    vocab = MedicineVocabulary(keys=["amlodipine", "amlodipinz"])
    match = match_token("amlodipinx", vocab)
    assert match.entity_key == "amlodipine"
    assert match.distance == 1


def test_no_match(vocab):
    assert match_token("twice", vocab) is None
    assert match_token("", vocab) is None


# -------------------------
# Assembler
# -------------------------
def test_assemble_dedups_and_promotes_higher_tier(vocab):
    results = assemble_results([
        TokenMatch("dolo", "dolx", MatchTier.FUZZY, 1),
        None,
        TokenMatch("crocin", "crocin", MatchTier.EXACT, 0),
        TokenMatch("dolo", "dolo", MatchTier.EXACT, 0),
        TokenMatch("dolo", "dola", MatchTier.FUZZY, 1),
    ], vocab)
    assert [r.entity_key for r in results] == ["dolo", "crocin"]
    assert results[0].matched_word == "dolo"
    assert results[0].tier == MatchTier.EXACT
    assert results[0].record == vocab.lookup("dolo")


def test_assemble_keeps_first_on_equal_tier(vocab):
    results = assemble_results([
        TokenMatch("dolo", "dolx", MatchTier.FUZZY, 1),
        TokenMatch("dolo", "dola", MatchTier.FUZZY, 1),
    ], vocab)
    assert len(results) == 1
    assert results[0].matched_word == "dolx"


def test_assemble_uses_placeholder_for_unregistered_key(vocab):
    results = assemble_results([TokenMatch("ors", "ors", MatchTier.EXACT, 0)], vocab)
    assert results[0].record == placeholder_record("ors")
    assert results[0].record.purpose == "Information not available"
    assert results[0].record.display_name == "ors"


def test_detection_result_to_dict(vocab):
    result = assemble_results([TokenMatch("dolo", "dolo", MatchTier.EXACT, 0)], vocab)[0]
    data = result.to_dict()
    assert data["name"] == "dolo"
    assert data["tier"] == "exact"
    assert data["matched_word"] == "dolo"
    assert data["distance"] == 0
    assert data["info"]["display_name"] == "Dolo 650"
    assert data["info"]["dosage"] is None


# -------------------------
# Detection
# -------------------------
@pytest.mark.parametrize("text", ["", None, "   \n"])
def test_detect_empty_input(text):
    assert detect_medicines(text) == []


def test_detect_same_medicine_twice_collapses(vocab):
    results = detect_medicines("Dolo 650, then DOLO again, and dol0 at night", vocab)
    assert [r.entity_key for r in results] == ["dolo"]


def test_detect_prescription_scenario():
    results = detect_medicines("Take Dol0 650mg twice daily and Paracetmol if fever persists")
    assert [r.entity_key for r in results] == ["dolo", "paracetamol"]

    dolo, paracetamol = results
    assert dolo.tier == MatchTier.EXACT
    assert paracetamol.tier == MatchTier.FUZZY
    assert paracetamol.matched_word == "paracetmol"
    assert paracetamol.distance == 1
    assert all(isinstance(r, DetectionResult) and r.record.purpose for r in results)


def test_detect_unregistered_medicine_still_reported():
    results = detect_medicines("Calpol syrup")
    assert [r.entity_key for r in results] == ["calpol"]
    assert results[0].record.dosage == "Consult your doctor"
