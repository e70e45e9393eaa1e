# tests/test_models.py
import pytest

from subtag.models.subtitle import (
    MalformedIdError,
    MeaningCandidate,
    SubtitleEntry,
    Token,
    entry_from_dict,
    entry_to_dict,
    make_subtitle_id,
    normalize_tokens,
    parse_subtitle_id,
)


@pytest.mark.parametrize("sid, expected", [
    ("81726716_6", ("81726716", 6)),
    ("show_s01_12", ("show_s01", 12)),
    ("x_007", ("x", 7)),
])
def test_parse_subtitle_id(sid, expected):
    assert parse_subtitle_id(sid) == expected


@pytest.mark.parametrize("sid", ["", "abc", "abc_", "_5", "abc_1x", "m_\u0663", "m_\uff13", None])
def test_malformed_ids(sid):
    with pytest.raises(MalformedIdError):
        parse_subtitle_id(sid)


def test_make_subtitle_id():
    assert make_subtitle_id("55", 3) == "55_3"


def test_normalize_tokens_accepts_both_shapes():
    tokens = normalize_tokens(["hello", {"t": "world", "meaning_id": "4"}, Token("x", 2)])
    assert tokens == [Token("hello"), Token("world", 4), Token("x", 2)]
    assert normalize_tokens(None) == []


def test_normalize_tokens_rejects_other_shapes():
    with pytest.raises(ValueError):
        normalize_tokens([42])


def test_entry_dict_conversion():
    entry = SubtitleEntry("55_1", 1.5, None, "a b", [Token("a", 3), Token("b")])
    data = entry_to_dict(entry)
    assert data["tokens"] == [{"t": "a", "meaning_id": 3}, {"t": "b"}]
    assert entry_from_dict(data) == entry


def test_entry_helpers():
    entry = SubtitleEntry("55_1", 0.0, tokens=[Token("a", 1), Token("b")])
    assert entry.ordinal == 1
    assert entry.media_id == "55"
    assert entry.first_untagged_index() == 1
    assert not entry.fully_tagged
    entry.tokens[1].meaning = 2
    assert entry.fully_tagged
    assert not SubtitleEntry("55_2", 0.0).fully_tagged


def test_meaning_candidate_from_dict_defaults():
    cand = MeaningCandidate.from_dict({"id": "7", "word": "bank"})
    assert cand.id == 7
    assert cand.label == ""
    assert MeaningCandidate.from_dict(cand.to_dict()) == cand
