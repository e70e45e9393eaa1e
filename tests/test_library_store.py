# tests/test_library_store.py
import json

import pytest

from subtag.core.collaborators import PersistenceError
from subtag.storage.library import LibraryStore, media_id_for_path
from tests.fakes import make_entries


@pytest.fixture
def store(tmp_path):
    return LibraryStore(tmp_path / "library")


def test_save_and_load_subtitles(store):
    entries = make_entries("ep1", [0.0, 2.5], duration=2.0)
    entries[1].tokens[0].meaning = 4
    store.save_subtitles("ep1", entries)

    loaded = store.load_subtitles("ep1")

    assert [e.id for e in loaded] == ["ep1_0", "ep1_1"]
    assert loaded[1].start_time == 2.5
    assert loaded[1].end_time == 4.5
    assert loaded[1].tokens[0].meaning == 4
    assert loaded[0].tokens[0].meaning is None
    assert store.list_media() == ["ep1"]
    assert store.has_media("ep1")
    assert not store.has_media("ep2")


def test_write_leaves_no_temp_file(store):
    store.save_subtitles("ep1", make_entries("ep1", [0.0]))
    assert not list(store.subtitles_dir.glob("*.tmp"))


def test_load_missing_media_raises(store):
    with pytest.raises(PersistenceError):
        store.load_subtitles("nothing")


def test_load_corrupt_file_raises(store):
    (store.subtitles_dir / "bad.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        store.load_subtitles("bad")


def test_unsafe_media_id_is_rejected(store):
    with pytest.raises(PersistenceError):
        store.save_subtitles("../escape", [])


def test_save_meaning_assignment_updates_one_token(store):
    store.save_subtitles("ep1", make_entries("ep1", [0.0, 3.0]))

    store.save_meaning_assignment("ep1_1", 2, 9)

    loaded = store.load_subtitles("ep1")
    assert [t.meaning for t in loaded[1].tokens] == [None, None, 9]

    store.save_meaning_assignment("ep1_1", 2, None)
    assert store.load_subtitles("ep1")[1].tokens[2].meaning is None


def test_save_meaning_assignment_accepts_bare_string_tokens(store):
    path = store.subtitles_dir / "raw.json"
    path.write_text(json.dumps({
        "media_id": "raw",
        "subtitles": [{"id": "raw_1", "start": 0.0, "text": "a b", "tokens": ["a", "b"]}],
    }), encoding="utf-8")

    store.save_meaning_assignment("raw_1", 1, 3)

    loaded = store.load_subtitles("raw")
    assert [(t.text, t.meaning) for t in loaded[0].tokens] == [("a", None), ("b", 3)]


@pytest.mark.parametrize("subtitle_id, token_index", [
    ("ep1_7", 0),      # no such entry
    ("ep1_0", 5),      # token out of range
    ("ep1", 0),        # malformed id
    ("ep9_0", 0),      # unknown media
])
def test_save_meaning_assignment_errors(store, subtitle_id, token_index):
    store.save_subtitles("ep1", make_entries("ep1", [0.0]))
    with pytest.raises(PersistenceError):
        store.save_meaning_assignment(subtitle_id, token_index, 1)


def test_meaning_crud(store):
    first = store.create_meaning("bank", "river edge", part_of_speech="noun")
    second = store.create_meaning("bank", "money house")
    store.create_meaning("other", "unrelated")

    assert (first.id, second.id) == (1, 2)
    assert [c.label for c in store.fetch_meaning_candidates("bank")] == ["river edge", "money house"]

    first.label = "shore"
    store.update_meaning(first)
    store.delete_meaning(second.id)

    found = store.fetch_meaning_candidates("bank")
    assert [(c.id, c.label, c.part_of_speech) for c in found] == [(1, "shore", "noun")]
    assert store.create_meaning("bank", "again").id == 4


def test_meaning_errors(store):
    from subtag.models.subtitle import MeaningCandidate

    with pytest.raises(PersistenceError):
        store.create_meaning("", "label")
    with pytest.raises(PersistenceError):
        store.update_meaning(MeaningCandidate(id=99, word="x", label="y"))
    with pytest.raises(PersistenceError):
        store.delete_meaning(99)


def test_unknown_word_has_no_candidates(store):
    assert store.fetch_meaning_candidates("nothing") == []


@pytest.mark.parametrize("path, expected", [
    ("/videos/Episode 01.mp4", "Episode-01"),
    ("clip.final.mkv", "clip.final"),
    ("/x/???.mp4", "media"),
])
def test_media_id_for_path(path, expected):
    assert media_id_for_path(path) == expected
