# tests/test_dictionary_lookup.py
import threading
import time

import pytest

from subtag.core.collaborators import PersistenceError
from subtag.storage.library import LibraryStore
from subtag.workers.dictionary_lookup import SOURCE_TAG, DictionaryLookup


@pytest.fixture
def store(tmp_path):
    return LibraryStore(tmp_path / "library")


class FlakyTranslate:
    """Fails ``failures`` times, then returns ``result``."""

    def __init__(self, result, failures=0):
        self.result = result
        self.failures = failures
        self.calls = []

    def __call__(self, text, target_language="en"):
        self.calls.append((text, target_language))
        if len(self.calls) <= self.failures:
            raise ConnectionError("service unavailable")
        return self.result


def test_stored_meanings_skip_translation(store):
    store.create_meaning("bank", "shore")
    translate = FlakyTranslate([])
    lookup = DictionaryLookup(store, translate=translate)

    assert [c.label for c in lookup.fetch_meaning_candidates("bank")] == ["shore"]
    assert translate.calls == []


def test_translations_are_saved_as_meanings(store):
    translate = FlakyTranslate([
        {"label": "bench", "part_of_speech": "noun", "definition": ""},
        {"label": ""},
        {"label": "bank", "part_of_speech": "noun"},
    ])
    lookup = DictionaryLookup(store, target_language="fr", translate=translate)

    found = lookup.fetch_meaning_candidates("banc")

    assert [c.label for c in found] == ["bench", "bank"]
    assert all(c.source == SOURCE_TAG for c in found)
    assert translate.calls == [("banc", "fr")]
    assert [c.id for c in store.fetch_meaning_candidates("banc")] == [c.id for c in found]


def test_retries_then_succeeds(store):
    sleeps = []
    translate = FlakyTranslate([{"label": "hello"}], failures=2)
    lookup = DictionaryLookup(store, max_retries=3, retry_delay=0.5, translate=translate, sleep=sleeps.append)

    assert [c.label for c in lookup.fetch_meaning_candidates("salut")] == ["hello"]
    assert sleeps == [0.5, 0.5]


def test_gives_up_after_max_retries(store):
    sleeps = []
    translate = FlakyTranslate([{"label": "x"}], failures=5)
    lookup = DictionaryLookup(store, max_retries=2, retry_delay=0.1, translate=translate, sleep=sleeps.append)

    with pytest.raises(PersistenceError, match="service unavailable"):
        lookup.fetch_meaning_candidates("mot")
    assert len(translate.calls) == 2
    assert sleeps == [0.1]
    assert store.fetch_meaning_candidates("mot") == []


def test_other_operations_delegate(store):
    from tests.fakes import make_entries

    lookup = DictionaryLookup(store, translate=FlakyTranslate([]))
    store.save_subtitles("ep1", make_entries("ep1", [0.0]))

    lookup.save_meaning_assignment("ep1_0", 0, 3)
    assert lookup.load_subtitles("ep1")[0].tokens[0].meaning == 3

    cand = lookup.create_meaning("w", "label")
    cand.label = "changed"
    lookup.update_meaning(cand)
    assert store.fetch_meaning_candidates("w")[0].label == "changed"
    lookup.delete_meaning(cand.id)
    assert store.fetch_meaning_candidates("w") == []


def test_concurrent_lookups_of_one_word_seed_once(store):
    entered = threading.Event()
    release = threading.Event()
    calls = []

    def slow_translate(text, target_language="en"):
        calls.append(text)
        entered.set()
        release.wait(5)
        return [{"label": "go"}, {"label": "went"}]

    lookup = DictionaryLookup(store, translate=slow_translate)
    results = {}

    def worker(name):
        results[name] = [c.id for c in lookup.fetch_meaning_candidates("ไป")]

    first = threading.Thread(target=worker, args=("first",))
    second = threading.Thread(target=worker, args=("second",))
    first.start()
    assert entered.wait(5)
    second.start()
    time.sleep(0.05)
    release.set()
    first.join(5)
    second.join(5)

    assert calls == ["ไป"]
    assert [c.label for c in store.fetch_meaning_candidates("ไป")] == ["go", "went"]
    assert results["first"] == results["second"] == [1, 2]
