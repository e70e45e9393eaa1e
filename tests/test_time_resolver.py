# tests/test_time_resolver.py
import random

import pytest

from subtag.core.subtitle_index import SubtitleIndex
from subtag.core.time_resolver import resolve, window_contains
from tests.fakes import make_entries


@pytest.fixture
def index_55(entries_55):
    return SubtitleIndex.build(entries_55)


def test_forward_then_backward_seek(index_55):
    assert resolve(index_55, None, 7) == "55_1"
    assert resolve(index_55, "55_1", 4) == "55_0"


def test_window_is_half_open(index_55):
    assert resolve(index_55, "55_0", 5.0) == "55_1"
    assert resolve(index_55, "55_1", 4.999) == "55_0"
    assert window_contains(index_55, "55_1", 5.0)
    assert not window_contains(index_55, "55_1", 10.0)


def test_past_every_start_returns_last(index_55):
    assert resolve(index_55, None, 10_000) == "55_2"
    assert window_contains(index_55, "55_2", 10_000)


def test_before_first_start_returns_first():
    index = SubtitleIndex.build(make_entries("m", [3.0, 6.0]))
    assert resolve(index, "m_1", 1.0) == "m_0"
    assert resolve(index, None, 0.0) == "m_0"


def test_empty_index_resolves_to_none():
    assert resolve(SubtitleIndex.empty(), None, 3.0) is None


def test_stale_anchor_is_ignored(index_55):
    assert resolve(index_55, "99_4", 7.0) == "55_1"


def test_anchor_hit_stays_put(index_55):
    assert resolve(index_55, "55_1", 6.0) == "55_1"


def _random_index(rng):
    count = rng.randint(1, 40)
    starts = sorted(rng.uniform(0, 500) for _ in range(count))
    ordinals = sorted(rng.sample(range(count * 3), count))
    return SubtitleIndex.build(make_entries("p", starts, ordinals=ordinals))


def _brute_force(index, t):
    ids = list(index.ids())
    found = ids[0]
    for sid in ids:
        if index.get(sid).start_time <= t:
            found = sid
    return found


def test_matches_linear_scan_from_any_anchor():
    rng = random.Random(1234)
    for _ in range(200):
        index = _random_index(rng)
        ids = list(index.ids())
        anchor = rng.choice(ids + [None])
        t = rng.uniform(-10, 520)
        assert resolve(index, anchor, t) == _brute_force(index, t)


def test_increasing_times_never_move_backward():
    rng = random.Random(99)
    for _ in range(50):
        index = _random_index(rng)
        order = {sid: i for i, sid in enumerate(index.ids())}
        anchor = None
        t = 0.0
        for _ in range(100):
            t += rng.uniform(0, 8)
            resolved = resolve(index, anchor, t)
            if anchor is not None:
                assert order[resolved] >= order[anchor]
            anchor = resolved


def test_is_deterministic(index_55):
    results = {resolve(index_55, "55_2", 6.5) for _ in range(10)}
    assert results == {"55_1"}
