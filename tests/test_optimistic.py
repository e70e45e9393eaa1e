# tests/test_optimistic.py
import pytest

from subtag.core.optimistic import OptimisticUpdateCoordinator, SelectionState, next_untagged_index
from subtag.core.subtitle_index import SubtitleIndex
from subtag.models.subtitle import SubtitleEntry, Token
from tests.fakes import make_entries


@pytest.fixture
def index():
    return SubtitleIndex.build(make_entries("m", [0.0, 5.0], words_per_entry=4))


@pytest.fixture
def selection():
    return SelectionState()


@pytest.fixture
def coordinator(index, persistence, renderer, runner, selection):
    return OptimisticUpdateCoordinator(lambda: index, persistence, renderer, runner, selection)


def test_assignment_is_visible_before_persistence_settles(coordinator, index, persistence, runner, renderer):
    assert coordinator.assign_meaning("m_1", 2, 77) is True

    assert index.get("m_1").tokens[2].meaning == 77
    assert renderer.of("entry") == ["m_1"]
    assert persistence.saved == []
    assert len(runner.pending) == 1

    runner.run_all()
    assert persistence.saved == [("m_1", 2, 77)]


def test_persistence_failure_is_reported_and_not_rolled_back(coordinator, index, persistence, runner, renderer):
    persistence.fail_saves = True
    coordinator.assign_meaning("m_0", 0, 5)
    runner.run_all()

    assert index.get("m_0").tokens[0].meaning == 5
    errors = renderer.of("error")
    assert len(errors) == 1 and "disk full" in errors[0]


def test_unknown_entry_or_token_is_rejected(coordinator, runner, renderer):
    assert coordinator.assign_meaning("m_9", 0, 1) is False
    assert coordinator.assign_meaning("m_0", 10, 1) is False
    assert runner.pending == []
    assert renderer.events == []


def test_repeated_assignments_are_not_deduplicated(coordinator, runner, persistence):
    coordinator.assign_meaning("m_0", 0, 1)
    coordinator.assign_meaning("m_0", 0, 2)
    runner.run_all()
    assert persistence.saved == [("m_0", 0, 1), ("m_0", 0, 2)]


def test_repeated_assignments_reach_storage_in_order(coordinator, index, runner, persistence):
    coordinator.assign_meaning("m_0", 0, 1)
    coordinator.assign_meaning("m_1", 1, 5)
    coordinator.assign_meaning("m_0", 0, 2)

    runner.run_out_of_order()

    saved_for_token = [mid for sid, idx, mid in persistence.saved if (sid, idx) == ("m_0", 0)]
    assert saved_for_token == [1, 2]
    assert saved_for_token[-1] == index.get("m_0").tokens[0].meaning


def test_editing_mode_moves_to_next_untagged(coordinator, selection, renderer):
    selection.editing = True
    selection.subtitle_id, selection.token_index = "m_0", 1

    coordinator.assign_meaning("m_0", 1, 3)

    assert (selection.subtitle_id, selection.token_index) == ("m_0", 2)
    assert renderer.of("selection") == [("m_0", 2)]


def test_editing_mode_wraps_inside_the_entry(coordinator, index, selection):
    index.get("m_0").tokens[3].meaning = 9
    selection.editing = True
    selection.subtitle_id, selection.token_index = "m_0", 2

    coordinator.assign_meaning("m_0", 2, 3)

    assert selection.token_index == 0


def test_last_untagged_token_ends_editing_mode(coordinator, index, selection, renderer):
    for tok in index.get("m_0").tokens[:3]:
        tok.meaning = 1
    selection.editing = True
    selection.subtitle_id, selection.token_index = "m_0", 3

    coordinator.assign_meaning("m_0", 3, 4)

    assert selection.editing is False
    assert not selection.has_selection
    assert renderer.of("editing") == [False]
    assert renderer.of("selection") == [(None, None)]


def test_outside_editing_mode_selection_stays(coordinator, selection, renderer):
    selection.subtitle_id, selection.token_index = "m_0", 1
    coordinator.assign_meaning("m_0", 1, 3)
    assert selection.token_index == 1
    assert renderer.of("selection") == []


def test_select_token_callback_is_used_when_given(index, persistence, renderer, runner, selection):
    moves = []
    coord = OptimisticUpdateCoordinator(
        lambda: index, persistence, renderer, runner, selection,
        select_token=lambda sid, idx: moves.append((sid, idx)),
    )
    selection.editing = True
    selection.subtitle_id, selection.token_index = "m_1", 0
    coord.assign_meaning("m_1", 0, 1)
    assert moves == [("m_1", 1)]


def test_next_untagged_index_all_tagged():
    entry = SubtitleEntry("m_0", 0.0, tokens=[Token("a", 1), Token("b", 2)])
    assert next_untagged_index(entry, 0) is None
