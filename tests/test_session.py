# tests/test_session.py
import pytest

from subtag.core.collaborators import PersistenceError
from subtag.core.hotkeys import HotkeyEvent
from subtag.models.subtitle import MeaningCandidate
from tests.fakes import make_entries


@pytest.fixture
def session(make_session, entries_55):
    s = make_session(pause_at_end=False)
    s.init("55", entries_55)
    return s


@pytest.fixture
def editing_session(make_session, entries_55):
    s = make_session()
    s.init("55", entries_55)
    return s


# ---------------------------------------------------------------- init / load
def test_init_mounts_first_entry(session, renderer):
    assert session.displayed_id == "55_0"
    assert session.anchor_id == "55_0"
    assert session.navigation.most_recently_displayed_id == "55_0"
    assert renderer.of("entry") == ["55_0"]


def test_init_with_no_entries(make_session, renderer):
    s = make_session()
    s.init("55", [])
    assert s.displayed_id is None
    assert renderer.of("entry") == [None]
    assert s.on_clock_tick(3.0) is None


def test_load_goes_through_runner(make_session, runner):
    s = make_session()
    s.load("55")
    assert s.media_id is None
    runner.run_all()
    assert s.media_id == "55"
    assert s.displayed_id == "55_0"


def test_load_result_for_replaced_media_is_dropped(make_session, runner):
    s = make_session()
    s.load("55")
    s.init("77", make_entries("77", [0.0]))
    runner.run_all()
    assert s.media_id == "77"
    assert s.displayed_id == "77_0"


def test_load_failure_is_reported(make_session, persistence, runner, renderer):
    def broken(media_id):
        raise PersistenceError("missing file")

    persistence.load_subtitles = broken
    s = make_session()
    s.load("55")
    runner.run_all()
    assert s.media_id is None
    assert "missing file" in renderer.of("error")[0]


def test_reset_clears_everything(session, renderer):
    session.select_token("55_0", 1)
    session.reset()
    assert session.media_id is None
    assert session.displayed_id is None
    assert not session.selection.has_selection
    assert len(session.index) == 0


# ---------------------------------------------------------------- clock ticks
def test_clock_ticks_follow_playback(session, renderer):
    assert session.on_clock_tick(2.0) == "55_0"
    assert session.on_clock_tick(7.0) == "55_1"
    assert session.on_clock_tick(3.0) == "55_0"
    assert renderer.of("entry") == ["55_0", "55_1", "55_0"]


def test_tick_without_time_keeps_anchor(session, player):
    session.on_clock_tick(7.0)
    player.time = None
    assert session.on_clock_tick() == "55_1"
    assert session.anchor_id == "55_1"


def test_tick_reads_player_time(session, player):
    player.time = 11.0
    assert session.on_clock_tick() == "55_2"


def test_lockout_keeps_hotkey_target_against_stale_ticks(session, player, clock):
    assert session.handle_hotkey(HotkeyEvent.advance())
    assert session.handle_hotkey(HotkeyEvent.advance())
    assert session.displayed_id == "55_2"
    assert player.seeks == [5.0, 10.0]

    # the player still reports a position from before the seek
    assert session.on_clock_tick(5.5) == "55_2"
    clock.advance_ms(500)
    assert session.on_clock_tick(5.6) == "55_2"

    clock.advance_ms(500)
    assert session.on_clock_tick(10.5) == "55_2"
    assert session.on_clock_tick(5.5) == "55_1"


def test_advance_on_last_entry_keeps_state(session, player):
    session.on_clock_tick(11.0)
    player.calls.clear()
    assert session.handle_hotkey(HotkeyEvent.advance()) is False
    assert session.displayed_id == "55_2"
    assert player.calls == []


def test_restart_and_previous(session, player):
    session.on_clock_tick(7.0)
    assert session.handle_hotkey(HotkeyEvent.restart())
    assert player.seeks[-1] == 5.0
    assert session.handle_hotkey(HotkeyEvent.previous())
    assert session.displayed_id == "55_0"
    assert player.seeks[-1] == 0.0


# ---------------------------------------------------------------- pause at end
def test_pause_at_end_enters_editing_mode(editing_session, player, renderer, runner):
    editing_session.on_clock_tick(3.0)
    assert not editing_session.editing

    editing_session.on_clock_tick(4.2)

    assert ("pause", None) in player.calls
    assert editing_session.editing
    assert (editing_session.selection.subtitle_id, editing_session.selection.token_index) == ("55_0", 0)
    runner.run_all()
    assert renderer.of("meanings") == [(("55_0", 0), [1, 2])]


def test_digit_assigns_and_moves_to_next_token(editing_session, runner, persistence):
    editing_session.on_clock_tick(4.2)
    runner.run_all()

    assert editing_session.handle_hotkey(HotkeyEvent.select_meaning(2))

    assert editing_session.index.get("55_0").tokens[0].meaning == 2
    assert editing_session.selection.token_index == 1
    runner.run_all()
    assert ("55_0", 0, 2) in persistence.saved


def test_digit_past_candidate_list_is_ignored(editing_session, runner):
    editing_session.on_clock_tick(4.2)
    runner.run_all()

    assert editing_session.select_meaning_by_digit(5) is False
    assert editing_session.select_meaning_by_digit(0) is False
    assert editing_session.index.get("55_0").tokens[0].meaning is None
    assert runner.pending == []


def test_digit_before_candidates_load_is_ignored(editing_session, runner):
    editing_session.on_clock_tick(4.2)
    assert editing_session.select_meaning_by_digit(1) is False


def test_digit_without_selection_is_ignored(session):
    assert session.select_meaning_by_digit(1) is False


def test_drifting_into_next_entry_while_editing_is_ignored(make_session):
    s = make_session()
    s.init("55", make_entries("55", [0.0, 5.0, 10.0], duration=5.0))
    s.on_clock_tick(5.0)
    assert s.editing

    assert s.on_clock_tick(5.2) == "55_0"
    assert s.editing


def test_seek_into_next_entry_while_editing_remounts(editing_session, renderer):
    editing_session.on_clock_tick(4.2)
    assert editing_session.editing

    assert editing_session.on_clock_tick(9.9) == "55_1"

    assert not editing_session.editing
    assert not editing_session.selection.has_selection
    assert renderer.of("entry")[-1] == "55_1"
    assert renderer.of("editing") == [True, False]


def test_seek_within_entry_while_editing_leaves_editing(editing_session):
    editing_session.on_clock_tick(4.2)
    assert editing_session.on_clock_tick(1.0) == "55_0"
    assert not editing_session.editing


def test_resume_leaves_editing_and_pause_fires_once(editing_session, player, renderer):
    editing_session.on_clock_tick(4.2)
    editing_session.on_playback_resumed()
    assert not editing_session.editing
    assert renderer.of("editing") == [True, False]

    editing_session.on_clock_tick(4.6)
    assert [c for c in player.calls if c[0] == "pause"] == [("pause", None)]
    assert editing_session.on_clock_tick(5.2) == "55_1"


def test_fully_tagged_entry_does_not_pause(editing_session, player):
    for tok in editing_session.index.get("55_0").tokens:
        tok.meaning = 1
    editing_session.on_clock_tick(4.2)
    assert not editing_session.editing
    assert player.calls == []


def test_seek_past_following_entry_does_not_pause(editing_session, player):
    assert editing_session.on_clock_tick(12.0) == "55_2"
    assert not editing_session.editing
    assert ("pause", None) not in player.calls


def test_hotkey_leaves_editing_mode(editing_session, renderer):
    editing_session.on_clock_tick(4.2)
    editing_session.handle_hotkey(HotkeyEvent.advance())
    assert editing_session.displayed_id == "55_1"
    assert not editing_session.editing
    assert not editing_session.selection.has_selection


def test_pause_can_be_disabled(session, player):
    session.on_clock_tick(4.2)
    assert not session.editing
    assert player.calls == []


# ---------------------------------------------------------------- tokens and meanings
def test_select_token_validates(session, renderer):
    assert session.select_token("55_0", 7) is False
    assert session.select_token("99_0", 0) is False
    assert renderer.of("selection") == []


def test_lookup_failure_is_reported(session, persistence, runner, renderer):
    persistence.fail_lookups = True
    session.select_token("55_0", 0)
    runner.run_all()
    assert "lookup offline" in renderer.of("error")[0]
    assert session.cache.get(("55_0", 0)) is None


def test_second_selection_is_served_from_cache(session, persistence, runner):
    session.select_token("55_0", 0)
    runner.run_all()
    session.select_token("55_0", 0)
    assert runner.pending == []
    assert persistence.lookups == ["w0_0"]


def test_new_media_drops_in_flight_lookup(session, runner, renderer):
    session.select_token("55_0", 0)
    session.init("77", make_entries("77", [0.0]))
    runner.run_all()
    assert renderer.of("meanings") == []


def test_meaning_labels_are_remembered(session, runner):
    session.select_token("55_1", 0)
    runner.run_all()
    assert session.meaning_label(3) == "first sense 1"
    assert session.meaning_label(None) is None
    assert session.meaning_label(42) is None


def test_meaning_labels_are_dropped_on_media_swap(session, runner):
    session.select_token("55_1", 0)
    runner.run_all()
    session.init("77", make_entries("77", [0.0]))
    assert session.meaning_label(3) is None


def test_create_update_delete_patch_selected_list(session, runner, renderer):
    session.select_token("55_0", 0)
    runner.run_all()

    session.create_meaning("w0_0", "third sense")
    runner.run_all()
    assert renderer.of("meanings")[-1] == (("55_0", 0), [1, 2, 7])
    assert session.meaning_label(7) == "third sense"

    session.update_meaning(MeaningCandidate(id=1, word="w0_0", label="renamed"))
    runner.run_all()
    assert session.cache.get(("55_0", 0))[0].label == "renamed"
    assert session.meaning_label(1) == "renamed"

    session.delete_meaning(2)
    runner.run_all()
    assert renderer.of("meanings")[-1] == (("55_0", 0), [1, 7])
    assert session.meaning_label(2) is None


def test_meaning_change_after_media_swap_is_not_patched(session, runner, renderer):
    session.select_token("55_0", 0)
    runner.run_all()
    session.create_meaning("w0_0", "late")
    session.init("77", make_entries("77", [0.0]))
    runner.run_all()
    assert renderer.of("meanings") == [(("55_0", 0), [1, 2])]


def test_immediate_runner_by_default(make_session, entries_55, persistence):
    s = make_session(runner=None, pause_at_end=False)
    s.init("55", entries_55)
    s.select_token("55_0", 0)
    assert [c.id for c in s.cache.get(("55_0", 0))] == [1, 2]
    s.assign_meaning("55_0", 0, 2)
    assert persistence.saved == [("55_0", 0, 2)]
