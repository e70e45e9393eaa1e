# tests/conftest.py
import pytest

from tests.fakes import (
    DeferredTaskRunner,
    FakeClock,
    FakePersistence,
    FakePlayer,
    FakeRenderer,
    make_entries,
)
from subtag.models.subtitle import MeaningCandidate


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def runner():
    return DeferredTaskRunner()


@pytest.fixture
def entries_55():
    """Three entries starting at 0, 5 and 10 seconds, each 4 s long."""
    return make_entries("55", [0.0, 5.0, 10.0], duration=4.0)


@pytest.fixture
def meanings():
    """Two candidates for the first word of every entry."""
    out = []
    next_id = 1
    for ordinal in range(3):
        for label in ("first sense", "second sense"):
            out.append(MeaningCandidate(id=next_id, word=f"w{ordinal}_0", label=f"{label} {ordinal}"))
            next_id += 1
    return out


@pytest.fixture
def persistence(entries_55, meanings):
    return FakePersistence(entries_55, meanings)


@pytest.fixture
def make_session(persistence, player, renderer, runner, clock):
    """Factory so tests can tweak keyword arguments; runner is deferred."""
    from subtag.core.session import NavigationSession

    def _make(**kwargs):
        kwargs.setdefault("renderer", renderer)
        kwargs.setdefault("runner", runner)
        kwargs.setdefault("clock", clock)
        return NavigationSession(persistence, player, **kwargs)
    return _make
