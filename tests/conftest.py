import os
from pathlib import Path
import sys

import pytest

# Keep Kivy from parsing pytest's arguments or writing its own logs.
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")

sys.path.append(str(Path(__file__).resolve().parents[1]))

from gymlog.cloud import InMemoryKeyValueStore  # noqa: E402
from gymlog.settings import Settings  # noqa: E402
from gymlog.store import WorkoutStore  # noqa: E402


class _FakeEvent:
    def __init__(self, callback, deadline):
        self.callback = callback
        self.deadline = deadline
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Deterministic stand-in for :data:`kivy.clock.Clock`."""

    def __init__(self):
        self.now = 0.0
        self.events: list[_FakeEvent] = []

    def schedule_once(self, callback, timeout=0):
        event = _FakeEvent(callback, self.now + timeout)
        self.events.append(event)
        return event

    @property
    def scheduled(self) -> list:
        return [e for e in self.events if not e.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [e for e in self.scheduled if e.deadline <= self.now]
        self.events = [e for e in self.scheduled if e.deadline > self.now]
        for event in due:
            event.callback(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cloud() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def data_path(tmp_path: Path) -> Path:
    return tmp_path / "workout-data.json"


@pytest.fixture
def store(data_path, cloud, clock, tmp_path) -> WorkoutStore:
    """Store with seed data, saving inline when the fake clock fires."""
    s = WorkoutStore(
        data_path=data_path,
        cloud=cloud,
        settings=Settings(tmp_path / "settings.json"),
        clock=clock,
        background_saves=False,
    )
    s.load()
    return s


@pytest.fixture
def session_with_bench(store):
    """An ongoing chest session with Bench Press added."""
    chest = store.workout_types[0]
    bench = store.exercises[0]
    session = store.start_workout(chest, date=1_700_000_000.0)
    store.add_exercise_to_workout(session.id, bench)
    return session, bench
