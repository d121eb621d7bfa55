import time

import pytest

from gymlog.models import SetEntry
from gymlog.settings import ThemePreference
from gymlog.store import WorkoutStore


def _state(store):
    return store.payload().to_dict(), [t.id for t in store.active_timers]


def test_start_workout_prepends_ongoing_session(store):
    legs = store.workout_types[2]
    first = store.start_workout(legs, date=100.0)
    second = store.start_workout(legs, date=200.0)
    assert store.workouts[0] is second
    assert store.workouts[1] is first
    assert first.is_ongoing and second.is_ongoing
    assert second.created_at == second.updated_at == second.start_time == 200.0
    assert second.end_time is None


def test_start_workout_embeds_copies(store):
    chest = store.workout_types[0]
    gym = store.add_gym_location("Home", "1 Main St", 40.0, -73.0)
    session = store.start_workout(chest, gym=gym)
    chest.name = "Upper"
    gym.label = "Moved"
    assert session.workout_type.name == "Chest"
    assert session.gym_location.label == "Home"
    assert session.gym_location.radius == 100


def test_add_type_and_exercise_allow_duplicates(store):
    a = store.add_workout_type("Back")
    b = store.add_workout_type("Back")
    assert a.id != b.id
    assert [t.name for t in store.workout_types].count("Back") == 2
    pull = store.add_exercise("Pull-up", a)
    assert pull.workout_type_id == a.id
    assert pull.default_weight is None and pull.default_reps is None
    assert store.exercises[-1] is pull


def test_add_set_counts_successful_calls(store, session_with_bench):
    session, bench = session_with_bench
    for weight in (60, 70, 80):
        assert store.add_set(session.id, bench.id, weight, 5)
    entry = session.find_entry(bench.id)
    assert [s.weight for s in entry.sets] == [60, 70, 80]
    assert entry.sets[0].custom_fields == {}


def test_add_set_unknown_ids_leave_state_unchanged(store, session_with_bench):
    session, bench = session_with_bench
    store.add_set(session.id, bench.id, 100, 5)
    before = _state(store)
    assert store.add_set("missing", bench.id, 1, 1) is False
    assert store.add_set(session.id, "missing", 1, 1) is False
    assert _state(store) == before


def test_add_set_copies_custom_fields(store, session_with_bench):
    session, bench = session_with_bench
    fields = {"tempo": "3110"}
    store.add_set(session.id, bench.id, 100, 5, custom_fields=fields)
    fields["tempo"] = "changed"
    assert session.find_entry(bench.id).sets[0].custom_fields == {"tempo": "3110"}


def test_mutations_stamp_updated_at(store, session_with_bench, monkeypatch):
    session, bench = session_with_bench
    monkeypatch.setattr(time, "time", lambda: 1_800_000_000.0)
    store.add_set(session.id, bench.id, 100, 5)
    assert session.updated_at == 1_800_000_000.0


def test_add_exercise_to_unknown_workout_is_noop(store):
    assert store.add_exercise_to_workout("missing", store.exercises[0]) is False
    assert store.workouts == []


def test_update_set_overwrites_fields(store, session_with_bench):
    session, bench = session_with_bench
    store.add_set(session.id, bench.id, 100, 5, {"grip": "wide"})
    set_id = session.find_entry(bench.id).sets[0].id
    assert store.update_set(
        session.id, bench.id, set_id, 105, 4, 8.5, "felt heavy", {"grip": "close"}
    )
    updated = session.find_entry(bench.id).sets[0]
    assert (updated.weight, updated.reps, updated.rpe, updated.notes) == (
        105,
        4,
        8.5,
        "felt heavy",
    )
    assert updated.custom_fields == {"grip": "close"}
    assert updated.id == set_id


@pytest.mark.parametrize("which", ["session", "exercise", "set"])
def test_update_set_lookup_miss_is_silent(store, session_with_bench, which):
    session, bench = session_with_bench
    store.add_set(session.id, bench.id, 100, 5)
    ids = {
        "session": session.id,
        "exercise": bench.id,
        "set": session.find_entry(bench.id).sets[0].id,
    }
    ids[which] = "missing"
    before = _state(store)
    assert not store.update_set(
        ids["session"], ids["exercise"], ids["set"], 1, 1, None, None, {}
    )
    assert _state(store) == before


def test_quick_add_sets_appends_independent_copies(store, session_with_bench):
    session, bench = session_with_bench
    template = SetEntry(80, 10, rpe=7, custom_fields={"band": "red"})
    assert store.quick_add_sets(session.id, bench.id, template, 3)
    sets = session.find_entry(bench.id).sets
    assert len(sets) == 3
    assert all(s.weight == 80 and s.reps == 10 and s.rpe == 7 for s in sets)
    assert len({s.id for s in sets}) == 3
    sets[0].custom_fields["band"] = "blue"
    assert sets[1].custom_fields == {"band": "red"}
    assert template.custom_fields == {"band": "red"}


def test_quick_add_sets_unknown_exercise(store, session_with_bench):
    session, _ = session_with_bench
    assert not store.quick_add_sets(session.id, "missing", SetEntry(1, 1), 2)


def test_close_workout(store, session_with_bench):
    session, _ = session_with_bench
    assert store.close_workout(session.id, end_time=session.start_time + 3600, notes="good")
    assert session.end_time == session.start_time + 3600
    assert session.is_ongoing is False
    assert session.notes == "good"
    assert store.close_workout("missing") is False


def test_delete_workout_is_idempotent(store, session_with_bench):
    session, _ = session_with_bench
    other = store.start_workout(store.workout_types[1])
    assert store.delete_workout(session.id)
    once = _state(store)
    assert store.delete_workout(session.id) is False
    assert _state(store) == once
    assert store.workouts == [other]


def test_add_custom_field_appends_to_notes(store, session_with_bench):
    session, _ = session_with_bench
    store.add_custom_field(session.id, "Mood", "Great")
    store.add_custom_field(session.id, "Sleep", "7h")
    assert session.notes == "\nMood: Great\nSleep: 7h"
    assert store.add_custom_field("missing", "a", "b") is False


def test_multiple_ongoing_sessions_allowed(store):
    chest = store.workout_types[0]
    store.start_workout(chest, date=10.0)
    latest = store.start_workout(chest, date=20.0)
    assert sum(s.is_ongoing for s in store.workouts) == 2
    assert store.ongoing_workout() is latest


def test_completed_workouts(store, session_with_bench):
    session, _ = session_with_bench
    store.start_workout(store.workout_types[1])
    store.close_workout(session.id)
    assert store.completed_workouts() == [session]


def test_exercises_for_type_search(store):
    legs = store.workout_types[2]
    names = [e.name for e in store.exercises_for_type(legs.id)]
    assert names == ["Squat", "Deadlift"]
    assert [e.name for e in store.exercises_for_type(legs.id, "SQU")] == ["Squat"]
    assert store.exercises_for_type(legs.id, "bench") == []


def test_timers_sweep(store):
    store.add_timer("rest", 60, now=1000.0)
    keep = store.add_timer("long rest", 300, now=1000.0)
    assert store.remove_expired_timers(now=1100.0) == 1
    assert store.active_timers == [keep]
    assert store.remove_expired_timers(now=1100.0) == 0
    assert keep.remaining(now=1200.0) == 100


def test_mark_exported_to_health_only_grows(store):
    store.mark_exported_to_health(3)
    store.mark_exported_to_health(-5)
    store.mark_exported_to_health(2)
    status = store.health_export_status
    assert status.workouts_exported == 5
    assert status.last_exported_at is not None


def test_on_change_notifications(store, session_with_bench):
    session, bench = session_with_bench
    seen = []
    store.bind(on_change=lambda _store, collection: seen.append(collection))
    store.add_set(session.id, bench.id, 50, 5)
    store.add_set("missing", bench.id, 50, 5)
    store.add_gym_location("Gym", "Street", 1.0, 2.0)
    store.add_timer("rest", 30)
    assert seen == ["workouts", "gym_locations", "active_timers"]


def test_update_theme_persists(store, tmp_path):
    store.update_theme(ThemePreference.DARK)
    assert store.settings.theme is ThemePreference.DARK
    reloaded = WorkoutStore(data_path=tmp_path / "workout-data.json")
    assert reloaded.settings.theme is ThemePreference.DARK
