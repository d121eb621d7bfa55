"""In-memory workout store.

:class:`WorkoutStore` owns every collection of the application and is the
only place where they are changed.  All methods are meant to be called from
one thread (the Kivy main loop in the app).  Observers subscribe to the
``on_change`` event which is dispatched with the name of the collection that
changed::

    store.bind(on_change=lambda store, collection: refresh(collection))

Operations addressing a session, exercise entry or set by id never raise when
the id is unknown.  They leave the state untouched and return ``False``;
successful calls return ``True``.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

from kivy.clock import Clock
from kivy.event import EventDispatcher

from gymlog import AUTOSAVE_DELAY, CLOUD_PAYLOAD_KEY, DEFAULT_DATA_PATH, DEFAULT_GYM_RADIUS
from gymlog import export, metrics
from gymlog.autosave import AutosaveScheduler
from gymlog.cloud import InMemoryKeyValueStore, KeyValueStore
from gymlog.models import (
    Exercise,
    ExerciseEntry,
    GymLocation,
    HealthExportStatus,
    MetricSnapshot,
    RestTimer,
    SetEntry,
    TimerPreset,
    WorkoutSession,
    WorkoutType,
    new_id,
)
from gymlog.persistence import (
    LocalFile,
    Payload,
    PayloadError,
    decode_payload,
    default_timer_presets,
    encode_payload,
    seed_payload,
)
from gymlog.settings import Settings, ThemePreference

# Collections whose changes schedule a save.
AUTOSAVE_COLLECTIONS = frozenset(
    {"workouts", "gym_locations", "workout_types", "exercises", "timer_presets"}
)


class WorkoutStore(EventDispatcher):
    """Single owner of the workout data, its persistence and metrics."""

    __events__ = ("on_change",)

    def __init__(
        self,
        data_path: Path = DEFAULT_DATA_PATH,
        cloud: KeyValueStore | None = None,
        settings: Settings | None = None,
        autosave_delay: float = AUTOSAVE_DELAY,
        clock=Clock,
        background_saves: bool = True,
    ) -> None:
        super().__init__()
        self.local = LocalFile(data_path)
        self.cloud = cloud if cloud is not None else InMemoryKeyValueStore()
        self.settings = (
            settings
            if settings is not None
            else Settings(self.local.path.parent / "settings.json")
        )

        self.workout_types: List[WorkoutType] = []
        self.exercises: List[Exercise] = []
        self.workouts: List[WorkoutSession] = []
        self.gym_locations: List[GymLocation] = []
        self.timer_presets: List[TimerPreset] = default_timer_presets()
        self.health_export_status = HealthExportStatus()
        self.active_timers: List[RestTimer] = []

        self.autosave = AutosaveScheduler(
            self._encode_state,
            self._write_payload,
            delay=autosave_delay,
            clock=clock,
            background=background_saves,
        )
        self._autosave_uid = None

    def on_change(self, collection: str) -> None:
        """Default handler for the ``on_change`` event."""

    def _changed(self, collection: str) -> None:
        self.dispatch("on_change", collection)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_workout(self, session_id: str) -> Optional[WorkoutSession]:
        for session in self.workouts:
            if session.id == session_id:
                return session
        return None

    def _find_set(
        self, session_id: str, exercise_id: str, set_id: str
    ) -> tuple[Optional[WorkoutSession], Optional[SetEntry]]:
        session = self.find_workout(session_id)
        entry = session.find_entry(exercise_id) if session else None
        if entry is None:
            return None, None
        for set_entry in entry.sets:
            if set_entry.id == set_id:
                return session, set_entry
        return None, None

    def ongoing_workout(self) -> Optional[WorkoutSession]:
        """Return the most recently started session still in progress."""

        for session in self.workouts:
            if session.is_ongoing:
                return session
        return None

    def completed_workouts(self) -> List[WorkoutSession]:
        return [s for s in self.workouts if not s.is_ongoing]

    def exercises_for_type(self, workout_type_id: str, search: str = "") -> List[Exercise]:
        """Return library exercises of a type whose name contains ``search``."""

        needle = search.casefold()
        return [
            e
            for e in self.exercises
            if e.workout_type_id == workout_type_id
            and (not needle or needle in e.name.casefold())
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _touch(self, session: WorkoutSession) -> None:
        session.updated_at = time.time()
        self._changed("workouts")

    def start_workout(
        self,
        workout_type: WorkoutType,
        date: float | None = None,
        gym: GymLocation | None = None,
    ) -> WorkoutSession:
        """Begin a new ongoing session and put it first in :attr:`workouts`.

        Other ongoing sessions are left alone, so calling this twice yields
        two ongoing sessions.
        """

        date = time.time() if date is None else date
        session = WorkoutSession(
            workout_type=copy.deepcopy(workout_type),
            start_time=date,
            gym_location=copy.deepcopy(gym),
            created_at=date,
            updated_at=date,
        )
        self.workouts.insert(0, session)
        self._changed("workouts")
        return session

    def add_workout_type(self, name: str) -> WorkoutType:
        workout_type = WorkoutType(name)
        self.workout_types.append(workout_type)
        self._changed("workout_types")
        return workout_type

    def add_exercise(
        self,
        name: str,
        workout_type: WorkoutType,
        default_weight: float | None = None,
        default_reps: int | None = None,
    ) -> Exercise:
        exercise = Exercise(
            name,
            workout_type.id,
            default_weight=default_weight,
            default_reps=default_reps,
        )
        self.exercises.append(exercise)
        self._changed("exercises")
        return exercise

    def add_exercise_to_workout(self, session_id: str, exercise: Exercise) -> bool:
        session = self.find_workout(session_id)
        if session is None:
            return False
        session.exercises.append(ExerciseEntry(copy.deepcopy(exercise)))
        self._touch(session)
        return True

    def add_set(
        self,
        session_id: str,
        exercise_id: str,
        weight: float,
        reps: int,
        custom_fields: Dict[str, str] | None = None,
    ) -> bool:
        session = self.find_workout(session_id)
        entry = session.find_entry(exercise_id) if session else None
        if entry is None:
            return False
        entry.sets.append(SetEntry(weight, reps, custom_fields=dict(custom_fields or {})))
        self._touch(session)
        return True

    def update_set(
        self,
        session_id: str,
        exercise_id: str,
        set_id: str,
        weight: float,
        reps: int,
        rpe: float | None,
        notes: str | None,
        custom_fields: Dict[str, str],
    ) -> bool:
        session, set_entry = self._find_set(session_id, exercise_id, set_id)
        if set_entry is None:
            return False
        set_entry.weight = weight
        set_entry.reps = reps
        set_entry.rpe = rpe
        set_entry.notes = notes
        set_entry.custom_fields = dict(custom_fields)
        self._touch(session)
        return True

    def quick_add_sets(
        self, session_id: str, exercise_id: str, template: SetEntry, count: int
    ) -> bool:
        """Append ``count`` copies of ``template``, each with its own id."""

        session = self.find_workout(session_id)
        entry = session.find_entry(exercise_id) if session else None
        if entry is None:
            return False
        for _ in range(count):
            entry.sets.append(
                dataclasses.replace(
                    template, id=new_id(), custom_fields=dict(template.custom_fields)
                )
            )
        self._touch(session)
        return True

    def close_workout(
        self, session_id: str, end_time: float | None = None, notes: str = ""
    ) -> bool:
        session = self.find_workout(session_id)
        if session is None:
            return False
        session.end_time = time.time() if end_time is None else end_time
        session.is_ongoing = False
        session.notes = notes
        self._touch(session)
        return True

    def delete_workout(self, session_id: str) -> bool:
        remaining = [s for s in self.workouts if s.id != session_id]
        if len(remaining) == len(self.workouts):
            return False
        self.workouts = remaining
        self._changed("workouts")
        return True

    def add_custom_field(self, session_id: str, key: str, value: str) -> bool:
        """Append ``key: value`` as a new line of the session notes."""

        session = self.find_workout(session_id)
        if session is None:
            return False
        session.notes += f"\n{key}: {value}"
        self._touch(session)
        return True

    def add_gym_location(
        self,
        label: str,
        address: str,
        latitude: float,
        longitude: float,
        radius: float = DEFAULT_GYM_RADIUS,
    ) -> GymLocation:
        location = GymLocation(label, address, latitude, longitude, radius)
        self.gym_locations.append(location)
        self._changed("gym_locations")
        return location

    def add_timer(self, label: str, duration: float, now: float | None = None) -> RestTimer:
        now = time.time() if now is None else now
        timer = RestTimer(label, duration, expires_at=now + duration)
        self.active_timers.append(timer)
        self._changed("active_timers")
        return timer

    def remove_expired_timers(self, now: float | None = None) -> int:
        """Drop timers that expired before ``now`` and return how many.

        Nothing calls this automatically; the caller sweeps periodically.
        """

        now = time.time() if now is None else now
        alive = [t for t in self.active_timers if t.expires_at >= now]
        removed = len(self.active_timers) - len(alive)
        if removed:
            self.active_timers = alive
            self._changed("active_timers")
        return removed

    def mark_exported_to_health(self, count: int) -> None:
        """Record that ``count`` workouts were handed to the health service."""

        self.health_export_status.last_exported_at = time.time()
        self.health_export_status.workouts_exported += max(0, count)
        self._changed("health_export_status")

    def update_theme(self, preference: ThemePreference | str) -> None:
        self.settings.theme = preference

    def export_csv(self, dest_dir: Path | None = None) -> Path | None:
        """Write ``workouts.csv`` next to the data file unless told otherwise."""

        return export.export_csv(self.workouts, dest_dir or self.local.path.parent)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def streak_count(self) -> int:
        return metrics.streak_count(self.workouts)

    def workouts_last(self, days: int) -> int:
        return metrics.workouts_last(self.workouts, days)

    def pr(self, exercise_id: str) -> Optional[float]:
        return metrics.personal_record(self.workouts, exercise_id)

    @staticmethod
    def estimated_one_rep_max(weight: float, reps: int) -> float:
        return metrics.estimated_one_rep_max(weight, reps)

    def pr_map(self) -> Dict[str, float]:
        return metrics.pr_map(self.workouts, self.exercises)

    def average_duration_minutes(self) -> float:
        return metrics.average_duration_minutes(self.workouts)

    def snapshot_metrics(self) -> MetricSnapshot:
        return metrics.snapshot_metrics(self.workouts, self.exercises)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Load saved data, begin autosaving and apply the cloud copy.

        A save is always scheduled so freshly seeded data keeps its ids
        across launches.
        """

        self.load()
        self.observe_autosave()
        self.autosave.schedule()
        self.sync_from_cloud()

    def stop(self) -> None:
        """Stop autosaving after writing any pending change."""

        if self._autosave_uid is not None:
            self.unbind_uid("on_change", self._autosave_uid)
            self._autosave_uid = None
        self.autosave.flush()

    def payload(self) -> Payload:
        return Payload(
            workout_types=self.workout_types,
            exercises=self.exercises,
            workouts=self.workouts,
            gym_locations=self.gym_locations,
            health_export_status=self.health_export_status,
            timer_presets=self.timer_presets,
        )

    def _encode_state(self) -> bytes:
        return encode_payload(self.payload())

    def _apply(self, payload: Payload) -> None:
        self.workout_types = payload.workout_types
        self.exercises = payload.exercises
        self.workouts = payload.workouts
        self.gym_locations = payload.gym_locations
        self.health_export_status = payload.health_export_status
        self.timer_presets = payload.timer_presets
        for collection in (
            "workout_types",
            "exercises",
            "workouts",
            "gym_locations",
            "health_export_status",
            "timer_presets",
        ):
            self._changed(collection)

    def _seed_defaults(self) -> None:
        seed = seed_payload()
        self.workout_types = seed.workout_types
        self.exercises = seed.exercises
        self.workouts = []
        self.gym_locations = []
        for collection in ("workout_types", "exercises", "workouts", "gym_locations"):
            self._changed(collection)

    def load(self) -> bool:
        """Replace the state with the local file, or seed data if unusable.

        Returns ``True`` when the file was read.
        """

        payload = self.local.load()
        if payload is None:
            logging.info("Starting from default workout data")
            self._seed_defaults()
            return False
        self._apply(payload)
        return True

    def sync_from_cloud(self) -> bool:
        """Overwrite the state with the cloud copy when one is available."""

        self.cloud.synchronize()
        data = self.cloud.get_data(CLOUD_PAYLOAD_KEY)
        if data is None:
            return False
        try:
            payload = decode_payload(data)
        except PayloadError as exc:
            logging.error("Cloud payload decode failed: %s", exc)
            return False
        self._apply(payload)
        return True

    def observe_autosave(self) -> None:
        if self._autosave_uid is None:
            self._autosave_uid = self.fbind("on_change", self._schedule_autosave)

    def _schedule_autosave(self, _store, collection: str) -> None:
        if collection in AUTOSAVE_COLLECTIONS:
            self.autosave.schedule()

    def save(self) -> None:
        """Start writing the current state without waiting for the countdown."""

        self.autosave.save_now()

    def flush(self) -> None:
        self.autosave.flush()

    def _write_payload(self, data: bytes) -> None:
        try:
            self.local.write(data)
            self.cloud.set_data(CLOUD_PAYLOAD_KEY, data)
            self.cloud.synchronize()
        except Exception:
            logging.exception("Save failed")
