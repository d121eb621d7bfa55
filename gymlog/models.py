"""Entities recorded by the workout store.

Every class converts to and from plain dictionaries so the whole store can be
written as a single JSON document.  Optional values are left out of the
dictionaries when unset and read back as ``None`` when missing.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from gymlog import DEFAULT_GYM_RADIUS


def new_id() -> str:
    """Return a fresh random identifier."""

    return str(uuid.uuid4())


def _put_optional(data: dict, key: str, value) -> None:
    if value is not None:
        data[key] = value


def _number(value, key: str):
    # bool is an int subclass but never a valid measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number, not {type(value).__name__}")
    return value


def _optional_number(value, key: str):
    return None if value is None else _number(value, key)


def _text(value, key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, not {type(value).__name__}")
    return value


def _optional_text(value, key: str) -> Optional[str]:
    return None if value is None else _text(value, key)


def _flag(value, key: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be a boolean, not {type(value).__name__}")
    return value


def _fields(value, key: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise TypeError(f"{key} must be an object, not {type(value).__name__}")
    return {_text(k, key): _text(v, key) for k, v in value.items()}


@dataclass
class WorkoutType:
    name: str
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutType":
        return cls(name=_text(data["name"], "name"), id=_text(data["id"], "id"))


@dataclass
class Exercise:
    """Library exercise belonging to a workout type.

    ``workout_type_id`` is not checked against the known types.
    """

    name: str
    workout_type_id: str
    default_weight: Optional[float] = None
    default_reps: Optional[int] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "workout_type_id": self.workout_type_id,
        }
        _put_optional(data, "default_weight", self.default_weight)
        _put_optional(data, "default_reps", self.default_reps)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Exercise":
        return cls(
            name=_text(data["name"], "name"),
            workout_type_id=_text(data["workout_type_id"], "workout_type_id"),
            default_weight=_optional_number(data.get("default_weight"), "default_weight"),
            default_reps=_optional_number(data.get("default_reps"), "default_reps"),
            id=_text(data["id"], "id"),
        )


@dataclass
class SetEntry:
    weight: float
    reps: int
    rpe: Optional[float] = None
    notes: Optional[str] = None
    custom_fields: Dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        data = {"id": self.id, "weight": self.weight, "reps": self.reps}
        _put_optional(data, "rpe", self.rpe)
        _put_optional(data, "notes", self.notes)
        data["custom_fields"] = dict(self.custom_fields)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SetEntry":
        return cls(
            weight=_number(data["weight"], "weight"),
            reps=_number(data["reps"], "reps"),
            rpe=_optional_number(data.get("rpe"), "rpe"),
            notes=_optional_text(data.get("notes"), "notes"),
            custom_fields=_fields(data.get("custom_fields", {}), "custom_fields"),
            id=_text(data["id"], "id"),
        )


@dataclass
class ExerciseEntry:
    """Sets logged for one exercise inside a session.

    ``exercise`` is a copy taken when the entry was created and does not
    follow later edits of the library exercise.
    """

    exercise: Exercise
    sets: List[SetEntry] = field(default_factory=list)
    custom_fields: Dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "exercise": self.exercise.to_dict(),
            "sets": [s.to_dict() for s in self.sets],
            "custom_fields": dict(self.custom_fields),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseEntry":
        return cls(
            exercise=Exercise.from_dict(data["exercise"]),
            sets=[SetEntry.from_dict(s) for s in data.get("sets", [])],
            custom_fields=_fields(data.get("custom_fields", {}), "custom_fields"),
            id=_text(data["id"], "id"),
        )


@dataclass
class GymLocation:
    label: str
    address: str
    latitude: float
    longitude: float
    radius: float = DEFAULT_GYM_RADIUS
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius": self.radius,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GymLocation":
        return cls(
            label=_text(data["label"], "label"),
            address=_text(data["address"], "address"),
            latitude=_number(data["latitude"], "latitude"),
            longitude=_number(data["longitude"], "longitude"),
            radius=_number(data.get("radius", DEFAULT_GYM_RADIUS), "radius"),
            id=_text(data["id"], "id"),
        )


@dataclass
class WorkoutSession:
    """One recorded workout.

    ``workout_type`` and ``gym_location`` are snapshots embedded in the
    session.  Times are POSIX timestamps; ``end_time`` stays ``None`` while
    the session is ongoing.
    """

    workout_type: WorkoutType
    exercises: List[ExerciseEntry] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    is_ongoing: bool = True
    gym_location: Optional[GymLocation] = None
    notes: str = ""
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    id: str = field(default_factory=new_id)

    def find_entry(self, exercise_id: str) -> Optional[ExerciseEntry]:
        """Return the first entry logging ``exercise_id`` if any."""

        for entry in self.exercises:
            if entry.exercise.id == exercise_id:
                return entry
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "workout_type": self.workout_type.to_dict(),
            "exercises": [e.to_dict() for e in self.exercises],
            "start_time": self.start_time,
            "is_ongoing": self.is_ongoing,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        _put_optional(data, "end_time", self.end_time)
        if self.gym_location is not None:
            data["gym_location"] = self.gym_location.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutSession":
        gym = data.get("gym_location")
        start_time = _number(data["start_time"], "start_time")
        return cls(
            workout_type=WorkoutType.from_dict(data["workout_type"]),
            exercises=[ExerciseEntry.from_dict(e) for e in data.get("exercises", [])],
            start_time=start_time,
            end_time=_optional_number(data.get("end_time"), "end_time"),
            is_ongoing=_flag(data.get("is_ongoing", True), "is_ongoing"),
            gym_location=GymLocation.from_dict(gym) if gym is not None else None,
            notes=_text(data.get("notes", ""), "notes"),
            created_at=_number(data.get("created_at", start_time), "created_at"),
            updated_at=_number(data.get("updated_at", start_time), "updated_at"),
            id=_text(data["id"], "id"),
        )


@dataclass
class TimerPreset:
    name: str
    seconds: int
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "seconds": self.seconds}

    @classmethod
    def from_dict(cls, data: dict) -> "TimerPreset":
        return cls(
            name=_text(data["name"], "name"),
            seconds=_number(data["seconds"], "seconds"),
            id=_text(data["id"], "id"),
        )


@dataclass
class RestTimer:
    """Running rest countdown.  Kept in memory only."""

    label: str
    duration: float
    expires_at: float
    id: str = field(default_factory=new_id)

    def remaining(self, now: float | None = None) -> float:
        """Return seconds left before expiry, never negative."""

        now = time.time() if now is None else now
        return max(0.0, self.expires_at - now)


@dataclass
class HealthExportStatus:
    last_exported_at: Optional[float] = None
    workouts_exported: int = 0

    def to_dict(self) -> dict:
        data = {"workouts_exported": self.workouts_exported}
        _put_optional(data, "last_exported_at", self.last_exported_at)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "HealthExportStatus":
        return cls(
            last_exported_at=_optional_number(
                data.get("last_exported_at"), "last_exported_at"
            ),
            workouts_exported=_number(data.get("workouts_exported", 0), "workouts_exported"),
        )


@dataclass(frozen=True)
class MetricSnapshot:
    """Derived metrics computed at ``date``."""

    date: float
    workouts_this_week: int
    workouts_this_month: int
    streak_days: int
    pr_map: Dict[str, float]
    average_duration_minutes: float
    id: str = field(default_factory=new_id)
