"""Reading and writing the persisted workout payload.

The whole store is written as one JSON document.  The local copy is replaced
using a temporary file followed by an atomic rename so a crash never leaves a
half written payload behind.  Readers fall back to seed data when the file is
missing or cannot be decoded.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from gymlog import (
    DEFAULT_DATA_PATH,
    DEFAULT_EXERCISES,
    DEFAULT_TIMER_PRESETS,
    DEFAULT_WORKOUT_TYPES,
)
from gymlog.models import (
    Exercise,
    GymLocation,
    HealthExportStatus,
    TimerPreset,
    WorkoutSession,
    WorkoutType,
)


class PayloadError(ValueError):
    """Raised when bytes do not hold a valid payload document."""


@dataclass
class Payload:
    """Snapshot of every persisted collection."""

    workout_types: List[WorkoutType] = field(default_factory=list)
    exercises: List[Exercise] = field(default_factory=list)
    workouts: List[WorkoutSession] = field(default_factory=list)
    gym_locations: List[GymLocation] = field(default_factory=list)
    health_export_status: HealthExportStatus = field(default_factory=HealthExportStatus)
    timer_presets: List[TimerPreset] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "workout_types": [t.to_dict() for t in self.workout_types],
            "exercises": [e.to_dict() for e in self.exercises],
            "workouts": [w.to_dict() for w in self.workouts],
            "gym_locations": [g.to_dict() for g in self.gym_locations],
            "health_export_status": self.health_export_status.to_dict(),
            "timer_presets": [t.to_dict() for t in self.timer_presets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Payload":
        return cls(
            workout_types=[WorkoutType.from_dict(t) for t in data["workout_types"]],
            exercises=[Exercise.from_dict(e) for e in data["exercises"]],
            workouts=[WorkoutSession.from_dict(w) for w in data["workouts"]],
            gym_locations=[GymLocation.from_dict(g) for g in data["gym_locations"]],
            health_export_status=HealthExportStatus.from_dict(
                data["health_export_status"]
            ),
            timer_presets=[TimerPreset.from_dict(t) for t in data["timer_presets"]],
        )


def encode_payload(payload: Payload) -> bytes:
    """Return the UTF-8 JSON encoding of ``payload``."""

    return json.dumps(payload.to_dict()).encode("utf-8")


def decode_payload(data: bytes) -> Payload:
    """Parse ``data`` produced by :func:`encode_payload`.

    Any structural or type problem is reported as :class:`PayloadError` so callers
    only need a single ``except`` clause.
    """

    try:
        raw = json.loads(data.decode("utf-8"))
        if not isinstance(raw, dict):
            raise PayloadError("payload must be a JSON object")
        return Payload.from_dict(raw)
    except PayloadError:
        raise
    except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise PayloadError(str(exc)) from exc


def default_timer_presets() -> List[TimerPreset]:
    return [TimerPreset(name, seconds) for name, seconds in DEFAULT_TIMER_PRESETS]


def seed_payload() -> Payload:
    """Return the starter data used on first launch."""

    types = [WorkoutType(name) for name in DEFAULT_WORKOUT_TYPES]
    by_name = {t.name: t for t in types}
    exercises = [
        Exercise(
            name,
            by_name[type_name].id,
            default_weight=weight,
            default_reps=reps,
        )
        for name, type_name, weight, reps in DEFAULT_EXERCISES
    ]
    return Payload(
        workout_types=types,
        exercises=exercises,
        timer_presets=default_timer_presets(),
    )


class LocalFile:
    """Payload file on the device."""

    def __init__(self, path: Path = DEFAULT_DATA_PATH) -> None:
        self.path = Path(path)

    def read(self) -> bytes:
        return self.path.read_bytes()

    def write(self, data: bytes) -> None:
        """Replace the file contents with ``data`` atomically."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        try:
            os.replace(tmp, self.path)
        except PermissionError:
            # On Windows the destination may be locked if opened by another process.
            with open(self.path, "wb") as dst:
                dst.write(data)
            os.remove(tmp)

    def load(self) -> Payload | None:
        """Return the stored payload or ``None`` when it cannot be used."""

        try:
            return decode_payload(self.read())
        except FileNotFoundError:
            logging.info("No saved data at %s", self.path)
        except OSError:
            logging.exception("Could not read %s", self.path)
        except PayloadError as exc:
            logging.warning("Discarding unreadable data in %s: %s", self.path, exc)
        return None
