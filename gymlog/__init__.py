"""Shared constants and defaults for the gymlog modules."""

from __future__ import annotations

from pathlib import Path

# Directory holding the persisted payload and settings file
DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Path to the JSON document mirroring the whole store
DEFAULT_DATA_PATH = DEFAULT_DATA_DIR / "workout-data.json"

# Key under which the payload is mirrored in the cloud key-value store
CLOUD_PAYLOAD_KEY = "workoutPayload"

# Quiet period in seconds before a change is written to disk
AUTOSAVE_DELAY = 1.0

# Radius in meters used when a gym location is added without one
DEFAULT_GYM_RADIUS = 100.0

# Catalog of rest timer presets available before the user edits anything
DEFAULT_TIMER_PRESETS = [
    ("60s", 60),
    ("90s", 90),
    ("2m", 120),
]

# Seed data used when no readable payload exists
DEFAULT_WORKOUT_TYPES = ["Chest", "Arms", "Legs", "Core", "Cardio", "HIIT"]

# (name, workout type name, default weight, default reps)
DEFAULT_EXERCISES = [
    ("Bench Press", "Chest", 45.0, 8),
    ("Squat", "Legs", 95.0, 8),
    ("Deadlift", "Legs", 135.0, 5),
]

__all__ = [
    "DEFAULT_DATA_DIR",
    "DEFAULT_DATA_PATH",
    "CLOUD_PAYLOAD_KEY",
    "AUTOSAVE_DELAY",
    "DEFAULT_GYM_RADIUS",
    "DEFAULT_TIMER_PRESETS",
    "DEFAULT_WORKOUT_TYPES",
    "DEFAULT_EXERCISES",
]
