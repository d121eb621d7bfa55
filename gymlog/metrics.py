"""Derived workout statistics.

All helpers are pure functions over the in-memory collections and are
recomputed on every call.  Calendar days use the local timezone.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from gymlog.models import Exercise, MetricSnapshot, WorkoutSession


def _local_day(timestamp: float):
    return datetime.fromtimestamp(timestamp).date()


def streak_count(sessions: Sequence[WorkoutSession]) -> int:
    """Return the number of consecutive days trained.

    Counting starts at the day of the most recent session and walks back one
    calendar day at a time.  Several sessions on the same day count once and
    the first missing day ends the streak.
    """

    ordered = sorted(sessions, key=lambda s: s.start_time, reverse=True)
    if not ordered:
        return 0
    streak = 1
    current = _local_day(ordered[0].start_time)
    for session in ordered[1:]:
        day = _local_day(session.start_time)
        previous = current - timedelta(days=1)
        if day == previous:
            streak += 1
            current = day
        elif day < previous:
            break
    return streak


def workouts_last(
    sessions: Iterable[WorkoutSession], days: int, now: float | None = None
) -> int:
    """Count sessions started within the trailing ``days`` days."""

    now = time.time() if now is None else now
    cutoff = (datetime.fromtimestamp(now) - timedelta(days=days)).timestamp()
    return sum(1 for s in sessions if s.start_time >= cutoff)


def personal_record(
    sessions: Iterable[WorkoutSession], exercise_id: str
) -> Optional[float]:
    """Return the heaviest weight logged for ``exercise_id``."""

    weights = [
        s.weight
        for session in sessions
        for entry in session.exercises
        if entry.exercise.id == exercise_id
        for s in entry.sets
    ]
    return max(weights) if weights else None


def estimated_one_rep_max(weight: float, reps: int) -> float:
    """Estimate a one rep max from ``weight`` lifted for ``reps``.

    Uses ``weight / (1.0278 - 0.0278 * reps)``; the result is never lower
    than ``weight`` itself.
    """

    return max(weight / (1.0278 - 0.0278 * reps), weight)


def pr_map(
    sessions: Sequence[WorkoutSession], exercises: Iterable[Exercise]
) -> Dict[str, float]:
    """Map exercise ids to their personal record, skipping unused ones."""

    result: Dict[str, float] = {}
    for exercise in exercises:
        best = personal_record(sessions, exercise.id)
        if best is not None:
            result[exercise.id] = best
    return result


def workout_duration_minutes(session: WorkoutSession) -> Optional[float]:
    if session.end_time is None:
        return None
    return (session.end_time - session.start_time) / 60


def average_duration_minutes(sessions: Iterable[WorkoutSession]) -> float:
    """Mean length of completed sessions in minutes, ``0`` when none."""

    durations: List[float] = [
        d for d in (workout_duration_minutes(s) for s in sessions) if d is not None
    ]
    if not durations:
        return 0
    return sum(durations) / len(durations)


def snapshot_metrics(
    sessions: Sequence[WorkoutSession],
    exercises: Iterable[Exercise],
    now: float | None = None,
) -> MetricSnapshot:
    now = time.time() if now is None else now
    return MetricSnapshot(
        date=now,
        workouts_this_week=workouts_last(sessions, 7, now=now),
        workouts_this_month=workouts_last(sessions, 30, now=now),
        streak_days=streak_count(sessions),
        pr_map=pr_map(sessions, exercises),
        average_duration_minutes=average_duration_minutes(sessions),
    )
