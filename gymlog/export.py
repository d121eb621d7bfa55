"""CSV export of logged sets.

The document holds one row per set ordered by session, exercise and the
order the sets were added.  It is meant for spreadsheets and is never read
back by the application.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from gymlog.models import WorkoutSession

CSV_HEADER = ["Date", "Type", "Exercise", "Set", "Weight", "Reps", "Notes"]

# Short local date and time, e.g. ``08/22/25 14:37``.  Fixed numeric style,
# independent of the process locale.
SHORT_DATE_FORMAT = "%m/%d/%y %H:%M"

EXPORT_FILENAME = "workouts.csv"


def make_export_name() -> str:
    """Return an auto-generated export filename.

    The name follows the format ``workouts_YYYY_MM_DD_HH__MM__SS.csv`` using
    the current local time.
    """
    return datetime.now().strftime("workouts_%Y_%m_%d_%H__%M__%S.csv")


def workouts_to_csv(sessions: Iterable[WorkoutSession]) -> str:
    """Return the CSV document for ``sessions``."""

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for session in sessions:
        date = datetime.fromtimestamp(session.start_time).strftime(SHORT_DATE_FORMAT)
        for entry in session.exercises:
            for number, set_entry in enumerate(entry.sets, 1):
                writer.writerow(
                    [
                        date,
                        session.workout_type.name,
                        entry.exercise.name,
                        number,
                        set_entry.weight,
                        set_entry.reps,
                        set_entry.notes or "",
                    ]
                )
    return buf.getvalue()


def export_csv(
    sessions: Iterable[WorkoutSession],
    dest_dir: Path,
    filename: str = EXPORT_FILENAME,
) -> Path | None:
    """Write the CSV document to ``dest_dir`` and return its path.

    File-system errors are logged with full stack traces and ``None`` is
    returned so the caller can tell the user the export did not happen.
    """

    dest = (Path(dest_dir) / filename).resolve()
    tmp = dest.with_suffix(".tmp")
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(workouts_to_csv(sessions), encoding="utf-8")
        tmp.replace(dest)
    except PermissionError:
        logging.exception("Permission denied writing CSV export to %s", dest)
        return None
    except OSError:
        logging.exception("CSV export failed: %s", dest)
        return None
    logging.info("Exported workouts CSV to %s", dest)
    return dest
