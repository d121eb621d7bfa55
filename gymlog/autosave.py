"""Debounced background saving.

Every change restarts a short countdown on the Kivy :class:`~kivy.clock.Clock`
so a burst of edits produces a single write once the user pauses.  When the
countdown fires the payload is encoded on the calling thread and the write
itself runs on a worker thread.  A newer save cancels the previous job if it
has not started writing yet; a write already in progress always completes.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from kivy.clock import Clock

from gymlog import AUTOSAVE_DELAY


class SaveJob:
    """A single write of an already encoded payload."""

    def __init__(
        self,
        data: bytes,
        write: Callable[[bytes], None],
        lock: threading.Lock | None = None,
    ) -> None:
        self.data = data
        self._write = write
        self._lock = lock or threading.Lock()
        self._cancelled = threading.Event()
        self.started = False
        self.finished = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Request cancellation.  Has no effect once writing started."""

        self._cancelled.set()

    def run(self) -> None:
        try:
            # jobs write one at a time so an older payload never lands last
            with self._lock:
                if self.cancelled:
                    logging.debug("Skipping superseded save")
                    return
                self.started = True
                self._write(self.data)
        finally:
            self.finished.set()


class AutosaveScheduler:
    """Trailing debounce around a ``snapshot`` and a ``write`` callable.

    ``snapshot`` returns the encoded payload and is called when the quiet
    period ends.  ``write`` persists those bytes and is expected to handle
    its own errors.  ``clock`` only needs ``schedule_once`` returning an
    event with ``cancel``.  With ``background=False`` jobs run inline.
    """

    def __init__(
        self,
        snapshot: Callable[[], bytes],
        write: Callable[[bytes], None],
        delay: float = AUTOSAVE_DELAY,
        clock=Clock,
        background: bool = True,
    ) -> None:
        self.snapshot = snapshot
        self.write = write
        self.delay = delay
        self.clock = clock
        self.background = background
        self._event = None
        self._job: SaveJob | None = None
        self._thread: threading.Thread | None = None
        self._write_lock = threading.Lock()

    @property
    def pending(self) -> bool:
        """``True`` while a countdown is running."""
        return self._event is not None

    def schedule(self, *_args) -> None:
        """Restart the countdown, superseding any earlier save."""

        if self._event:
            self._event.cancel()
        if self._job is not None:
            self._job.cancel()
        self._event = self.clock.schedule_once(self._fire, self.delay)

    def _fire(self, _dt) -> None:
        self._event = None
        self._start(SaveJob(self.snapshot(), self.write, self._write_lock))

    def _start(self, job: SaveJob) -> None:
        self._job = job
        if not self.background:
            job.run()
            return
        self._thread = threading.Thread(target=job.run, name="autosave", daemon=True)
        self._thread.start()

    def save_now(self) -> SaveJob:
        """Skip the countdown and start a save straight away."""

        self.cancel()
        job = SaveJob(self.snapshot(), self.write, self._write_lock)
        self._start(job)
        return job

    def flush(self) -> None:
        """Write immediately if a countdown is pending and wait for it."""

        if self._event:
            self.save_now()
        self.wait()

    def cancel(self) -> None:
        """Drop the pending countdown and any job that has not started."""

        if self._event:
            self._event.cancel()
            self._event = None
        if self._job is not None:
            self._job.cancel()

    def wait(self, timeout: float | None = None) -> None:
        """Block until the most recent job has finished."""

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
