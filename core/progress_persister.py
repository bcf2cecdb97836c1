"""
Progress persister module for the Word Stream Reader application.
Saves the reading position of the open source without blocking playback.
"""

import time
from typing import Optional

from PyQt6.QtCore import QObject, QTimer

from core.errors import PersistenceFailure
from core.stream_session import StreamSession
from core.text_processor import TextSource


class ProgressPersister(QObject):
    """
    Writes the session position to the progress store.

    A save happens every SAVE_INTERVAL_MS while playing, immediately on every
    play/pause change, and DEBOUNCE_MS after the last manual position change.
    The position is read from the session when the write runs, not when the
    save was requested. Failed writes are logged and otherwise ignored.
    """

    SAVE_INTERVAL_MS = 2000
    DEBOUNCE_MS = 500

    def __init__(self, session: StreamSession, store, processor=None,
                 save_interval_ms: Optional[int] = None, debounce_ms: Optional[int] = None, parent=None):
        """
        Initialize the persister.

        Args:
            session: The session whose position is saved.
            store: Object with a save_progress(source_id, global_index, timestamp) method.
            processor: BackgroundProcessor running the writes. If None, writes run inline.
            save_interval_ms: Interval of the periodic save. If None, uses SAVE_INTERVAL_MS.
            debounce_ms: Quiet period after manual navigation. If None, uses DEBOUNCE_MS.
            parent: Parent QObject.
        """
        super().__init__(parent)
        self.session = session
        self.store = store
        self.processor = processor
        self.save_count = 0
        self.failure_count = 0

        self.periodic_timer = QTimer(self)
        self.periodic_timer.setInterval(save_interval_ms or self.SAVE_INTERVAL_MS)
        self.periodic_timer.timeout.connect(self.save_now)

        self.debounce_timer = QTimer(self)
        self.debounce_timer.setSingleShot(True)
        self.debounce_timer.setInterval(self.DEBOUNCE_MS if debounce_ms is None else debounce_ms)
        self.debounce_timer.timeout.connect(self.save_now)

    def on_playing_changed(self, playing: bool):
        """Save right away and start or stop the periodic save."""
        self.save_now()
        if playing:
            self.periodic_timer.start()
        else:
            self.periodic_timer.stop()

    def on_position_changed(self):
        """Schedule a save once manual navigation has been quiet for a moment."""
        self.debounce_timer.start()

    def save_now(self):
        """Request a save of the current position."""
        source = self.session.source
        if source is None or not self.session.is_open:
            return

        if self.processor is None:
            self._write(source)
        else:
            # A queued save for the same source already reads the latest position when it runs
            self.processor.add_task(f"save:{source.source_id}", self._write, source)

    def _write(self, source: TextSource):
        with self.session.lock:
            if not self.session.is_open or self.session.source != source:
                return
            global_index = self.session.global_index

        try:
            self.store.save_progress(source.source_id, global_index, time.time())
        except (PersistenceFailure, OSError) as e:
            self.failure_count += 1
            print(f"Failed to save progress: {str(e)}")
            return
        self.save_count += 1

    def flush(self, timeout: float = 2.0):
        """
        Write the current position now, after any queued writes.

        Args:
            timeout: Maximum time to wait for queued writes, in seconds.
        """
        self.debounce_timer.stop()
        if self.processor is not None:
            self.processor.wait_idle(timeout)

        source = self.session.source
        if source is not None:
            self._write(source)

    def stop(self):
        """Stop all timers."""
        self.periodic_timer.stop()
        self.debounce_timer.stop()
