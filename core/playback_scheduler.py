"""
Playback scheduler module for the Word Stream Reader application.
Advances a stream session word by word on a single-shot Qt timer.
"""

from typing import Optional

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal

from core.errors import SourceUnavailable
from core.stream_session import StreamSession
from core.timing import TimingConfig, get_chunk_delay


class PlaybackScheduler(QObject):
    """
    Drives playback of a stream session.

    While playing, the current word (or chunk of words) stays on screen for the
    delay computed from the timing settings, then the session advances. Pausing
    stops the timer and invalidates any timeout that is already queued, so no
    advance happens after pause() returns.
    """

    # Signal emitted when playback starts or stops
    playing_changed = pyqtSignal(bool)
    # Signal emitted with the new global index after each automatic advance
    word_advanced = pyqtSignal(int)
    # Signal emitted when the end of the document is reached
    finished = pyqtSignal()
    # Signal emitted when playback stops because words could not be loaded
    stalled = pyqtSignal(str)

    def __init__(self, session: StreamSession, timing: Optional[TimingConfig] = None, parent=None):
        """
        Initialize the scheduler.

        Args:
            session: The session to advance.
            timing: Timing settings. If None, uses the defaults.
            parent: Parent QObject.
        """
        super().__init__(parent)
        self.session = session
        self.timing = timing or TimingConfig()
        self.is_playing = False

        # Incremented on every play/pause so a queued timeout can tell it is stale
        self._generation = 0
        self._scheduled_generation = -1
        # Number of words on screen for the pending delay
        self._shown_count = 0

        self.timer = QTimer(self)
        self.timer.setSingleShot(True)
        self.timer.setTimerType(Qt.TimerType.PreciseTimer)
        self.timer.timeout.connect(self._on_timeout)

    def set_timing(self, timing: TimingConfig):
        """Replace the timing settings. Takes effect from the next word."""
        self.timing = timing

    def play(self):
        """Start or resume playback from the current position."""
        if self.is_playing or not self.session.is_open:
            return
        if self.session.current_word() is None:
            self.finished.emit()
            return

        self.is_playing = True
        self._generation += 1
        self.playing_changed.emit(True)
        self._schedule_next()

    def pause(self):
        """Pause playback. The pending advance, if any, is cancelled."""
        if not self.is_playing:
            return
        self._halt()
        self.playing_changed.emit(False)

    def toggle(self):
        """Toggle between playing and paused."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def reschedule(self):
        """
        Restart the delay for the current word.
        Called after the position was changed by hand while playing.
        """
        if not self.is_playing:
            return
        self._generation += 1
        self.timer.stop()
        self._schedule_next()

    def _halt(self):
        self.is_playing = False
        self._generation += 1
        self.timer.stop()

    def _schedule_next(self):
        chunk = self.session.current_chunk(self.timing.chunk_size)
        if not chunk:
            self._finish()
            return

        delay = get_chunk_delay(chunk, self.timing)
        self._shown_count = len(chunk)
        self._scheduled_generation = self._generation
        self.timer.start(max(0, int(round(delay))))

    def _on_timeout(self):
        if not self.is_playing or self._scheduled_generation != self._generation:
            return

        try:
            # A chunk cut short at the window end advances only past what was shown
            self.session.advance(self._shown_count)
        except SourceUnavailable as e:
            print(f"Playback stopped, could not load more words: {str(e)}")
            self.pause()
            self.stalled.emit("Could not load more content")
            return

        if self.session.complete:
            self._finish()
            return

        self.word_advanced.emit(self.session.global_index)
        if self.is_playing:
            self._schedule_next()

    def _finish(self):
        was_playing = self.is_playing
        self._halt()
        if was_playing:
            self.playing_changed.emit(False)
        print("Playback finished")
        self.finished.emit()
