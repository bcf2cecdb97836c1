"""
Reader engine for the Word Stream Reader application.
Ties the word cache, stream session, playback scheduler and progress persister
together behind the operations the user interface calls.
"""

from typing import List, Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal

from core.background_processor import BackgroundProcessor
from core.errors import SourceUnavailable
from core.playback_scheduler import PlaybackScheduler
from core.progress_persister import ProgressPersister
from core.state_manager import StateManager
from core.stream_session import Progress, StreamSession
from core.text_processor import TextProcessor, TextSource
from core.timing import WPM_SAMPLE_SIZE, TimingConfig, get_effective_wpm
from core.word_cache import WordCache


class ReaderEngine(QObject):
    """Plays back one open source word by word and keeps its reading progress."""

    # Signal emitted with the displayed text and its global index when the position changes
    word_changed = pyqtSignal(str, int)
    # Signal emitted when playback starts or stops
    playing_changed = pyqtSignal(bool)
    # Signal emitted when the end of the document is reached
    finished = pyqtSignal()
    # Signal emitted with a message when a source cannot be read
    error_occurred = pyqtSignal(str)
    # Signal emitted with the source details after a successful open
    source_opened = pyqtSignal(dict)
    # Signal emitted after the open source was closed
    source_closed = pyqtSignal()

    def __init__(self, text_processor: Optional[TextProcessor] = None,
                 state_manager: Optional[StateManager] = None,
                 background_processor: Optional[BackgroundProcessor] = None,
                 use_background: bool = True,
                 batch_size: Optional[int] = None,
                 prefetch_threshold: Optional[int] = None,
                 save_interval_ms: Optional[int] = None,
                 debounce_ms: Optional[int] = None,
                 parent=None):
        """
        Initialize the engine.

        Args:
            text_processor: Provider of raw text. If None, a default TextProcessor is created.
            state_manager: Progress and settings store. If None, a default StateManager is created.
            background_processor: Processor for prefetches and writes. If None and
                use_background is True, one is created.
            use_background: Run prefetches and writes inline when False and no processor is given.
            batch_size: Cache batch and window size. If None, uses the cache default.
            prefetch_threshold: Remaining words that trigger a prefetch.
            save_interval_ms: Interval of the periodic progress save.
            debounce_ms: Quiet period after manual navigation before saving.
            parent: Parent QObject.
        """
        super().__init__(parent)
        self.text_processor = text_processor or TextProcessor()
        self.state_manager = state_manager or StateManager()
        if background_processor is None and use_background:
            background_processor = BackgroundProcessor()
        self.background_processor = background_processor

        self.cache = WordCache(self.text_processor, batch_size)
        self.session = StreamSession(self.cache, self.background_processor,
                                     prefetch_threshold=prefetch_threshold)
        self.timing = self.state_manager.get_timing_settings()

        self.scheduler = PlaybackScheduler(self.session, self.timing, self)
        self.persister = ProgressPersister(self.session, self.state_manager, self.background_processor,
                                           save_interval_ms, debounce_ms, self)

        # Connect signals
        self.scheduler.playing_changed.connect(self._on_playing_changed)
        self.scheduler.word_advanced.connect(self._on_word_advanced)
        self.scheduler.finished.connect(self.finished)
        self.scheduler.stalled.connect(self.error_occurred)

    @property
    def source(self) -> Optional[TextSource]:
        return self.session.source

    @property
    def is_playing(self) -> bool:
        return self.scheduler.is_playing

    # Opening and closing

    def open(self, source: Union[str, TextSource], start_index: Optional[int] = None) -> TextSource:
        """
        Open a document for reading.

        Args:
            source: Path to the document, or an already prepared source.
            start_index: Global index to start at. If None, resumes from the saved progress.

        Returns:
            The opened source.

        Raises:
            SourceUnavailable: If the document cannot be read. Nothing is left open.
        """
        if self.session.source is not None:
            self.close()

        try:
            if not isinstance(source, TextSource):
                source = self.text_processor.prepare(source)

            if start_index is None:
                start_index = self.state_manager.load_progress(source.source_id) or 0

            self.set_timing(self.state_manager.get_timing_settings(source.source_id), save=False)
            self.session.open(source, start_index)
        except SourceUnavailable as e:
            print(f"Failed to open source: {str(e)}")
            self.error_occurred.emit(str(e))
            raise

        self.state_manager.register_source(source.to_dict())
        # The first successful load creates the progress record
        self.persister.save_now()

        self.source_opened.emit(source.to_dict())
        self._emit_word()
        return source

    def close(self):
        """Stop playback, save the position and release the open source."""
        if self.session.source is None:
            return

        self.scheduler.pause()
        self.persister.stop()
        self.persister.flush()
        self.session.close()
        self.source_closed.emit()

    def shutdown(self):
        """Close the open source and stop the background worker."""
        self.close()
        if self.background_processor is not None:
            self.background_processor.stop_worker()

    # Playback

    def play(self):
        self.scheduler.play()

    def pause(self):
        self.scheduler.pause()

    def toggle_playback(self):
        self.scheduler.toggle()

    # Navigation

    def next(self) -> bool:
        """Show the next word."""
        return self._navigate(self.session.next)

    def previous(self) -> bool:
        """Show the previous word."""
        return self._navigate(self.session.previous)

    def jump(self, global_index: int) -> bool:
        """
        Show the word at a global index, clamped into the document.

        Args:
            global_index: The target index.

        Returns:
            True if the position was set.
        """
        return self._navigate(lambda: self.session.jump(global_index))

    def reset_to_start(self) -> bool:
        return self.jump(0)

    def _navigate(self, move) -> bool:
        try:
            changed = move()
        except SourceUnavailable as e:
            print(f"Navigation failed: {str(e)}")
            self.scheduler.pause()
            self.error_occurred.emit(str(e))
            return False

        if not changed:
            return False

        self.persister.on_position_changed()
        if self.session.complete:
            self.scheduler.pause()
            self.finished.emit()
            return True

        self._emit_word()
        # The word shown now gets its full delay
        self.scheduler.reschedule()
        return changed

    # Reading

    def current_word(self) -> Optional[str]:
        """Get the current word, or None at the end of the document."""
        return self.session.current_word()

    def current_chunk(self) -> List[str]:
        return self.session.current_chunk(self.timing.chunk_size)

    def trail_words(self) -> List[str]:
        return self.session.trail_words(self.timing.trail_words_count)

    def progress(self) -> Progress:
        return self.session.progress()

    def effective_wpm(self) -> int:
        """Estimate the reading speed from the words ahead of the current position."""
        return get_effective_wpm(self.session.current_chunk(WPM_SAMPLE_SIZE), self.timing)

    # Settings

    def set_timing(self, timing: TimingConfig, save: bool = True):
        """
        Replace the timing settings.

        Args:
            timing: The new settings.
            save: Whether to store them, globally and for the open source.
        """
        self.timing = timing
        self.scheduler.set_timing(timing)
        if save:
            source = self.session.source
            self.state_manager.save_timing_settings(timing, source.source_id if source else None)

    # Signal handlers

    def _on_playing_changed(self, playing: bool):
        self.persister.on_playing_changed(playing)
        self.playing_changed.emit(playing)

    def _on_word_advanced(self, global_index: int):
        self._emit_word()

    def _emit_word(self):
        chunk = self.current_chunk()
        if chunk:
            self.word_changed.emit(" ".join(chunk), self.session.global_index)
