"""
Stream session module for the Word Stream Reader application.
Binds one open source to a position and an in-memory window of tokens,
and translates between global word indexes and window positions.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

from core.errors import IndexOutOfRange, SourceUnavailable
from core.text_processor import TextSource
from core.timing import get_trail_words
from core.word_cache import WordCache


class SessionState(Enum):
    """Lifecycle of a stream session."""
    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"


class Progress(NamedTuple):
    """Reading progress of a session."""
    index: int
    total: int
    percentage: int


@dataclass(frozen=True)
class Window:
    """
    A contiguous run of tokens starting at a global index.

    tokens[i] is the word at global index global_start + i. Windows are never
    changed in place; growing or trimming one creates a new Window.
    """
    global_start: int = 0
    tokens: Tuple[str, ...] = ()

    @property
    def global_end(self) -> int:
        """Global index one past the last token."""
        return self.global_start + len(self.tokens)

    def __len__(self):
        return len(self.tokens)

    def contains(self, global_index: int) -> bool:
        return self.global_start <= global_index < self.global_end

    def local_index(self, global_index: int) -> int:
        """
        Convert a global index to a position inside the window.

        Raises:
            IndexOutOfRange: If the index is not covered by the window.
        """
        if not self.contains(global_index):
            raise IndexOutOfRange(
                f"Index {global_index} outside window [{self.global_start}, {self.global_end})"
            )
        return global_index - self.global_start

    def word_at(self, global_index: int) -> str:
        return self.tokens[self.local_index(global_index)]

    def extend(self, tokens: Sequence[str]) -> "Window":
        """Return a window with tokens appended after the current end."""
        return Window(self.global_start, self.tokens + tuple(tokens))

    def drop_before(self, global_index: int) -> "Window":
        """Return a window starting at global_index, dropping earlier tokens."""
        if global_index <= self.global_start:
            return self
        return Window(global_index, self.tokens[global_index - self.global_start:])


class StreamSession:
    """
    One open source with a current position and a window of tokens.

    The position only moves to indexes that are present in the window: a move
    outside the window first loads the needed tokens. Forward playback extends
    the window in the background before it runs out. Every access to the
    position and the window goes through the session lock.
    """

    PREFETCH_THRESHOLD = 200  # Prefetch when fewer words than this remain in the window
    PREFETCH_WAIT_TIMEOUT = 10.0  # Seconds to wait for a running prefetch before reading directly
    MAX_WINDOW_BATCHES = 3  # Window size, in batches, above which words behind the reader are dropped

    def __init__(self, cache: WordCache, processor=None, window_size: Optional[int] = None,
                 prefetch_threshold: Optional[int] = None):
        """
        Initialize the session.

        Args:
            cache: The word cache used to fill windows.
            processor: BackgroundProcessor running prefetches. If None, prefetches run inline.
            window_size: Number of tokens loaded per window. If None, uses the cache batch size.
            prefetch_threshold: Remaining words that trigger a prefetch. If None, uses PREFETCH_THRESHOLD.
        """
        self.cache = cache
        self.processor = processor
        self.window_size = window_size or cache.batch_size
        self.prefetch_threshold = self.PREFETCH_THRESHOLD if prefetch_threshold is None else prefetch_threshold

        self.lock = threading.RLock()
        self.state = SessionState.CLOSED
        self.source: Optional[TextSource] = None
        self.total_words = 0
        self._global_index = 0
        self.window = Window()
        self.complete = False

        # Bumped whenever the window is replaced, so late prefetch results are discarded
        self.generation = 0
        self.prefetch_task = None
        self.prefetch_failed = False

    # Position

    @property
    def global_index(self) -> int:
        with self.lock:
            return self._global_index

    @property
    def relative_index(self) -> int:
        """Position of the current word inside the window."""
        with self.lock:
            return self._global_index - self.window.global_start

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.READY

    def _logical_position(self) -> int:
        # After the last word has been passed the position is one past the end
        return self.total_words if self.complete else self._global_index

    # Opening and closing

    def open(self, source: TextSource, start_index: int = 0):
        """
        Open a source at a starting position.

        Args:
            source: The source to open.
            start_index: Global index to start at. Clamped into the document.

        Raises:
            SourceUnavailable: If the source cannot be read. The session is left closed.
        """
        with self.lock:
            self._cancel_prefetch()
            if self.source is not None and self.source != source:
                self.cache.clear(self.source)

            self.state = SessionState.LOADING
            self.source = source
            try:
                total_words = self.cache.load_source(source, hint_index=start_index)
                start = self._clamp(start_index, total_words)
                # Aligned so the words just before a resumed position are available as trail words
                window_start = start - start % self.window_size
                tokens = self.cache.read(source, window_start, self.window_size) if total_words else []
            except SourceUnavailable:
                self.cache.clear(source)
                self._reset()
                raise

            self.total_words = total_words
            self._global_index = start
            self.window = Window(window_start, tuple(tokens))
            self.complete = False
            self.prefetch_failed = False
            self.state = SessionState.READY
            self._maybe_prefetch()

    @staticmethod
    def _clamp(index: int, total_words: int) -> int:
        if total_words <= 0:
            return 0
        return max(0, min(index, total_words - 1))

    def close(self):
        """Close the session, dropping pending prefetches and the cached words."""
        with self.lock:
            self._cancel_prefetch()
            if self.source is not None:
                self.cache.clear(self.source)
            self._reset()

    def _reset(self):
        self.state = SessionState.CLOSED
        self.source = None
        self.total_words = 0
        self._global_index = 0
        self.window = Window()
        self.complete = False
        self.prefetch_failed = False

    # Navigation

    def advance(self, delta: int) -> bool:
        """
        Move the position by delta words.

        Moving past the last word marks the sequence complete instead of failing.
        A target outside the window is loaded before the position changes; when
        the target continues the window and a prefetch is running, the prefetch
        is awaited first.

        Args:
            delta: Number of words to move; negative moves back.

        Returns:
            True if the position or completion state changed.

        Raises:
            SourceUnavailable: If the words at the target cannot be loaded.
        """
        waited = False
        while True:
            with self.lock:
                if self.state is not SessionState.READY or self.total_words == 0:
                    return False

                target = self._logical_position() + delta
                if target >= self.total_words:
                    if self.complete:
                        return False
                    self.complete = True
                    return True

                target = max(target, 0)
                if target == self._global_index and not self.complete:
                    return False
                if self.window.contains(target):
                    self._move_to(target)
                    return True

                task = self.prefetch_task
                if waited or task is None or task.done.is_set() or target != self.window.global_end:
                    self._load_window(target)
                    self._move_to(target)
                    return True

            # Wait outside the lock so the prefetch can apply its result
            task.wait(self.PREFETCH_WAIT_TIMEOUT)
            waited = True

    def next(self) -> bool:
        return self.advance(1)

    def previous(self) -> bool:
        return self.advance(-1)

    def jump(self, global_index: int) -> bool:
        """
        Seek to a global index, clamped into the document.

        Args:
            global_index: The target index.

        Returns:
            True if the session is open and the position was set.

        Raises:
            SourceUnavailable: If the words at the target cannot be loaded.
        """
        with self.lock:
            if self.state is not SessionState.READY or self.total_words == 0:
                return False

            target = self._clamp(global_index, self.total_words)
            if not self.window.contains(target):
                self._load_window(target)
            self._move_to(target)
            return True

    def _move_to(self, target: int):
        self._global_index = target
        self.complete = False
        self._maybe_prefetch()

    def _load_window(self, start: int):
        """Replace the window with a fresh one anchored at start."""
        tokens = self.cache.read(self.source, start, self.window_size)
        if not tokens:
            raise SourceUnavailable(self.source.source_id, f"no words at index {start}")
        self._cancel_prefetch()
        self.window = Window(start, tuple(tokens))
        self.prefetch_failed = False

    # Prefetching

    def _cancel_prefetch(self):
        self.generation += 1
        task = self.prefetch_task
        self.prefetch_task = None
        if task is not None and self.processor is not None:
            self.processor.cancel(task.task_id)

    def _needs_prefetch(self) -> bool:
        return (self.relative_index > len(self.window) - self.prefetch_threshold
                and self.window.global_end < self.total_words)

    def _maybe_prefetch(self):
        """Start extending the window when the position gets close to its end."""
        if not self._needs_prefetch():
            return
        if self.prefetch_task is not None and not self.prefetch_task.done.is_set():
            return

        generation = self.generation
        source = self.source
        start = self.window.global_end

        if self.processor is None:
            try:
                result = self._fetch(generation, source, start)
            except SourceUnavailable as e:
                self._on_prefetch_error(generation, e)
                return
            self._apply_prefetch(result)
            return

        self.prefetch_task = self.processor.add_task(
            f"prefetch:{source.source_id}:{start}",
            self._fetch, generation, source, start,
            callback=lambda task_id, result: self._apply_prefetch(result),
            error_callback=lambda task_id, error: self._on_prefetch_error(generation, error),
        )

    def _fetch(self, generation: int, source: TextSource, start: int):
        # Runs without the session lock; the cache serializes reads per source
        if generation != self.generation:
            return generation, start, []
        return generation, start, self.cache.read(source, start, self.window_size)

    def _apply_prefetch(self, result):
        generation, start, tokens = result
        with self.lock:
            if generation != self.generation or self.state is not SessionState.READY:
                print(f"Discarding stale prefetch at index {start}")
                return
            if start != self.window.global_end:
                return

            self.prefetch_failed = False
            if tokens:
                self.window = self._trim(self.window.extend(tokens))

    def _on_prefetch_error(self, generation: int, error: Exception):
        with self.lock:
            if generation != self.generation:
                return
            # Playback keeps going on the buffered words; the next low-buffer step retries
            self.prefetch_failed = True
        print(f"Prefetch failed, will retry: {str(error)}")

    def _trim(self, window: Window) -> Window:
        """Drop whole batches that are more than one window behind the reader."""
        if len(window) <= self.MAX_WINDOW_BATCHES * self.window_size:
            return window
        behind = self._global_index - self.window_size - window.global_start
        if behind < self.window_size:
            return window
        return window.drop_before(window.global_start + (behind // self.window_size) * self.window_size)

    def wait_for_prefetch(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the running prefetch, if any.

        Returns:
            False if the wait timed out.
        """
        with self.lock:
            task = self.prefetch_task
        if task is None:
            return True
        return task.wait(timeout)

    # Reading

    def current_word(self) -> Optional[str]:
        """
        Get the word at the current position.

        Returns:
            The word, or None when the sequence is complete or nothing is open.
        """
        with self.lock:
            if self.state is not SessionState.READY or self.total_words == 0 or self.complete:
                return None
            return self.window.word_at(self._global_index)

    def current_chunk(self, size: int = 1) -> List[str]:
        """
        Get the words shown together starting at the current position.

        Args:
            size: Maximum number of words.

        Returns:
            Up to size words from the window; empty when complete.
        """
        with self.lock:
            if self.current_word() is None:
                return []
            local = self._global_index - self.window.global_start
            return list(self.window.tokens[local:local + max(size, 1)])

    def trail_words(self, count: int) -> List[str]:
        """
        Get the words before the current one that are still in the window.

        Args:
            count: Maximum number of words.

        Returns:
            Up to count words, most recent first.
        """
        with self.lock:
            if self.state is not SessionState.READY or count <= 0:
                return []
            local = self._logical_position() - self.window.global_start
            local = max(0, min(local, len(self.window)))
            return get_trail_words(self.window.tokens[max(0, local - count):local], count)

    def progress(self) -> Progress:
        """Get the current position and the total number of words."""
        with self.lock:
            if self.total_words == 0:
                return Progress(0, 0, 0)
            percentage = round(self._logical_position() * 100 / self.total_words)
            return Progress(self._global_index, self.total_words, percentage)
