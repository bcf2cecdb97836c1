"""
Tests for the playback scheduler module.
"""

import time
import unittest

from PyQt6.QtCore import QCoreApplication
from PyQt6.QtTest import QTest

from core.playback_scheduler import PlaybackScheduler
from core.stream_session import StreamSession
from core.text_processor import TextSource
from core.timing import TimingConfig
from core.word_cache import WordCache


class FakeProvider:
    """Provider serving a fixed text per source path."""

    def __init__(self, texts):
        self.texts = texts
        self.failing = set()

    def read_all(self, source):
        if source.path in self.failing:
            raise OSError(f"cannot read {source.path}")
        return self.texts[source.path]


def numbered_text(count):
    return " ".join(f"w{i}" for i in range(count))


def wait_until(predicate, timeout_ms=3000):
    """Process Qt events until predicate is true or the timeout expires."""
    deadline = time.monotonic() + timeout_ms / 1000
    while not predicate() and time.monotonic() < deadline:
        QTest.qWait(10)
    return predicate()


class TestPlaybackScheduler(unittest.TestCase):
    """Tests for the PlaybackScheduler class."""

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        self.short_source = TextSource("/tmp/scheduler_short.txt")
        self.long_source = TextSource("/tmp/scheduler_long.txt")
        self.provider = FakeProvider({
            self.short_source.path: numbered_text(20),
            self.long_source.path: numbered_text(2500),
        })
        self.session = StreamSession(WordCache(self.provider, batch_size=1000))
        self.fast = TimingConfig(time_per_word=2, time_per_character=0, punctuation_delay=0)
        self.scheduler = PlaybackScheduler(self.session, self.fast)

        self.advanced = []
        self.playing = []
        self.finished = []
        self.stalled = []
        self.scheduler.word_advanced.connect(self.advanced.append)
        self.scheduler.playing_changed.connect(self.playing.append)
        self.scheduler.finished.connect(lambda: self.finished.append(True))
        self.scheduler.stalled.connect(self.stalled.append)

    def tearDown(self):
        self.scheduler.pause()
        self.session.close()

    def test_plays_to_the_end(self):
        """Test that playback advances word by word and stops at the end."""
        self.session.open(self.short_source, 0)
        self.scheduler.play()
        self.assertTrue(wait_until(lambda: self.finished))

        self.assertEqual(self.advanced, list(range(1, 20)))
        self.assertEqual(self.playing, [True, False])
        self.assertFalse(self.scheduler.is_playing)
        self.assertTrue(self.session.complete)

    def test_pause_stops_advancing(self):
        self.session.open(self.long_source, 0)
        self.scheduler.set_timing(self.fast.replace(time_per_word=20))
        self.scheduler.play()
        self.assertTrue(wait_until(lambda: len(self.advanced) >= 2))

        self.scheduler.pause()
        index = self.session.global_index
        QTest.qWait(150)
        self.assertEqual(self.session.global_index, index)
        self.assertEqual(self.playing, [True, False])

    def test_pause_cancels_pending_advance(self):
        """Test that a delay already running when pausing never advances."""
        self.session.open(self.long_source, 0)
        self.scheduler.set_timing(self.fast.replace(time_per_word=50))
        self.scheduler.play()
        self.scheduler.pause()
        QTest.qWait(150)
        self.assertEqual(self.session.global_index, 0)

        # A timeout delivered after pause is ignored
        self.scheduler._on_timeout()
        self.assertEqual(self.session.global_index, 0)

    def test_toggle(self):
        self.session.open(self.long_source, 0)
        self.scheduler.set_timing(self.fast.replace(time_per_word=500))
        self.scheduler.toggle()
        self.assertTrue(self.scheduler.is_playing)
        self.scheduler.toggle()
        self.assertFalse(self.scheduler.is_playing)

    def test_play_when_complete(self):
        self.session.open(self.short_source, 19)
        self.session.next()
        self.scheduler.play()
        self.assertFalse(self.scheduler.is_playing)
        self.assertEqual(self.finished, [True])
        self.assertEqual(self.playing, [])

    def test_play_without_source(self):
        self.scheduler.play()
        self.assertFalse(self.scheduler.is_playing)

    def test_chunks_advance_by_chunk_size(self):
        self.session.open(self.short_source, 0)
        self.scheduler.set_timing(self.fast.replace(chunk_size=5))
        self.scheduler.play()
        self.assertTrue(wait_until(lambda: self.finished))
        self.assertEqual(self.advanced, [5, 10, 15])

    def test_short_chunk_at_window_end_skips_no_words(self):
        """Test that a chunk cut short by the window end is followed by the next unseen word."""
        self.session.open(self.long_source, 0)
        self.provider.failing.add(self.long_source.path)
        self.session.jump(998)
        self.assertTrue(self.session.prefetch_failed)
        self.provider.failing.clear()

        chunks = [self.session.current_chunk(3)]
        self.scheduler.word_advanced.connect(lambda index: chunks.append(self.session.current_chunk(3)))
        self.scheduler.set_timing(self.fast.replace(chunk_size=3))
        self.scheduler.play()
        self.assertTrue(wait_until(lambda: len(self.advanced) >= 2))
        self.scheduler.pause()

        self.assertEqual(chunks[0], ["w998", "w999"])
        self.assertEqual(chunks[1], ["w1000", "w1001", "w1002"])
        self.assertEqual(self.advanced[:2], [1000, 1003])

    def test_stalls_when_words_cannot_be_loaded(self):
        """Test that running out of buffered words pauses with a message."""
        self.session.open(self.long_source, 0)
        self.provider.failing.add(self.long_source.path)
        self.session.jump(995)

        self.scheduler.play()
        self.assertTrue(wait_until(lambda: self.stalled))

        self.assertEqual(self.stalled, ["Could not load more content"])
        self.assertFalse(self.scheduler.is_playing)
        self.assertEqual(self.session.global_index, 999)
        self.assertEqual(self.playing, [True, False])


if __name__ == '__main__':
    unittest.main()
