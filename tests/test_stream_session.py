"""
Tests for the stream session module.
"""

import unittest

from core.background_processor import BackgroundProcessor
from core.errors import IndexOutOfRange, SourceUnavailable
from core.stream_session import SessionState, StreamSession, Window
from core.text_processor import TextSource
from core.tokenizer import tokenize
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


class TestWindow(unittest.TestCase):
    """Tests for the Window class."""

    def test_index_translation(self):
        window = Window(100, ("a", "b", "c"))
        self.assertEqual(window.global_end, 103)
        self.assertEqual(window.local_index(101), 1)
        self.assertEqual(window.word_at(102), "c")
        with self.assertRaises(IndexOutOfRange):
            window.local_index(103)
        with self.assertRaises(IndexError):
            window.word_at(99)

    def test_extend_and_drop_create_new_windows(self):
        window = Window(10, ("a", "b"))
        grown = window.extend(["c"])
        self.assertEqual(window.tokens, ("a", "b"))
        self.assertEqual(grown.tokens, ("a", "b", "c"))
        self.assertEqual(grown.drop_before(11), Window(11, ("b", "c")))
        self.assertIs(grown.drop_before(5), grown)


class TestStreamSession(unittest.TestCase):
    """Tests for the StreamSession class with inline prefetching."""

    def setUp(self):
        self.source = TextSource("/tmp/session_2500.txt")
        self.large_source = TextSource("/tmp/session_5000.txt")
        self.empty_source = TextSource("/tmp/session_empty.txt")
        self.provider = FakeProvider({
            self.source.path: numbered_text(2500),
            self.large_source.path: numbered_text(5000),
            self.empty_source.path: "   \n",
        })
        self.cache = WordCache(self.provider, batch_size=1000)
        self.session = StreamSession(self.cache)
        self.expected = tokenize(numbered_text(5000)).tokens

    def test_open_loads_first_window(self):
        self.session.open(self.source, 0)
        self.assertIs(self.session.state, SessionState.READY)
        self.assertEqual(self.session.total_words, 2500)
        self.assertEqual(self.session.window.global_start, 0)
        self.assertEqual(len(self.session.window), 1000)
        self.assertEqual(self.session.current_word(), "w0")

    def test_open_clamps_start_index(self):
        self.session.open(self.source, 99999)
        self.assertEqual(self.session.global_index, 2499)
        self.assertEqual(self.session.current_word(), "w2499")

    def test_relative_index_follows_window(self):
        self.session.open(self.source, 1500)
        self.assertEqual(self.session.window.global_start, 1000)
        self.assertEqual(self.session.relative_index, 500)

        self.session.jump(2000)
        self.assertEqual(self.session.window.global_start, 2000)
        self.assertEqual(self.session.relative_index, 0)

    def test_prefetch_extends_window_before_batch_end(self):
        """Test that stepping across a batch boundary never reloads the window."""
        self.session.open(self.source, 0)
        for _ in range(800):
            self.session.next()
        self.assertEqual(len(self.session.window), 1000)

        self.session.next()
        self.assertEqual(self.session.global_index, 801)
        self.assertEqual(len(self.session.window), 2000)

        for _ in range(199):
            self.session.next()
        self.assertEqual(self.session.current_word(), "w1000")
        self.assertEqual(self.session.window.global_start, 0)
        self.assertEqual(self.cache.entries[self.source.source_id].read_count, 2)

    def test_stepping_matches_tokenized_text(self):
        """Test that every word seen while stepping is the tokenized word at that index."""
        self.session.open(self.large_source, 0)
        seen = [self.session.current_word()]
        while self.session.next() and not self.session.complete:
            window = self.session.window
            self.assertLessEqual(window.global_start, self.session.global_index)
            self.assertTrue(window.contains(self.session.global_index))
            self.assertEqual(list(window.tokens), self.expected[window.global_start:window.global_end])
            seen.append(self.session.current_word())

        self.assertEqual(seen, self.expected)
        # Words far behind the reader were dropped from the window
        self.assertGreater(self.session.window.global_start, 0)

    def test_jump_matches_tokenized_text(self):
        self.session.open(self.large_source, 0)
        for index in (1733, 4999, 0, 2000, 1999):
            self.assertTrue(self.session.jump(index))
            self.assertEqual(self.session.global_index, index)
            self.assertEqual(self.session.current_word(), self.expected[index])

    def test_jump_is_idempotent(self):
        self.session.open(self.source, 0)
        self.session.jump(1500)
        window = self.session.window
        self.session.jump(1500)
        self.assertEqual(self.session.current_word(), "w1500")
        self.assertIs(self.session.window, window)

    def test_jump_is_clamped(self):
        self.session.open(self.source, 0)
        self.session.jump(-5)
        self.assertEqual(self.session.global_index, 0)
        self.session.jump(10 ** 6)
        self.assertEqual(self.session.global_index, 2499)

    def test_previous_outside_window_reloads(self):
        self.session.open(self.source, 0)
        self.session.jump(2000)
        self.assertEqual(self.session.window.global_start, 2000)
        self.assertTrue(self.session.previous())
        self.assertEqual(self.session.window.global_start, 1999)
        self.assertEqual(self.session.current_word(), "w1999")

    def test_previous_at_start(self):
        self.session.open(self.source, 0)
        self.assertFalse(self.session.previous())
        self.assertEqual(self.session.global_index, 0)

    def test_advancing_past_last_word_completes(self):
        self.session.open(self.source, 2499)
        self.assertTrue(self.session.next())
        self.assertTrue(self.session.complete)
        self.assertIsNone(self.session.current_word())
        self.assertEqual(self.session.progress().percentage, 100)
        self.assertFalse(self.session.next())

        self.assertTrue(self.session.previous())
        self.assertFalse(self.session.complete)
        self.assertEqual(self.session.current_word(), "w2499")

    def test_trail_words_and_chunk(self):
        self.session.open(self.source, 10)
        self.assertEqual(self.session.trail_words(3), ["w9", "w8", "w7"])
        self.assertEqual(self.session.current_chunk(3), ["w10", "w11", "w12"])
        self.assertEqual(self.session.progress(), (10, 2500, 0))

    def test_empty_document(self):
        self.session.open(self.empty_source, 0)
        self.assertTrue(self.session.is_open)
        self.assertIsNone(self.session.current_word())
        self.assertFalse(self.session.next())
        self.assertFalse(self.session.jump(3))
        self.assertEqual(self.session.progress(), (0, 0, 0))

    def test_unavailable_source_leaves_session_closed(self):
        """Test that a failed open leaves nothing open and a later open works."""
        broken = TextSource("/tmp/session_broken.txt")
        self.provider.failing.add(broken.path)
        with self.assertRaises(SourceUnavailable):
            self.session.open(broken, 0)
        self.assertIs(self.session.state, SessionState.CLOSED)
        self.assertIsNone(self.session.source)
        self.assertIsNone(self.session.current_word())

        self.session.open(self.source, 5)
        self.assertEqual(self.session.current_word(), "w5")

    def test_prefetch_failure_is_retried(self):
        """Test that playback continues on buffered words while the prefetch fails."""
        self.session.open(self.source, 0)
        self.provider.failing.add(self.source.path)
        self.session.jump(850)
        self.assertTrue(self.session.prefetch_failed)
        self.assertEqual(len(self.session.window), 1000)
        self.assertEqual(self.session.current_word(), "w850")

        self.provider.failing.clear()
        self.session.next()
        self.assertFalse(self.session.prefetch_failed)
        self.assertEqual(len(self.session.window), 2000)

    def test_exhausted_window_raises_and_keeps_position(self):
        self.session.open(self.source, 0)
        self.provider.failing.add(self.source.path)
        self.session.jump(999)
        with self.assertRaises(SourceUnavailable):
            self.session.next()
        self.assertEqual(self.session.global_index, 999)
        self.assertEqual(self.session.current_word(), "w999")

    def test_close_releases_cache_entry(self):
        self.session.open(self.source, 0)
        self.session.close()
        self.assertIs(self.session.state, SessionState.CLOSED)
        self.assertNotIn(self.source.source_id, self.cache.entries)
        self.assertFalse(self.session.next())


class TestStreamSessionBackground(unittest.TestCase):
    """Tests for the StreamSession class with a background processor."""

    def setUp(self):
        self.source = TextSource("/tmp/session_bg.txt")
        self.provider = FakeProvider({self.source.path: numbered_text(2500)})
        self.cache = WordCache(self.provider, batch_size=1000)
        self.processor = BackgroundProcessor()
        self.session = StreamSession(self.cache, self.processor)

    def tearDown(self):
        self.session.close()
        self.processor.stop_worker()

    def test_prefetch_runs_in_background(self):
        self.session.open(self.source, 0)
        self.session.jump(801)
        self.assertTrue(self.session.wait_for_prefetch(5.0))
        self.assertEqual(len(self.session.window), 2000)
        self.assertEqual(self.session.window.global_start, 0)

    def test_stepping_waits_for_running_prefetch(self):
        """Test that stepping onto the window end waits for the prefetch instead of reloading."""
        self.session.open(self.source, 0)
        self.session.jump(999)
        self.assertTrue(self.session.next())
        self.assertEqual(self.session.current_word(), "w1000")
        self.assertEqual(self.session.window.global_start, 0)

    def test_close_discards_late_prefetch(self):
        self.session.open(self.source, 0)
        self.session.jump(900)
        task = self.session.prefetch_task
        self.session.close()
        if task is not None:
            task.wait(5.0)
        self.assertEqual(len(self.session.window), 0)
        self.assertIsNone(self.session.source)


if __name__ == '__main__':
    unittest.main()
