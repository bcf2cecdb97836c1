"""
Tests for the word cache module.
"""

import threading
import time
import unittest

from core.errors import SourceUnavailable
from core.text_processor import TextSource
from core.word_cache import WordCache


class FakeProvider:
    """Provider returning a fixed text, optionally failing or slow."""

    def __init__(self, text, delay=0.0):
        self.text = text
        self.delay = delay
        self.fail_with = None
        self.calls = 0

    def read_all(self, source):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return self.text


def numbered_text(count):
    return " ".join(f"w{i}" for i in range(count))


class TestWordCache(unittest.TestCase):
    """Tests for the WordCache class."""

    def setUp(self):
        self.source = TextSource("/tmp/cache_test.txt")
        self.provider = FakeProvider(numbered_text(2500))
        self.cache = WordCache(self.provider, batch_size=1000)

    def test_load_source_caches_hint_batch(self):
        total = self.cache.load_source(self.source, hint_index=1500)
        self.assertEqual(total, 2500)
        self.assertEqual(self.source.total_words, 2500)
        self.assertTrue(self.cache.is_resident(self.source, 1000))
        self.assertTrue(self.cache.is_resident(self.source, 1999))
        self.assertFalse(self.cache.is_resident(self.source, 0))
        self.assertEqual(self.cache.entries[self.source.source_id].read_count, 1)

    def test_read_returns_tokens_for_global_indexes(self):
        self.assertEqual(self.cache.read(self.source, 998, 4), ["w998", "w999", "w1000", "w1001"])

    def test_read_across_batches_reads_source_once(self):
        """Test that all missing batches of a range are filled by one read."""
        self.cache.read(self.source, 900, 200)
        self.assertEqual(self.provider.calls, 1)
        self.assertTrue(self.cache.is_resident(self.source, 0))
        self.assertTrue(self.cache.is_resident(self.source, 1999))

    def test_read_is_clipped_to_document(self):
        tokens = self.cache.read(self.source, 2400, 500)
        self.assertEqual(len(tokens), 100)
        self.assertEqual(tokens[-1], "w2499")
        self.assertEqual(self.cache.read(self.source, 2500, 10), [])

    def test_resident_batches_are_not_read_again(self):
        self.cache.load_source(self.source)
        self.cache.read(self.source, 0, 1000)
        self.cache.ensure_batch(self.source, 0)
        self.assertEqual(self.provider.calls, 1)

    def test_partial_batch_is_filled_on_read(self):
        """Test that a batch stored only in part is completed by a later read."""
        self.cache.ensure_batch(self.source, 0, 10)
        entry = self.cache.entries[self.source.source_id]
        self.assertEqual(len(entry), 10)
        self.assertNotIn(0, entry.batches)

        tokens = self.cache.read(self.source, 0, 100)
        self.assertEqual(len(tokens), 100)
        self.assertEqual(tokens[99], "w99")
        self.assertIn(0, entry.batches)

    def test_read_fails_when_source_shrinks(self):
        self.cache.load_source(self.source)
        self.provider.text = numbered_text(1500)
        with self.assertRaises(SourceUnavailable):
            self.cache.read(self.source, 2000, 10)
        self.assertFalse(self.cache.is_resident(self.source, 2000))

    def test_entry_is_cleared_when_too_large(self):
        """Test the whole entry is dropped once it holds more than two batches."""
        cache = WordCache(FakeProvider(numbered_text(50)), batch_size=10)
        for start in (0, 10, 20):
            cache.read(self.source, start, 10)
        entry = cache.entries[self.source.source_id]
        self.assertEqual(len(entry), 30)

        self.assertEqual(cache.read(self.source, 30, 10)[0], "w30")
        self.assertEqual(len(entry), 10)
        self.assertFalse(cache.is_resident(self.source, 0))
        self.assertEqual(entry.batches, {30})

    def test_failed_read_leaves_entry_unchanged(self):
        cache = WordCache(self.provider, batch_size=10)
        cache.read(self.source, 0, 10)
        entry = cache.entries[self.source.source_id]
        words_before = dict(entry.words)

        self.provider.fail_with = OSError("disk gone")
        with self.assertRaises(SourceUnavailable):
            cache.read(self.source, 10, 10)

        self.assertEqual(entry.words, words_before)
        self.assertEqual(entry.batches, {0})
        self.assertEqual(entry.read_count, 1)

    def test_unreadable_source_on_load(self):
        self.provider.fail_with = SourceUnavailable(self.source.source_id, "missing")
        with self.assertRaises(SourceUnavailable):
            self.cache.load_source(self.source)

    def test_concurrent_ensure_batch_reads_once(self):
        """Test that concurrent requests for one batch share a single population."""
        self.provider.delay = 0.05
        threads = [
            threading.Thread(target=self.cache.ensure_batch, args=(self.source, 1000))
            for _ in range(5)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.provider.calls, 1)
        self.assertTrue(self.cache.is_resident(self.source, 1500))

    def test_total_words_and_clear(self):
        self.assertEqual(self.cache.total_words(self.source), 2500)
        self.cache.clear(self.source)
        self.assertNotIn(self.source.source_id, self.cache.entries)
        self.assertFalse(self.cache.is_resident(self.source, 0))


if __name__ == '__main__':
    unittest.main()
