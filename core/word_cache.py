"""
Word cache module for the Word Stream Reader application.
Keeps a bounded map of global word index to token for each open source,
filled in fixed-size batches from the tokenized raw text.
"""

import threading
from typing import Dict, Iterable, List, Optional, Set

from core.errors import SourceUnavailable
from core.text_processor import TextSource
from core.tokenizer import tokenize


class CacheEntry:
    """Cached tokens and word count of a single source."""

    def __init__(self):
        self.total_words: Optional[int] = None
        self.words: Dict[int, str] = {}
        self.batches: Set[int] = set()  # Start index of every resident batch
        self.read_count = 0  # Number of full raw-text reads for this source
        # Held while reading and storing, so only one population runs per source
        self.lock = threading.Lock()

    def __len__(self):
        return len(self.words)


class WordCache:
    """
    Batch-aligned cache of word tokens.

    Every refill reads and tokenizes the whole source, then keeps only the
    requested batches. When an entry grows beyond twice the batch size it is
    cleared completely before the next batch is stored.
    """

    BATCH_SIZE = 1000

    def __init__(self, provider, batch_size: Optional[int] = None):
        """
        Initialize the cache.

        Args:
            provider: Object with a read_all(source) method returning the raw text.
            batch_size: Number of tokens per batch. If None, uses BATCH_SIZE.
        """
        self.provider = provider
        self.batch_size = batch_size or self.BATCH_SIZE
        self.entries: Dict[str, CacheEntry] = {}
        self._entries_lock = threading.Lock()

    def _entry(self, source: TextSource) -> CacheEntry:
        with self._entries_lock:
            entry = self.entries.get(source.source_id)
            if entry is None:
                entry = CacheEntry()
                self.entries[source.source_id] = entry
            return entry

    def batch_start_for(self, index: int) -> int:
        """Start index of the batch containing a global index."""
        return (max(0, index) // self.batch_size) * self.batch_size

    def _read_tokens(self, source: TextSource, entry: CacheEntry) -> List[str]:
        """Read and tokenize the full source. Must be called with the entry lock held."""
        try:
            raw_text = self.provider.read_all(source)
        except SourceUnavailable:
            raise
        except OSError as e:
            raise SourceUnavailable(source.source_id, str(e)) from e

        entry.read_count += 1
        tokens = tokenize(raw_text).tokens

        # The word count is fixed the first time the source is read
        if entry.total_words is None:
            entry.total_words = len(tokens)
        source.total_words = entry.total_words
        return tokens

    def _store(self, entry: CacheEntry, tokens: List[str], batch_starts: Iterable[int],
               batch_len: Optional[int] = None):
        """Store batches of tokens into the entry, evicting everything first if it is too big."""
        batch_len = batch_len or self.batch_size
        if len(entry.words) > 2 * self.batch_size:
            print(f"Word cache holds {len(entry.words)} words, clearing before refill")
            entry.words.clear()
            entry.batches.clear()

        limit = min(len(tokens), entry.total_words)
        for batch_start in batch_starts:
            end = min(batch_start + batch_len, limit)
            for index in range(batch_start, end):
                entry.words[index] = tokens[index]
            # A batch is resident only once every word in it is stored
            if end >= min(batch_start + self.batch_size, entry.total_words):
                entry.batches.add(batch_start)

    def load_source(self, source: TextSource, hint_index: int = 0) -> int:
        """
        Read a source, record its word count and cache the batch around hint_index.

        Args:
            source: The source to load.
            hint_index: Global index that will be read first.

        Returns:
            Total number of words in the source.

        Raises:
            SourceUnavailable: If the raw text cannot be read.
        """
        entry = self._entry(source)
        with entry.lock:
            if entry.total_words is not None:
                source.total_words = entry.total_words
                batch_start = self.batch_start_for(min(hint_index, max(entry.total_words - 1, 0)))
                if batch_start in entry.batches or entry.total_words == 0:
                    return entry.total_words

            tokens = self._read_tokens(source, entry)
            total_words = entry.total_words
            if total_words > 0:
                batch_start = self.batch_start_for(min(max(hint_index, 0), total_words - 1))
                self._store(entry, tokens, [batch_start])
            print(f"Loaded {source.filename}: {total_words} words")
            return total_words

    def total_words(self, source: TextSource) -> int:
        """
        Get the number of words in a source, reading it if it was never loaded.

        Raises:
            SourceUnavailable: If the source has to be read and cannot be.
        """
        entry = self._entry(source)
        if entry.total_words is not None:
            return entry.total_words
        return self.load_source(source)

    def ensure_batch(self, source: TextSource, batch_start: int, batch_len: Optional[int] = None):
        """
        Make sure a batch of tokens is cached.

        Args:
            source: The source.
            batch_start: First global index of the batch.
            batch_len: Number of tokens in the batch. If None, uses the batch size.

        Raises:
            SourceUnavailable: If the raw text cannot be read. The entry is left unchanged.
        """
        entry = self._entry(source)
        with entry.lock:
            # Another caller may have filled the batch while we waited for the lock
            if batch_start in entry.batches:
                return
            tokens = self._read_tokens(source, entry)
            self._store(entry, tokens, [batch_start], batch_len)

    def read(self, source: TextSource, start: int, count: int) -> List[str]:
        """
        Read up to count tokens starting at a global index.

        Missing batches are filled with a single read of the source. The result
        is clipped to the document, so fewer tokens come back near the end.

        Args:
            source: The source.
            start: First global index.
            count: Maximum number of tokens.

        Returns:
            List of tokens.

        Raises:
            SourceUnavailable: If a missing batch cannot be read, or the source
                no longer holds the words below its recorded word count.
        """
        entry = self._entry(source)
        with entry.lock:
            if entry.total_words is None:
                tokens = self._read_tokens(source, entry)
            else:
                tokens = None

            start = max(0, start)
            end = min(start + max(count, 0), entry.total_words)
            if start >= end:
                return []

            needed = range(self.batch_start_for(start), end, self.batch_size)
            if any(batch_start not in entry.batches for batch_start in needed):
                if tokens is None:
                    tokens = self._read_tokens(source, entry)
                self._store(entry, tokens, needed)

            missing = [index for index in range(start, end) if index not in entry.words]
            if missing:
                raise SourceUnavailable(
                    source.source_id, f"words {missing[0]}-{missing[-1]} missing after refill"
                )
            return [entry.words[index] for index in range(start, end)]

    def is_resident(self, source: TextSource, index: int) -> bool:
        """Check whether the token at a global index is cached."""
        entry = self.entries.get(source.source_id)
        return entry is not None and index in entry.words

    def clear(self, source: TextSource):
        """Drop the cache entry of a source."""
        with self._entries_lock:
            self.entries.pop(source.source_id, None)
