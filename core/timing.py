"""
Timing module for the Word Stream Reader application.
Holds the playback timing settings and the stateless delay calculations.
"""

import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, List, Sequence

# Words containing sentence-ending punctuation get a longer pause
TERMINAL_PUNCTUATION = re.compile(r"[.!?]")

# Only the first words are sampled when estimating the reading speed
WPM_SAMPLE_SIZE = 500


@dataclass(frozen=True)
class TimingConfig:
    """
    Playback timing and display settings.

    Attributes:
        time_per_word: Base delay for every word, in milliseconds.
        time_per_character: Extra delay per character, in milliseconds.
        punctuation_delay: Extra delay for sentence-ending words, in percent.
        highlight_orp: Whether the display highlights the recognition point.
        trail_words_count: Number of previous words shown under the current one.
        chunk_size: Number of words shown per step.
    """
    time_per_word: float = 35
    time_per_character: float = 25
    punctuation_delay: float = 50
    highlight_orp: bool = True
    trail_words_count: int = 5
    chunk_size: int = 1

    def __post_init__(self):
        for name in ("time_per_word", "time_per_character", "punctuation_delay", "trail_words_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the settings to a JSON-friendly dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimingConfig":
        """
        Create settings from a dictionary, ignoring unknown keys.

        Args:
            data: Dictionary with settings, possibly partial.

        Returns:
            A TimingConfig with defaults for the missing keys.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in (data or {}).items() if key in known})

    def replace(self, **changes) -> "TimingConfig":
        """Return a copy of the settings with some values changed."""
        values = self.to_dict()
        values.update(changes)
        return TimingConfig(**values)


def get_delay(word: str, config: TimingConfig) -> float:
    """
    Compute how long a word stays on screen.

    Args:
        word: The word being shown.
        config: The timing settings.

    Returns:
        Delay in milliseconds.
    """
    delay = config.time_per_word + len(word) * config.time_per_character
    if TERMINAL_PUNCTUATION.search(word):
        delay *= 1 + config.punctuation_delay / 100
    return delay


def get_chunk_delay(words: Iterable[str], config: TimingConfig) -> float:
    """Compute the delay for a group of words shown together."""
    return sum(get_delay(word, config) for word in words)


def get_orp_index(word: str) -> int:
    """Index of the optimal recognition point (the highlighted letter)."""
    return len(word) // 3


def get_trail_words(previous_words: Sequence[str], count: int) -> List[str]:
    """
    Get the words shown before the current one, newest first.

    Args:
        previous_words: Words before the current word, in reading order.
        count: Maximum number of trail words.

    Returns:
        Up to count words, most recent first.
    """
    if count <= 0:
        return []
    return list(reversed(previous_words[-count:]))


def get_effective_wpm(words: Sequence[str], config: TimingConfig) -> int:
    """
    Estimate the reading speed in words per minute for the given words.

    Args:
        words: Sample of the words being read.
        config: The timing settings.

    Returns:
        Words per minute, or 0 when it cannot be computed.
    """
    sample = words[:WPM_SAMPLE_SIZE]
    if not sample:
        return 0

    average_delay = sum(get_delay(word, config) for word in sample) / len(sample)
    if average_delay <= 0:
        return 0
    return round(60 * 1000 / average_delay)
