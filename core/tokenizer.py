"""
Tokenizer module for the Word Stream Reader application.
Splits raw text into the word tokens shown during playback.
"""

import math
from typing import List, NamedTuple, Tuple

MAX_WORD_LENGTH = 20  # Longer words are truncated
WORDS_PER_PAGE = 250  # Used for the page estimate only


class TokenizedText(NamedTuple):
    """Result of tokenizing a full text."""
    tokens: List[str]
    total_words: int
    estimated_pages: int


def truncate_word(word: str, max_length: int = MAX_WORD_LENGTH) -> str:
    """
    Truncate a word to the maximum display length.

    Args:
        word: The word to truncate.
        max_length: Maximum number of characters to keep.

    Returns:
        The truncated word.
    """
    return word[:max_length] if len(word) > max_length else word


def estimate_pages(total_words: int) -> int:
    """Estimate the number of printed pages for a word count."""
    return math.ceil(total_words / WORDS_PER_PAGE)


def tokenize(raw_text, max_length: int = MAX_WORD_LENGTH) -> TokenizedText:
    """
    Split text into whitespace-delimited word tokens.

    Empty tokens are dropped and every token is truncated to max_length.
    Anything that is not a string is treated as empty text.

    Args:
        raw_text: The text to tokenize.
        max_length: Maximum length of a single token.

    Returns:
        TokenizedText with the tokens, the word count and a page estimate.
    """
    if not isinstance(raw_text, str):
        raw_text = ""

    # str.split() without arguments splits on runs of whitespace and drops empties
    tokens = [truncate_word(word, max_length) for word in raw_text.split()]
    total_words = len(tokens)
    return TokenizedText(tokens, total_words, estimate_pages(total_words))


def get_file_metadata(raw_text) -> Tuple[int, int]:
    """
    Get the word count and page estimate of a text.

    Args:
        raw_text: The text to inspect.

    Returns:
        Tuple of (total_words, estimated_pages)
    """
    result = tokenize(raw_text)
    return result.total_words, result.estimated_pages
