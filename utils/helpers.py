"""
Helper functions for the Word Stream Reader application.
"""

import os
from pathlib import Path
from typing import List

APP_DIR_NAME = '.word_stream_reader'


def get_app_data_dir() -> str:
    """
    Get the directory for application data, creating it if needed.

    Returns:
        Path to the application data directory.
    """
    app_dir = os.environ.get('WORD_STREAM_READER_HOME') or str(Path.home() / APP_DIR_NAME)
    os.makedirs(app_dir, exist_ok=True)
    return app_dir


def validate_file_path(file_path: str) -> bool:
    """
    Validate that a file path exists and is readable.

    Args:
        file_path: The file path to validate.

    Returns:
        True if the file exists and is readable, False otherwise.
    """
    try:
        return os.path.isfile(file_path) and os.access(file_path, os.R_OK)
    except (TypeError, ValueError):
        return False


def get_supported_text_extensions() -> List[str]:
    """
    Get a list of supported text file extensions.

    Returns:
        List of extensions with dots.
    """
    # This is a simplified list - markitdown supports many more formats
    return ['.txt', '.md', '.markdown', '.docx', '.pdf', '.rtf', '.odt', '.html', '.epub']


def format_time(seconds: float) -> str:
    """
    Format time in seconds to a human-readable string (MM:SS or H:MM:SS).

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string.
    """
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def estimate_remaining_time(remaining_words: int, words_per_minute: int) -> float:
    """
    Estimate the reading time left, in seconds.

    Args:
        remaining_words: Number of words not read yet.
        words_per_minute: Current reading speed.

    Returns:
        Seconds left, or 0 if the speed is unknown.
    """
    if words_per_minute <= 0 or remaining_words <= 0:
        return 0.0
    return remaining_words * 60.0 / words_per_minute
