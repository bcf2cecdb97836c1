"""
Word display widget for the Word Stream Reader application.
Shows the current word with its recognition point highlighted, and the trail of previous words.
"""

import html
from typing import List

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QLabel, QVBoxLayout, QWidget

from core.timing import get_orp_index


def format_orp_html(word: str, color: str = "#d32f2f") -> str:
    """
    Format a word as rich text with its recognition point in color.

    Args:
        word: The word to format.
        color: Color of the highlighted letter.

    Returns:
        HTML string.
    """
    if not word:
        return ""
    orp = get_orp_index(word)
    before = html.escape(word[:orp])
    letter = html.escape(word[orp])
    after = html.escape(word[orp + 1:])
    return f'{before}<span style="color: {color};">{letter}</span>{after}'


class WordDisplay(QWidget):
    """
    Displays one word (or chunk of words) at a time.
    """
    # Signal emitted when the displayed content changes
    content_changed = pyqtSignal()

    def __init__(self, parent=None):
        """Initialize the word display."""
        super().__init__(parent)

        self.current_text = ""
        self.highlight_orp = True

        layout = QVBoxLayout(self)
        layout.addStretch()

        self.word_label = QLabel()
        self.word_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.word_label.setTextFormat(Qt.TextFormat.RichText)
        self.word_label.setFont(QFont("Arial", 36))
        layout.addWidget(self.word_label)

        self.trail_label = QLabel()
        self.trail_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.trail_label.setFont(QFont("Arial", 14))
        self.trail_label.setStyleSheet("color: gray;")
        layout.addWidget(self.trail_label)

        layout.addStretch()

    def set_highlight_orp(self, enabled: bool):
        """Turn the recognition point highlight on or off."""
        self.highlight_orp = enabled
        self.set_text(self.current_text)

    def set_text(self, text: str):
        """
        Show a word or a chunk of words.

        Args:
            text: The text to show. Chunks are highlighted on their first word only.
        """
        self.current_text = text or ""
        if self.highlight_orp and self.current_text:
            first, _, rest = self.current_text.partition(" ")
            formatted = format_orp_html(first)
            if rest:
                formatted += " " + html.escape(rest)
            self.word_label.setText(formatted)
        else:
            self.word_label.setText(html.escape(self.current_text))
        self.content_changed.emit()

    def set_trail(self, words: List[str]):
        """
        Show the previous words.

        Args:
            words: Previous words, most recent first.
        """
        self.trail_label.setText("  ".join(reversed(words)))

    def clear(self):
        self.current_text = ""
        self.word_label.clear()
        self.trail_label.clear()
        self.content_changed.emit()
