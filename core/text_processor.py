"""
Text processing module for the Word Stream Reader application.
Provides the raw text of a source. Plain text and Markdown files are read directly;
other formats are converted to Markdown once using markitdown and the converted copy
is reused on later reads.
"""

import hashlib
import os
from pathlib import Path
from typing import Dict, Optional

from markitdown import MarkItDown

from core.errors import SourceUnavailable
from utils.helpers import get_app_data_dir, validate_file_path

PLAIN_TEXT_FORMATS = ('txt', 'text')
MARKDOWN_FORMATS = ('md', 'markdown')


def make_source_id(file_path: str) -> str:
    """
    Create a stable identifier for a file.

    Args:
        file_path: Path to the file.

    Returns:
        Short hexadecimal id derived from the absolute path.
    """
    absolute_path = os.path.abspath(file_path)
    return hashlib.md5(absolute_path.encode('utf-8')).hexdigest()[:12]


class TextSource:
    """Handle to a text document that can be opened in the reader."""

    def __init__(self, path: str, source_id: Optional[str] = None):
        """
        Initialize the source.

        Args:
            path: Path to the document.
            source_id: Stable identifier. Derived from the path if None.
        """
        self.path = os.path.abspath(path)
        self.source_id = source_id or make_source_id(self.path)
        self.filename = os.path.basename(self.path)
        self.total_words: Optional[int] = None

    @property
    def format(self) -> str:
        """File format, taken from the extension."""
        return Path(self.path).suffix.lower().lstrip('.')

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.source_id,
            "filename": self.filename,
            "path": self.path,
            "total_words": self.total_words,
        }

    def __eq__(self, other):
        return isinstance(other, TextSource) and other.source_id == self.source_id

    def __hash__(self):
        return hash(self.source_id)

    def __repr__(self):
        return f"TextSource({self.filename!r}, id={self.source_id})"


class TextProcessor:
    """Reads the raw text of sources, converting documents to Markdown when needed."""

    def __init__(self, markdown_dir: Optional[str] = None):
        """
        Initialize the text processor.

        Args:
            markdown_dir: Directory for storing converted markdown files. If None, uses the default.
        """
        # Create a dedicated directory for markdown files
        self.markdown_dir = markdown_dir or os.path.join(get_app_data_dir(), 'markdown_files')
        os.makedirs(self.markdown_dir, exist_ok=True)

        # Initialize MarkItDown
        self.md = MarkItDown(enable_plugins=False)

        # Cache of source ids to markdown paths
        self.file_path_cache: Dict[str, str] = {}

    def get_markdown_path(self, source: TextSource) -> str:
        """
        Get the path where the markdown version of a source is stored.

        Args:
            source: The source.

        Returns:
            Path where the markdown version should be stored.
        """
        # Check cache first
        if source.source_id in self.file_path_cache:
            return self.file_path_cache[source.source_id]

        base_name, _ = os.path.splitext(source.filename)
        markdown_filename = f"{base_name}_{source.source_id}.md"
        markdown_path = os.path.join(self.markdown_dir, markdown_filename)

        # Cache the result
        self.file_path_cache[source.source_id] = markdown_path
        return markdown_path

    def needs_conversion(self, source: TextSource) -> bool:
        """Check whether a source has to go through markitdown."""
        return source.format not in PLAIN_TEXT_FORMATS + MARKDOWN_FORMATS

    def prepare(self, file_path: str) -> TextSource:
        """
        Create a source for a file and convert it to Markdown if necessary.
        Conversion can be slow for large documents, so the UI runs this in a worker.

        Args:
            file_path: Path to the file.

        Returns:
            The source, ready for reading.

        Raises:
            SourceUnavailable: If the file cannot be read or converted.
        """
        source = TextSource(file_path)
        if not validate_file_path(source.path):
            raise SourceUnavailable(source.source_id, f"cannot read {source.path}")

        if self.needs_conversion(source):
            self._convert(source)
        return source

    def read_all(self, source: TextSource) -> str:
        """
        Read the full raw text of a source.

        Args:
            source: The source to read.

        Returns:
            The complete text.

        Raises:
            SourceUnavailable: If the text cannot be read.
        """
        if not self.needs_conversion(source):
            return self._read_text(source.path, source)

        markdown_path = self.get_markdown_path(source)
        if os.path.exists(markdown_path):
            return self._read_text(markdown_path, source)
        return self._convert(source)

    def _read_text(self, path: str, source: TextSource) -> str:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(source.source_id, str(e)) from e

    def _convert(self, source: TextSource) -> str:
        """Convert a document with markitdown and save the Markdown copy."""
        markdown_path = self.get_markdown_path(source)
        if os.path.exists(markdown_path):
            print(f"Found existing markdown file: {markdown_path}")
            return self._read_text(markdown_path, source)

        try:
            result = self.md.convert(source.path)
            content = result.text_content
        except Exception as e:
            raise SourceUnavailable(source.source_id, f"failed to convert file to Markdown: {e}") from e

        self.save_markdown(content, source)
        return content

    def save_markdown(self, content: str, source: TextSource) -> str:
        """
        Save Markdown content to the markdown directory.

        Args:
            content: The Markdown content to save.
            source: The source the content was converted from.

        Returns:
            Path to the saved Markdown file.
        """
        markdown_path = self.get_markdown_path(source)

        try:
            with open(markdown_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise SourceUnavailable(source.source_id, f"could not save markdown: {e}") from e

        print(f"Saved markdown file: {markdown_path}")
        return markdown_path

    def remove_markdown(self, source: TextSource) -> bool:
        """
        Delete the converted Markdown copy of a source.

        Args:
            source: The source.

        Returns:
            True if a file was deleted, False otherwise.
        """
        markdown_path = self.get_markdown_path(source)
        self.file_path_cache.pop(source.source_id, None)
        if os.path.exists(markdown_path):
            try:
                os.remove(markdown_path)
                return True
            except OSError as e:
                print(f"Error deleting markdown file: {str(e)}")
        return False
