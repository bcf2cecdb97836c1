"""
Main window module for the Word Stream Reader application.
"""

import os

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence, QShortcut
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QToolBar, QFileDialog, QLabel,
    QSpinBox, QMessageBox, QProgressBar
)

from core.errors import SourceUnavailable
from core.reader_engine import ReaderEngine
from core.state_manager import StateManager
from core.text_processor import TextProcessor, TextSource
from ui.dialogs.settings_dialog import SettingsDialog
from ui.library_dialog import LibraryDialog
from ui.word_display import WordDisplay
from utils.helpers import (
    validate_file_path, get_supported_text_extensions,
    format_time, estimate_remaining_time
)
from utils.threads import ThreadManager


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self):
        """Initialize the main window."""
        super().__init__()

        # Initialize core components
        self.text_processor = TextProcessor()
        self.state_manager = StateManager()
        self.thread_manager = ThreadManager()
        self.engine = ReaderEngine(self.text_processor, self.state_manager, parent=self)

        # Path of the document being prepared in the background
        self.pending_path = None

        # Set up the UI
        self.setup_ui()

        # Connect engine signals
        self.engine.word_changed.connect(self.on_word_changed)
        self.engine.playing_changed.connect(self.on_playing_changed)
        self.engine.finished.connect(self.on_finished)
        self.engine.error_occurred.connect(self.on_engine_error)
        self.engine.source_opened.connect(self.on_source_opened)
        self.engine.source_closed.connect(self.on_source_closed)

        # Load saved state
        self.load_state()

    def setup_ui(self):
        """Set up the user interface."""
        self.setWindowTitle("Word Stream Reader")
        self.resize(900, 500)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        self.word_display = WordDisplay()
        self.word_display.set_highlight_orp(self.engine.timing.highlight_orp)
        main_layout.addWidget(self.word_display, stretch=1)

        # Playback controls
        controls_layout = QHBoxLayout()

        self.prev_button = QPushButton("← Previous")
        self.prev_button.setToolTip("Previous word (Left)")
        self.prev_button.clicked.connect(self.engine.previous)
        controls_layout.addWidget(self.prev_button)

        self.play_button = QPushButton("Play")
        self.play_button.setToolTip("Play/Pause (Space)")
        self.play_button.clicked.connect(self.engine.toggle_playback)
        controls_layout.addWidget(self.play_button)

        self.next_button = QPushButton("Next →")
        self.next_button.setToolTip("Next word (Right)")
        self.next_button.clicked.connect(self.engine.next)
        controls_layout.addWidget(self.next_button)

        controls_layout.addStretch()

        controls_layout.addWidget(QLabel("Go to word:"))
        self.jump_spin = QSpinBox()
        self.jump_spin.setRange(1, 1)
        self.jump_spin.setKeyboardTracking(False)
        self.jump_spin.editingFinished.connect(self.jump_to_spin_value)
        controls_layout.addWidget(self.jump_spin)

        main_layout.addLayout(controls_layout)

        # Progress information
        info_layout = QHBoxLayout()
        self.progress_label = QLabel("No document open")
        info_layout.addWidget(self.progress_label)
        info_layout.addStretch()
        self.time_label = QLabel("")
        info_layout.addWidget(self.time_label)
        main_layout.addLayout(info_layout)

        # Toolbar
        toolbar = QToolBar("Main Toolbar")
        self.addToolBar(toolbar)

        open_action = QAction("Open File", self)
        open_action.setToolTip("Open a document (TXT, MD, DOCX, PDF, etc.)")
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self.import_file)
        toolbar.addAction(open_action)

        library_action = QAction("Library", self)
        library_action.setToolTip("Continue reading a previous document")
        library_action.triggered.connect(self.show_library)
        toolbar.addAction(library_action)

        self.reset_action = QAction("Restart", self)
        self.reset_action.setToolTip("Go back to the first word (Ctrl+R)")
        self.reset_action.setShortcut(QKeySequence("Ctrl+R"))
        self.reset_action.triggered.connect(self.engine.reset_to_start)
        toolbar.addAction(self.reset_action)

        settings_action = QAction("Settings", self)
        settings_action.setToolTip("Configure timing and display")
        settings_action.triggered.connect(self.show_settings)
        toolbar.addAction(settings_action)

        # Keyboard shortcuts
        QShortcut(QKeySequence(Qt.Key.Key_Space), self, activated=self.engine.toggle_playback)
        QShortcut(QKeySequence(Qt.Key.Key_Left), self, activated=self.engine.previous)
        QShortcut(QKeySequence(Qt.Key.Key_Right), self, activated=self.engine.next)

        # Status bar
        self.status_bar = self.statusBar()
        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 0)
        self.progress_bar.setVisible(False)
        self.status_bar.addPermanentWidget(self.progress_bar)

        self.update_controls()

    def load_state(self):
        """Load saved state."""
        window_size = self.state_manager.get("window_size")
        window_position = self.state_manager.get("window_position")

        if window_size:
            self.resize(window_size[0], window_size[1])

        if window_position:
            self.move(window_position[0], window_position[1])

        # Reopen the last document if it still exists
        last_file = self.state_manager.get("last_file")
        if last_file and validate_file_path(last_file):
            self.load_file(last_file)

    def save_state(self):
        """Save current state."""
        self.state_manager.update({
            "window_size": [self.width(), self.height()],
            "window_position": [self.x(), self.y()],
        })
        self.state_manager.save_state()

    def closeEvent(self, event):
        """Handle window close event."""
        self.save_state()
        # Saves the reading position before the worker stops
        self.engine.shutdown()
        self.thread_manager.wait_for_done(2000)
        event.accept()

    # Opening documents

    def import_file(self):
        """Ask for a document and open it."""
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Document",
            "",
            f"Documents ({' '.join(['*' + ext for ext in get_supported_text_extensions()])})"
        )

        if file_path:
            self.load_file(file_path)

    def load_file(self, file_path: str):
        """
        Open a document. Conversion to markdown runs on the thread pool.

        Args:
            file_path: Path to the document.
        """
        if self.pending_path is not None:
            self.status_bar.showMessage("Another document is still loading")
            return

        self.engine.pause()
        self.pending_path = file_path
        self.status_bar.showMessage(f"Loading file: {os.path.basename(file_path)}")
        self.progress_bar.setVisible(True)

        worker = self.thread_manager.start_worker(self.text_processor.prepare, file_path)
        worker.signals.result.connect(self.handle_prepared_source)
        worker.signals.error.connect(self.handle_worker_error)

    def handle_prepared_source(self, source):
        """Open a prepared source in the engine."""
        self.pending_path = None
        self.progress_bar.setVisible(False)
        try:
            self.engine.open(source)
        except SourceUnavailable:
            # Reported through error_occurred
            return

    def handle_worker_error(self, exception, traceback_text):
        """
        Handle a failed document preparation.

        Args:
            exception: The raised exception.
            traceback_text: Formatted traceback.
        """
        print(traceback_text)
        path = self.pending_path
        self.pending_path = None
        self.progress_bar.setVisible(False)
        self.status_bar.showMessage("")
        QMessageBox.critical(self, "Error", f"Failed to load {os.path.basename(path or '')}: {str(exception)}")

    def show_library(self):
        """Show the library of previously opened documents."""
        dialog = LibraryDialog(self.state_manager.list_projects(), self)
        dialog.project_selected.connect(self.open_project)
        dialog.project_removed.connect(self.remove_project)
        dialog.exec()

    def open_project(self, entry: dict):
        path = entry.get("path")
        if not path or not validate_file_path(path):
            QMessageBox.warning(self, "Missing Document", f"The file {path} no longer exists.")
            return
        self.load_file(path)

    def remove_project(self, source_id: str):
        source = self.engine.source
        if source is not None and source.source_id == source_id:
            self.engine.close()
        for entry in self.state_manager.list_projects():
            if entry["id"] == source_id and entry.get("path"):
                # Drop the converted copy as well
                self.text_processor.remove_markdown(TextSource(entry["path"], source_id))
        self.state_manager.remove_project(source_id)

    # Engine signal handlers

    def on_source_opened(self, info: dict):
        self.setWindowTitle(f"Word Stream Reader - {info.get('filename')}")
        self.jump_spin.setRange(1, max(1, info.get("total_words") or 0))
        self.status_bar.showMessage(f"Loaded file: {info.get('filename')}", 3000)
        self.update_controls()

    def on_source_closed(self):
        self.setWindowTitle("Word Stream Reader")
        self.word_display.clear()
        self.progress_label.setText("No document open")
        self.time_label.setText("")
        self.update_controls()

    def on_word_changed(self, text: str, global_index: int):
        """Show the new word and refresh the progress."""
        self.word_display.set_text(text)
        self.word_display.set_trail(self.engine.trail_words())
        self.update_progress()

    def on_playing_changed(self, playing: bool):
        self.play_button.setText("Pause" if playing else "Play")

    def on_finished(self):
        self.word_display.set_trail(self.engine.trail_words())
        self.update_progress()
        self.status_bar.showMessage("Finished reading", 3000)

    def on_engine_error(self, message: str):
        self.progress_bar.setVisible(False)
        QMessageBox.critical(self, "Error", message)

    # Controls

    def jump_to_spin_value(self):
        if self.engine.source is not None:
            self.engine.jump(self.jump_spin.value() - 1)

    def update_progress(self):
        """Update the progress and remaining time labels."""
        if self.engine.source is None:
            return

        progress = self.engine.progress()
        if progress.total == 0:
            self.progress_label.setText("Empty document")
            self.time_label.setText("")
            return

        position = progress.index + 1
        self.progress_label.setText(f"Word {position} of {progress.total} ({progress.percentage}%)")

        wpm = self.engine.effective_wpm()
        remaining = estimate_remaining_time(progress.total - position, wpm)
        self.time_label.setText(f"{wpm} wpm, {format_time(remaining)} left")

        self.jump_spin.blockSignals(True)
        self.jump_spin.setValue(position)
        self.jump_spin.blockSignals(False)

    def update_controls(self):
        """Enable the controls that apply to an open document."""
        has_source = self.engine.source is not None
        for widget in (self.prev_button, self.play_button, self.next_button, self.jump_spin):
            widget.setEnabled(has_source)
        self.reset_action.setEnabled(has_source)

    def show_settings(self):
        """Show the settings dialog."""
        dialog = SettingsDialog(self.engine.timing, self)
        if dialog.exec():
            self.engine.set_timing(dialog.timing)
            self.word_display.set_highlight_orp(dialog.timing.highlight_orp)
            self.update_progress()
