"""
Library dialog for the Word Stream Reader application.
Lists the documents that were opened before, with their reading progress.
"""

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QListWidget, QListWidgetItem,
    QPushButton, QLabel, QMessageBox, QFrame
)
from PyQt6.QtCore import Qt, pyqtSignal


def format_entry(entry: dict) -> str:
    """Format a library entry for the list."""
    total = entry.get("total_words") or 0
    index = entry.get("current_word_index") or 0
    percentage = round(index * 100 / total) if total else 0

    text = f"{entry.get('filename') or entry.get('id')}\n"
    text += f"Word {index} of {total} ({percentage}%)"
    if entry.get("created_at"):
        text += f"\nAdded: {entry['created_at']}"
    return text


class LibraryDialog(QDialog):
    """Dialog for reopening and removing documents."""

    # Signal emitted with the library entry to open
    project_selected = pyqtSignal(dict)

    # Signal emitted with the id of a removed document
    project_removed = pyqtSignal(str)

    def __init__(self, projects, parent=None):
        """
        Initialize the library dialog.

        Args:
            projects: List of library entry dictionaries.
            parent: Parent widget.
        """
        super().__init__(parent)

        self.setWindowTitle("Library")
        self.setMinimumSize(500, 400)

        self.projects = list(projects or [])

        layout = QVBoxLayout()

        header_label = QLabel("Your Documents")
        header_label.setStyleSheet("font-size: 16px; font-weight: bold;")
        layout.addWidget(header_label)

        description = QLabel("Select a document to continue reading where you left off.")
        layout.addWidget(description)

        separator = QFrame()
        separator.setFrameShape(QFrame.Shape.HLine)
        separator.setFrameShadow(QFrame.Shadow.Sunken)
        layout.addWidget(separator)

        self.projects_list = QListWidget()
        self.projects_list.setAlternatingRowColors(True)
        self.projects_list.itemDoubleClicked.connect(self.on_item_double_clicked)
        self.projects_list.currentItemChanged.connect(self.update_button_states)
        layout.addWidget(self.projects_list)

        self.populate_projects_list()

        button_layout = QHBoxLayout()

        self.open_button = QPushButton("Open")
        self.open_button.clicked.connect(self.on_open_clicked)
        button_layout.addWidget(self.open_button)

        self.remove_button = QPushButton("Remove")
        self.remove_button.clicked.connect(self.on_remove_clicked)
        button_layout.addWidget(self.remove_button)

        close_button = QPushButton("Close")
        close_button.clicked.connect(self.close)
        button_layout.addWidget(close_button)

        layout.addLayout(button_layout)
        self.setLayout(layout)

        self.update_button_states()

    def populate_projects_list(self):
        """Populate the list of documents."""
        self.projects_list.clear()
        for entry in self.projects:
            item = QListWidgetItem(format_entry(entry))
            item.setData(Qt.ItemDataRole.UserRole, entry)
            self.projects_list.addItem(item)

    def update_button_states(self, *args):
        """Update button states based on selection."""
        has_selection = self.projects_list.currentItem() is not None
        self.open_button.setEnabled(has_selection)
        self.remove_button.setEnabled(has_selection)

    def on_item_double_clicked(self, item):
        self.project_selected.emit(item.data(Qt.ItemDataRole.UserRole))
        self.accept()

    def on_open_clicked(self):
        current_item = self.projects_list.currentItem()
        if current_item:
            self.project_selected.emit(current_item.data(Qt.ItemDataRole.UserRole))
            self.accept()

    def on_remove_clicked(self):
        """Remove the selected document after confirmation."""
        current_row = self.projects_list.currentRow()
        if current_row < 0:
            return

        entry = self.projects[current_row]
        response = QMessageBox.question(
            self,
            "Remove Document",
            f"Remove {entry.get('filename')} and its reading progress from the library?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )
        if response != QMessageBox.StandardButton.Yes:
            return

        self.projects_list.takeItem(current_row)
        del self.projects[current_row]
        self.project_removed.emit(entry["id"])
        self.update_button_states()
