"""
Settings dialog module for the Word Stream Reader application.
"""

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel,
    QDialogButtonBox, QSlider, QGroupBox, QSpinBox,
    QCheckBox, QFormLayout
)
from PyQt6.QtCore import Qt

from core.timing import TimingConfig, get_effective_wpm


# Sample used to show the resulting reading speed
SAMPLE_WORDS = "The quick brown fox jumps over the lazy dog. It was not amused!".split()


class SettingsDialog(QDialog):
    """Dialog for configuring playback timing and display."""

    def __init__(self, timing: TimingConfig, parent=None):
        """
        Initialize the dialog.

        Args:
            timing: The current timing settings.
            parent: Parent widget.
        """
        super().__init__(parent)

        self.timing = timing

        self.setWindowTitle("Settings")
        self.resize(400, 300)

        self.setup_ui()
        self.load_settings()

    def setup_ui(self):
        """Set up the user interface."""
        layout = QVBoxLayout(self)

        # Timing group
        timing_group = QGroupBox("Timing")
        timing_layout = QFormLayout()

        self.word_slider, word_row = self._slider_row(0, 500, "ms")
        timing_layout.addRow("Time per word:", word_row)

        self.character_slider, character_row = self._slider_row(0, 200, "ms")
        timing_layout.addRow("Time per character:", character_row)

        self.punctuation_slider, punctuation_row = self._slider_row(0, 300, "%")
        timing_layout.addRow("Punctuation pause:", punctuation_row)

        self.wpm_label = QLabel()
        timing_layout.addRow("Approximate speed:", self.wpm_label)

        timing_group.setLayout(timing_layout)
        layout.addWidget(timing_group)

        # Display group
        display_group = QGroupBox("Display")
        display_layout = QFormLayout()

        self.orp_checkbox = QCheckBox("Highlight recognition point")
        display_layout.addRow(self.orp_checkbox)

        self.trail_spin = QSpinBox()
        self.trail_spin.setRange(0, 20)
        display_layout.addRow("Trail words:", self.trail_spin)

        self.chunk_spin = QSpinBox()
        self.chunk_spin.setRange(1, 5)
        display_layout.addRow("Words per step:", self.chunk_spin)

        display_group.setLayout(display_layout)
        layout.addWidget(display_group)

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self.save_settings)
        button_box.rejected.connect(self.reject)
        layout.addWidget(button_box)

    def _slider_row(self, minimum, maximum, unit):
        row = QHBoxLayout()
        slider = QSlider(Qt.Orientation.Horizontal)
        slider.setRange(minimum, maximum)
        label = QLabel()
        slider.valueChanged.connect(lambda value: label.setText(f"{value} {unit}"))
        slider.valueChanged.connect(self.update_wpm_label)
        row.addWidget(slider)
        row.addWidget(label)
        return slider, row

    def load_settings(self):
        """Show the current settings."""
        self.word_slider.setValue(int(self.timing.time_per_word))
        self.character_slider.setValue(int(self.timing.time_per_character))
        self.punctuation_slider.setValue(int(self.timing.punctuation_delay))
        self.orp_checkbox.setChecked(self.timing.highlight_orp)
        self.trail_spin.setValue(self.timing.trail_words_count)
        self.chunk_spin.setValue(self.timing.chunk_size)
        self.update_wpm_label()

    def current_settings(self) -> TimingConfig:
        return TimingConfig(
            time_per_word=self.word_slider.value(),
            time_per_character=self.character_slider.value(),
            punctuation_delay=self.punctuation_slider.value(),
            highlight_orp=self.orp_checkbox.isChecked(),
            trail_words_count=self.trail_spin.value(),
            chunk_size=self.chunk_spin.value(),
        )

    def update_wpm_label(self, *args):
        """Update the approximate reading speed."""
        settings = self.current_settings()
        wpm = get_effective_wpm(SAMPLE_WORDS, settings)
        self.wpm_label.setText(f"{wpm} words per minute")

    def save_settings(self):
        """Keep the chosen settings and close the dialog."""
        self.timing = self.current_settings()
        self.accept()
