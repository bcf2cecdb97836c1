"""
Word Stream Reader application entry point.
"""

import sys

from PyQt6.QtWidgets import QApplication

from ui.main_window import MainWindow


def main():
    """Main entry point for the application."""
    # Create the application
    app = QApplication(sys.argv)
    app.setApplicationName("Word Stream Reader")

    # Create and show the main window
    window = MainWindow()
    window.show()

    # Open a document given on the command line
    if len(sys.argv) > 1:
        window.load_file(sys.argv[1])

    # Run the application
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
