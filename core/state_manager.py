"""
State manager module for the Word Stream Reader application.
Handles loading and saving application state: reading progress per source,
the library of opened documents and the timing settings.
"""

import copy
import json
import os
import tempfile
import threading
import time
import warnings
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.errors import PersistenceFailure
from core.timing import TimingConfig
from utils.helpers import get_app_data_dir


class StateManager:
    """Manages loading/saving application state."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the state manager.

        Args:
            config_path: Path to the config file. If None, uses the default.
        """
        self.config_path = config_path or os.path.join(get_app_data_dir(), 'config.json')
        # Progress is written from the background processor while the UI reads settings
        self.lock = threading.RLock()
        self._write_lock = threading.Lock()
        self.state = self._load_state()

    def _load_state(self) -> Dict[str, Any]:
        """
        Load state from the config file.

        Returns:
            Dictionary with the state.
        """
        state = self._get_default_state()
        if not os.path.exists(self.config_path):
            return state

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            # If the file is corrupted or can't be read, use the default state
            warnings.warn(f"Could not read state from {self.config_path}: {str(e)}. Using defaults.")
            return state

        if not isinstance(loaded, dict):
            warnings.warn(f"Unexpected state format in {self.config_path}. Using defaults.")
            return state

        state.update(loaded)
        return state

    def _get_default_state(self) -> Dict[str, Any]:
        """
        Get the default state.

        Returns:
            Dictionary with the default state.
        """
        return {
            "last_file": None,
            "progress": {},  # Map of source id to progress record
            "projects": {},  # Map of source id to library entry
            "timing_settings": TimingConfig().to_dict(),
            "project_settings": {},  # Map of source id to timing settings
            "window_size": [900, 500],
            "window_position": [100, 100]
        }

    def _write_state(self):
        """
        Write the state to the config file atomically.

        Raises:
            PersistenceFailure: If the file cannot be written.
        """
        # Snapshot and write under one lock so an older snapshot never replaces a newer file
        with self._write_lock:
            with self.lock:
                snapshot = copy.deepcopy(self.state)
            self._write_snapshot(snapshot)

    def _write_snapshot(self, snapshot: Dict[str, Any]):
        directory = os.path.dirname(os.path.abspath(self.config_path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix='.config-', suffix='.json', dir=directory)
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(temp_path, self.config_path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Could not save state to {self.config_path}: {e}") from e

    def save_state(self) -> bool:
        """
        Save the current state to the config file.

        Returns:
            True if the state was written, False otherwise.
        """
        try:
            self._write_state()
            return True
        except PersistenceFailure as e:
            # Log error but don't crash
            print(f"Error: {str(e)}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a value from the state.

        Args:
            key: The key to get.
            default: Default value if the key doesn't exist.

        Returns:
            The value or default.
        """
        with self.lock:
            return self.state.get(key, default)

    def set(self, key: str, value: Any):
        """
        Set a value in the state.

        Args:
            key: The key to set.
            value: The value to set.
        """
        with self.lock:
            self.state[key] = value

    def update(self, updates: Dict[str, Any]):
        """
        Update multiple values in the state.

        Args:
            updates: Dictionary with updates.
        """
        with self.lock:
            self.state.update(updates)

    # Reading progress

    def save_progress(self, source_id: str, global_index: int, timestamp: Optional[float] = None):
        """
        Record the reading position of a source and write it to disk.

        Args:
            source_id: The source identifier.
            global_index: Global index of the current word.
            timestamp: Time of the save. If None, uses the current time.

        Raises:
            PersistenceFailure: If the state cannot be written.
        """
        saved_at = time.time() if timestamp is None else timestamp
        with self.lock:
            record = self.state.setdefault("progress", {}).setdefault(source_id, {})
            record["global_index"] = int(global_index)
            record["saved_at"] = saved_at

            project = self.state.get("projects", {}).get(source_id)
            if project is not None:
                project["current_word_index"] = int(global_index)
                project["last_read"] = saved_at

        self._write_state()

    def load_progress(self, source_id: str) -> Optional[int]:
        """
        Get the saved reading position of a source.

        Args:
            source_id: The source identifier.

        Returns:
            The global index, or None if nothing was saved.
        """
        with self.lock:
            record = self.state.get("progress", {}).get(source_id)
            if not record:
                return None
            try:
                return int(record.get("global_index"))
            except (TypeError, ValueError):
                return None

    def get_progress_record(self, source_id: str) -> Optional[Dict[str, Any]]:
        """Get a copy of the saved progress record of a source."""
        with self.lock:
            record = self.state.get("progress", {}).get(source_id)
            return dict(record) if record else None

    def clear_progress(self, source_id: str) -> bool:
        """
        Remove the saved reading position of a source.

        Returns:
            True if a record was removed.
        """
        with self.lock:
            removed = self.state.get("progress", {}).pop(source_id, None) is not None
        if removed:
            self.save_state()
        return removed

    # Library of opened documents

    def register_source(self, source_info: Dict[str, Any]):
        """
        Add or refresh a library entry for an opened source.

        Args:
            source_info: Dictionary with at least id, filename, path and total_words.
        """
        source_id = source_info["id"]
        with self.lock:
            projects = self.state.setdefault("projects", {})
            entry = projects.get(source_id)
            if entry is None:
                entry = {
                    "id": source_id,
                    "created_at": datetime.now().isoformat(timespec='seconds'),
                    "current_word_index": self.load_progress(source_id) or 0,
                }
                projects[source_id] = entry
            entry["filename"] = source_info.get("filename")
            entry["path"] = source_info.get("path")
            entry["total_words"] = source_info.get("total_words") or 0
            self.state["last_file"] = source_info.get("path")
        self.save_state()

    def list_projects(self) -> List[Dict[str, Any]]:
        """
        Get the library entries, most recently read first.

        Returns:
            List of library entry dictionaries.
        """
        with self.lock:
            projects = [dict(entry) for entry in self.state.get("projects", {}).values()]
        return sorted(projects, key=lambda entry: entry.get("last_read") or 0, reverse=True)

    def remove_project(self, source_id: str) -> bool:
        """
        Remove a document from the library together with its progress and settings.

        Returns:
            True if the document was in the library.
        """
        with self.lock:
            removed = self.state.get("projects", {}).pop(source_id, None) is not None
            self.state.get("progress", {}).pop(source_id, None)
            self.state.get("project_settings", {}).pop(source_id, None)
        if removed:
            self.save_state()
        return removed

    # Timing settings

    def get_timing_settings(self, source_id: Optional[str] = None) -> TimingConfig:
        """
        Get the timing settings, preferring the ones saved for a source.

        Args:
            source_id: The source identifier, or None for the global settings.

        Returns:
            The timing settings.
        """
        with self.lock:
            values = dict(self.state.get("timing_settings") or {})
            if source_id is not None:
                values.update(self.state.get("project_settings", {}).get(source_id) or {})

        try:
            return TimingConfig.from_dict(values)
        except (TypeError, ValueError) as e:
            warnings.warn(f"Invalid timing settings: {str(e)}. Using defaults.")
            return TimingConfig()

    def save_timing_settings(self, settings: TimingConfig, source_id: Optional[str] = None) -> bool:
        """
        Save timing settings globally and, if given, for a source.

        Args:
            settings: The timing settings.
            source_id: The source identifier, or None.

        Returns:
            True if the state was written.
        """
        with self.lock:
            self.state["timing_settings"] = settings.to_dict()
            if source_id is not None:
                self.state.setdefault("project_settings", {})[source_id] = settings.to_dict()
        return self.save_state()
