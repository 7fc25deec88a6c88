"""Persistent storage for the alert log using a JSON file."""
import json
import logging
import os
from typing import List, Dict
from pathlib import Path

logger = logging.getLogger(__name__)


class AlertStorage:
    """Persistent storage for alerts using JSON file (newest first)."""

    def __init__(self, storage_file: str = "alerts_history.json", max_alerts: int = 200):
        """
        Initialize alert storage.

        Args:
            storage_file: Path to JSON file for storing alerts
            max_alerts: Maximum number of alerts kept on disk
        """
        self.storage_file = storage_file
        self.storage_path = Path(storage_file)
        self.max_alerts = max_alerts
        self._ensure_storage_dir()

    def _ensure_storage_dir(self):
        """Ensure the storage directory exists."""
        if self.storage_path.parent != Path("."):
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)

    def load_alerts(self) -> List[Dict]:
        """
        Load alerts from storage file.

        Returns:
            List of alert dictionaries, most recent first. Empty when the
            file is missing or unreadable.
        """
        if not self.storage_path.exists():
            return []

        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                alerts = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading alerts from storage: %s", e)
            return []
        if not isinstance(alerts, list):
            return []
        return [a for a in alerts if isinstance(a, dict)][:self.max_alerts]

    def save_all(self, alerts: List[Dict]):
        """
        Save all alerts to storage (replaces existing).

        Args:
            alerts: List of alert dictionaries, most recent first
        """
        temp_file = f"{self.storage_file}.tmp"
        try:
            # Write to temporary file first, then rename (atomic operation)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(alerts[:self.max_alerts], f, indent=2, ensure_ascii=False)
            os.replace(temp_file, self.storage_file)
        except OSError as e:
            logger.error("Error saving alerts to storage: %s", e)
            if os.path.exists(temp_file):
                try:
                    os.remove(temp_file)
                except OSError:
                    pass

    def clear(self):
        """Clear all stored alerts."""
        if self.storage_path.exists():
            try:
                self.storage_path.unlink()
            except OSError as e:
                logger.error("Error clearing alert storage: %s", e)
