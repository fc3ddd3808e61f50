"""
Leaderboard store for the most recent finished sessions, persisted as JSON.
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Union

from .models import LeaderboardEntry


class LeaderboardStore:
    """Keeps the last few session results in a JSON file, most recent first."""

    DEFAULT_PATH = "./data/quiz_scores.json"
    MAX_ENTRIES = 5

    def __init__(self, path: Union[str, Path] = DEFAULT_PATH, max_entries: int = MAX_ENTRIES):
        """
        Initialize the store.

        Args:
            path: JSON file holding the persisted entries
            max_entries: Number of entries kept
        """
        self.path = Path(path)
        self.max_entries = max_entries
        self.logger = logging.getLogger(__name__)

    def load(self) -> List[LeaderboardEntry]:
        """
        Load the persisted entries.

        A missing, unreadable or corrupted file yields an empty list; single
        malformed records are skipped.

        Returns:
            Entries, most recent first
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except UnicodeDecodeError as e:
            self.logger.error(f"Leaderboard file {self.path} is not valid UTF-8: {e}")
            return []
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in leaderboard file {self.path}: {e}")
            return []
        except OSError as e:
            self.logger.error(f"Failed to read leaderboard file {self.path}: {e}")
            return []

        if not isinstance(data, list):
            self.logger.error(f"Leaderboard file {self.path} must contain a JSON array")
            return []

        entries = []
        for i, record in enumerate(data):
            try:
                entries.append(LeaderboardEntry.from_dict(record))
            except ValueError as e:
                self.logger.warning(f"Skipping leaderboard record {i}: {e}")

        return entries[:self.max_entries]

    def record(self, entry: LeaderboardEntry) -> List[LeaderboardEntry]:
        """
        Prepend an entry and keep only the most recent ones.

        Args:
            entry: Result of a finished session

        Returns:
            The updated list of entries, most recent first
        """
        entries = [entry] + self.load()
        entries = entries[:self.max_entries]

        try:
            self._write(entries)
            self.logger.info(
                f"Recorded leaderboard entry for '{entry.category}': {entry.score}/{entry.total}",
                extra={
                    'event_type': 'leaderboard_recorded',
                    'category': entry.category,
                    'score': entry.score,
                    'total': entry.total,
                }
            )
        except OSError as e:
            self.logger.error(f"Failed to write leaderboard file {self.path}: {e}")

        return entries

    def clear(self) -> None:
        """Remove all persisted entries."""
        try:
            self.path.unlink()
            self.logger.info(f"Cleared leaderboard file {self.path}")
        except FileNotFoundError:
            pass

    def _write(self, entries: List[LeaderboardEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)
