"""
Storage of completed lessons, keyed by lesson id.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set, Union


@dataclass(frozen=True)
class CompletedLesson:
    id: str
    recital_text: str
    completed_at: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "recital_text": self.recital_text,
            "completed_at": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "CompletedLesson":
        return cls(
            id=data["id"],
            recital_text=data.get("recital_text", ""),
            completed_at=datetime.fromisoformat(data["completed_at"]),
        )


class CompletedLessonStore:
    """
    Key/value store of completed lessons.

    Backed by a JSON file when a path is given, otherwise kept in memory.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._lessons: Dict[str, CompletedLesson] = {}

        if self.path and self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                records = json.load(f)
            self._lessons = {record["id"]: CompletedLesson.from_dict(record) for record in records}
            self.logger.debug(f"Loaded {len(self._lessons)} completed lessons from {self.path}")
        except (OSError, ValueError, KeyError) as e:
            self.logger.warning(f"Could not read completed lessons from {self.path}: {e}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [lesson.to_dict() for lesson in self._lessons.values()]
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(records, f, ensure_ascii=False, indent=2)

    def add_completed_lesson(self, lesson_id: str, recital_text: str) -> Optional[CompletedLesson]:
        """
        Add or replace the completed record of a lesson.

        Returns:
            The stored record, or None if it could not be written
        """
        completed = CompletedLesson(
            id=lesson_id, recital_text=recital_text, completed_at=datetime.now(timezone.utc)
        )
        with self._lock:
            self._lessons[lesson_id] = completed
            if self.path:
                try:
                    self._save()
                except OSError as e:
                    self.logger.error(f"Failed to save completed lesson: {e}")
                    return None
        self.logger.info(f"Lesson {lesson_id} saved as completed.")
        return completed

    def get_completed_lesson(self, lesson_id: str) -> Optional[CompletedLesson]:
        return self._lessons.get(lesson_id)

    def get_all_completed_lesson_ids(self) -> Set[str]:
        return set(self._lessons)
