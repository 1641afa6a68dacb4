"""
Lesson catalog: the ordered, read-only list of texts to practice.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union
from urllib.parse import urljoin

import requests

from . import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lesson:
    """A practice text with a stable unique id."""
    id: str
    title: str
    content: str


DEFAULT_LESSONS = (
    Lesson(
        id="morning-walk",
        title="A Morning Walk",
        content=(
            "Every morning, Anna walks to the park near her house. "
            "She likes to watch the birds and listen to the wind in the trees. "
            "Sometimes she meets her neighbor and they talk about the weather."
        ),
    ),
    Lesson(
        id="the-market",
        title="At the Market",
        content=(
            "On Saturdays the market is full of people. "
            "Farmers sell fresh bread, cheese and vegetables. "
            "Can you smell the coffee? It comes from the small stand at the corner!"
        ),
    ),
    Lesson(
        id="rainy-day",
        title="A Rainy Day",
        content=(
            "It rained all day, so the children stayed inside. "
            "They built a tower of books and read stories to each other. "
            "In the evening the sky cleared and a rainbow appeared."
        ),
    ),
)


class LessonCatalog:
    """Ordered, immutable collection of lessons."""

    def __init__(self, lessons: Iterable[Lesson] = DEFAULT_LESSONS):
        self._lessons = tuple(lessons)

    def __len__(self) -> int:
        return len(self._lessons)

    def __iter__(self) -> Iterator[Lesson]:
        return iter(self._lessons)

    def __getitem__(self, index: int) -> Lesson:
        return self._lessons[index]

    @property
    def lessons(self) -> tuple:
        return self._lessons

    def index_of(self, lesson_id: str) -> int:
        """Position of the lesson with this id, or -1 if it is not in the catalog."""
        for index, lesson in enumerate(self._lessons):
            if lesson.id == lesson_id:
                return index
        return -1

    def get(self, lesson_id: str) -> Optional[Lesson]:
        index = self.index_of(lesson_id)
        return self._lessons[index] if index >= 0 else None


def _lessons_from_records(records: List[Dict]) -> List[Lesson]:
    return [
        Lesson(id=str(record["id"]), title=record.get("title", str(record["id"])), content=record["content"])
        for record in records
    ]


def load_catalog(path: Union[str, Path]) -> LessonCatalog:
    """
    Load a lesson catalog from a JSON file.

    The file holds either a list of lesson records or {"lessons": [...]},
    each record with 'id', 'content' and optionally 'title'.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading lesson catalog {path}: {e}")
        raise Exception(f"Failed to load lesson catalog: {e}")

    records = data.get("lessons", []) if isinstance(data, dict) else data
    lessons = _lessons_from_records(records)
    logger.info(f"Loaded {len(lessons)} lessons from {path}")
    return LessonCatalog(lessons)


class LessonAPIClient:
    """Client for a remote lesson catalog."""

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

    def get_catalog(self) -> LessonCatalog:
        """Fetch all lessons from the 'lessons' endpoint."""
        try:
            data = self._make_request("lessons")
            records = data.get("lessons", []) if isinstance(data, dict) else data
            return LessonCatalog(_lessons_from_records(records))
        except requests.RequestException as e:
            self.logger.error(f"Network error accessing lesson API: {e}")
            raise Exception(f"Failed to fetch lessons: {e}")
        except (KeyError, TypeError) as e:
            self.logger.error(f"Error processing lesson API response: {e}")
            raise Exception(f"Invalid lesson data: {e}")

    def _make_request(self, endpoint: str) -> Dict:
        """Make a request to the lesson API."""
        url = urljoin(self.base_url, endpoint)
        self.logger.debug(f"Making request to: {url}")

        response = self.session.get(url, timeout=config.REQUEST_TIMEOUT)
        response.raise_for_status()

        return response.json()


def get_default_catalog() -> LessonCatalog:
    """Catalog from LESSON_CATALOG_URL, LESSON_CATALOG_PATH or the built-in lessons."""
    if config.LESSON_CATALOG_URL:
        return LessonAPIClient(config.LESSON_CATALOG_URL).get_catalog()
    if config.LESSON_CATALOG_PATH:
        return load_catalog(config.LESSON_CATALOG_PATH)
    return LessonCatalog()
