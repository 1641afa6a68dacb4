"""
Lesson progression: moves a learner through the phases of each lesson and
across the lesson catalog.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .lessons import Lesson, LessonCatalog
from .observable import Observable
from .text_processing import split_paragraph_into_sentences


class LessonPhase(str, Enum):
    HUB = "hub"
    BRIEFING = "briefing"
    PRACTICE = "practice"
    RECITAL = "recital"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LessonState:
    phase: LessonPhase = LessonPhase.HUB
    current_lesson: Optional[Lesson] = None
    current_lesson_index: int = -1
    sentences: Tuple[str, ...] = ()
    current_sentence_index: int = -1


class LessonProgression(Observable[LessonState]):
    """
    State machine over LessonPhase.

    Transitions that need a current lesson are no-ops without one, so a
    stray UI event never breaks the session.
    """

    def __init__(self, catalog: Optional[LessonCatalog] = None):
        super().__init__(LessonState())
        self.catalog = catalog or LessonCatalog()
        self.logger = logging.getLogger(__name__)

    @property
    def current_sentence(self) -> Optional[str]:
        state = self._state
        if 0 <= state.current_sentence_index < len(state.sentences):
            return state.sentences[state.current_sentence_index]
        return None

    def start_lesson(self, lesson: Lesson) -> None:
        lesson_index = self.catalog.index_of(lesson.id)
        self.logger.info(f"Starting lesson '{lesson.id}' (index {lesson_index})")
        self._set_state(replace(
            self._state,
            phase=LessonPhase.BRIEFING,
            current_lesson=lesson,
            current_lesson_index=lesson_index,
        ))

    def begin_practice(self) -> None:
        state = self._state
        if state.current_lesson is None:
            self.logger.warning("begin_practice called without a current lesson")
            return
        sentences = split_paragraph_into_sentences(state.current_lesson.content)
        self._set_state(replace(
            state,
            phase=LessonPhase.PRACTICE,
            sentences=tuple(sentences),
            current_sentence_index=0,
        ))

    def advance_sentence(self) -> None:
        state = self._state
        if state.current_sentence_index < len(state.sentences) - 1:
            self._set_state(replace(state, current_sentence_index=state.current_sentence_index + 1))
        # The last sentence stays current until the recital is started

    def start_recital(self) -> None:
        self._set_state(replace(self._state, phase=LessonPhase.RECITAL))

    def finish_lesson(self) -> None:
        self._set_state(replace(self._state, phase=LessonPhase.COMPLETE))

    def start_next_lesson(self) -> None:
        next_index = self._state.current_lesson_index + 1
        if next_index < len(self.catalog):
            next_lesson = self.catalog[next_index]
            self.logger.info(f"Moving on to lesson '{next_lesson.id}'")
            self._set_state(LessonState(
                phase=LessonPhase.BRIEFING,
                current_lesson=next_lesson,
                current_lesson_index=next_index,
            ))
            return
        self.logger.info("No further lesson, returning to hub")
        self._set_state(LessonState())

    def return_to_hub(self) -> None:
        self._set_state(LessonState())
