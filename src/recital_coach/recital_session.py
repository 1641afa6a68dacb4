"""
Recital coach session that ties lessons, practice, transcription and scoring together.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from . import config
from .alignment import DiffEntry, DiffType, align_words
from .lesson_state import LessonPhase, LessonProgression
from .lessons import LessonCatalog
from .persistence import CompletedLessonStore
from .pipeline_coordinator import PipelineCoordinator
from .practice_state import PracticeSession
from .scoring import calculate_similarity, summarize_diff
from .text_processing import tokenize_words


@dataclass
class RecitalResult:
    """Scored comparison of a transcript against its reference text."""
    reference_text: str
    transcript: str
    diff: List[DiffEntry]
    similarity: float
    word_summary: Dict[str, float] = field(default_factory=dict)
    lesson_id: Optional[str] = None
    processing_time: float = 0.0


class RecitalCoach:
    """Main class for a learner's recitation session."""

    def __init__(
        self,
        coordinator: PipelineCoordinator,
        catalog: Optional[LessonCatalog] = None,
        store: Optional[CompletedLessonStore] = None
    ):
        """
        Initialize the coach.

        Args:
            coordinator: Pipeline coordinator owning the transcription state
            catalog: Lessons to walk through (built-in lessons if None)
            store: Where completed recitals are handed off
        """
        self.logger = logging.getLogger(__name__)
        self.coordinator = coordinator
        self.lessons = LessonProgression(catalog)
        self.practice = PracticeSession()
        self.store = store if store is not None else CompletedLessonStore(config.COMPLETED_LESSONS_PATH)
        self.last_result: Optional[RecitalResult] = None

    def evaluate(self, reference_text: str, transcript: str, lesson_id: Optional[str] = None) -> RecitalResult:
        """
        Score a transcript against reference text.

        Args:
            reference_text: What the learner should have said
            transcript: What the transcriber heard
            lesson_id: Lesson the reference belongs to, if any

        Returns:
            RecitalResult with the word diff and similarity percentage
        """
        start_time = time.time()
        result = evaluate_recital(reference_text or "", transcript or "", lesson_id=lesson_id)
        result.processing_time = time.time() - start_time

        self.last_result = result
        self.logger.info(
            f"Evaluated recital: {result.word_summary['correct']}/{result.word_summary['total_reference_words']} "
            f"words correct, similarity {result.similarity:.1f}%"
        )
        return result

    def evaluate_current_sentence(self, transcript: str) -> Optional[RecitalResult]:
        """Score a transcript against the sentence currently being practiced."""
        lesson_state = self.lessons.state
        if lesson_state.phase == LessonPhase.PRACTICE and self.lessons.current_sentence is not None:
            return self.evaluate(
                self.lessons.current_sentence, transcript, lesson_id=lesson_state.current_lesson.id
            )

        item = self.practice.current_item
        if item is not None:
            return self.evaluate(item.text, transcript)

        self.logger.warning("No sentence is being practiced, nothing to evaluate")
        return None

    def transcribe(self, audio: Optional[np.ndarray]) -> Optional[int]:
        """Hand recorded audio to the transcription pipeline."""
        return self.coordinator.submit(audio)

    def _finished_transcript(self) -> Optional[str]:
        state = self.coordinator.state
        if state.is_busy or state.last_result is None or state.last_result.is_busy:
            return None
        return state.last_result.text

    def complete_recital(self, transcript: Optional[str] = None) -> Optional[RecitalResult]:
        """
        Score the recital of the current lesson, store it and finish the lesson.

        Args:
            transcript: Recital transcript (defaults to the latest finished transcription)

        Returns:
            RecitalResult, or None when there is no lesson or no transcript yet
        """
        lesson = self.lessons.state.current_lesson
        if lesson is None:
            self.logger.warning("complete_recital called without a current lesson")
            return None

        if transcript is None:
            transcript = self._finished_transcript()
        if transcript is None:
            self.logger.warning("No finished transcript available for the recital")
            return None

        result = self.evaluate(lesson.content, transcript, lesson_id=lesson.id)
        self.store.add_completed_lesson(lesson.id, transcript)
        self.lessons.finish_lesson()
        return result

    def presentation_snapshot(self) -> Dict[str, Any]:
        """Everything the UI needs to render the current session."""
        lesson_state = self.lessons.state
        result = self.last_result
        return {
            "phase": lesson_state.phase,
            "lesson_id": lesson_state.current_lesson.id if lesson_state.current_lesson else None,
            "current_sentence": self.lessons.current_sentence,
            "current_sentence_index": lesson_state.current_sentence_index,
            "sentence_count": len(lesson_state.sentences),
            "practice": self.practice.state,
            "pipeline": self.coordinator.state,
            "diff": list(result.diff) if result else [],
            "similarity": result.similarity if result else None,
        }

    def get_correction_summary(self, result: RecitalResult) -> str:
        """Generate a human-readable summary of a recital result."""
        return format_summary(result)


# Convenience functions
def format_summary(result: RecitalResult) -> str:
    """Human-readable summary of a recital result."""
    summary = result.word_summary or summarize_diff(result.diff)
    if summary['incorrect'] == 0 and summary['extra'] == 0:
        return f"Excellent! Every word was recited correctly ({result.similarity:.1f}% similarity)."

    lines = [
        f"{summary['correct']} of {summary['total_reference_words']} words correct "
        f"({summary['accuracy']:.1f}%), similarity {result.similarity:.1f}%."
    ]
    missed = [entry.text for entry in result.diff if entry.type == DiffType.INCORRECT]
    extra = [entry.text for entry in result.diff if entry.type == DiffType.EXTRA]
    if missed:
        lines.append(f"Missed or misread: {' '.join(missed)}")
    if extra:
        lines.append(f"Extra words: {' '.join(extra)}")
    return "\n".join(lines)


def evaluate_recital(reference_text: str, transcript: str, lesson_id: Optional[str] = None) -> RecitalResult:
    """Score a transcript against reference text without a session."""
    diff = align_words(reference_text, transcript)
    # Whitespace-normalized so line breaks do not count as errors
    similarity = calculate_similarity(
        " ".join(tokenize_words(reference_text)), " ".join(tokenize_words(transcript))
    )
    return RecitalResult(
        reference_text=reference_text,
        transcript=transcript,
        diff=diff,
        similarity=similarity,
        word_summary=summarize_diff(diff),
        lesson_id=lesson_id,
    )
