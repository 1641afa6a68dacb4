"""
Sentence-by-sentence practice of a custom paragraph.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .observable import Observable
from .text_processing import split_paragraph_into_sentences


@dataclass(frozen=True)
class PracticeItem:
    text: str
    original_sentence_index: int
    type: str = "sentence"


@dataclass(frozen=True)
class PracticeState:
    paragraph_input: str = ""
    sentences: Tuple[str, ...] = ()
    current_sentence_index: int = -1
    is_practice_mode: bool = False


class PracticeSession(Observable[PracticeState]):
    """Walks through the sentences of one paragraph, independent of lessons."""

    def __init__(self):
        super().__init__(PracticeState())
        self.logger = logging.getLogger(__name__)

    @property
    def current_item(self) -> Optional[PracticeItem]:
        state = self._state
        if not state.is_practice_mode or not 0 <= state.current_sentence_index < len(state.sentences):
            return None
        return PracticeItem(
            text=state.sentences[state.current_sentence_index],
            original_sentence_index=state.current_sentence_index,
        )

    def reset(self) -> None:
        self.logger.debug("Resetting practice")
        self._set_state(PracticeState())

    def start_practice(self, paragraph: str) -> None:
        sentences = split_paragraph_into_sentences(paragraph)
        if not sentences:
            self.logger.warning("No sentences found in practice paragraph")
            self._set_state(replace(
                self._state,
                paragraph_input=paragraph or "",
                sentences=(),
                is_practice_mode=False,
                current_sentence_index=-1,
            ))
            return

        self._set_state(PracticeState(
            paragraph_input=paragraph,
            sentences=tuple(sentences),
            current_sentence_index=0,
            is_practice_mode=True,
        ))
        self.logger.info(f"Practice started with {len(sentences)} sentences")

    def advance(self) -> None:
        state = self._state
        if not state.is_practice_mode or not state.sentences:
            return

        next_index = state.current_sentence_index + 1
        if next_index < len(state.sentences):
            self.logger.debug(f"Advancing to sentence {next_index}: {state.sentences[next_index]!r}")
            self._set_state(replace(state, current_sentence_index=next_index))
        else:
            self.logger.info("Practice complete, no more sentences")
            self._set_state(replace(state, is_practice_mode=False, current_sentence_index=-1))
