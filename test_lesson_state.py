import os
import sys
import unittest

# Add the src directory to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from recital_coach.lesson_state import LessonPhase, LessonProgression, LessonState
from recital_coach.lessons import Lesson, LessonCatalog


class TestLessonProgression(unittest.TestCase):
    def setUp(self):
        self.first = Lesson("first", "First", "One. Two. Three.")
        self.second = Lesson("second", "Second", "Alpha beta.")
        self.progression = LessonProgression(LessonCatalog([self.first, self.second]))

    def test_initial_state(self):
        self.assertEqual(self.progression.state, LessonState())
        self.assertIsNone(self.progression.current_sentence)

    def test_start_lesson(self):
        self.progression.start_lesson(self.second)
        state = self.progression.state
        self.assertEqual(state.phase, LessonPhase.BRIEFING)
        self.assertEqual(state.current_lesson, self.second)
        self.assertEqual(state.current_lesson_index, 1)

    def test_start_unknown_lesson(self):
        self.progression.start_lesson(Lesson("other", "Other", "Text."))
        self.assertEqual(self.progression.state.current_lesson_index, -1)

    def test_begin_practice_without_lesson_is_noop(self):
        self.progression.begin_practice()
        self.assertEqual(self.progression.state, LessonState())

    def test_practice_pins_last_sentence(self):
        self.progression.start_lesson(self.first)
        self.progression.begin_practice()
        state = self.progression.state
        self.assertEqual(state.phase, LessonPhase.PRACTICE)
        self.assertEqual(state.sentences, ("One.", "Two.", "Three."))
        self.assertEqual(self.progression.current_sentence, "One.")

        for _ in range(5):
            self.progression.advance_sentence()

        self.assertEqual(self.progression.state.current_sentence_index, 2)
        self.assertEqual(self.progression.current_sentence, "Three.")
        self.assertEqual(self.progression.state.phase, LessonPhase.PRACTICE)

    def test_full_lesson_flow(self):
        self.progression.start_lesson(self.first)
        self.progression.begin_practice()
        self.progression.start_recital()
        self.assertEqual(self.progression.state.phase, LessonPhase.RECITAL)
        self.progression.finish_lesson()
        self.assertEqual(self.progression.state.phase, LessonPhase.COMPLETE)

        self.progression.start_next_lesson()
        state = self.progression.state
        self.assertEqual(state.phase, LessonPhase.BRIEFING)
        self.assertEqual(state.current_lesson, self.second)
        self.assertEqual(state.current_lesson_index, 1)
        self.assertEqual(state.sentences, ())
        self.assertEqual(state.current_sentence_index, -1)

    def test_next_lesson_after_last_returns_to_hub(self):
        self.progression.start_lesson(self.second)
        self.progression.finish_lesson()
        self.progression.start_next_lesson()
        self.assertEqual(self.progression.state, LessonState())

    def test_return_to_hub(self):
        self.progression.start_lesson(self.first)
        self.progression.begin_practice()
        self.progression.return_to_hub()
        self.assertEqual(self.progression.state, LessonState())

    def test_subscribers_are_notified(self):
        phases = []
        self.progression.subscribe(lambda state: phases.append(state.phase))
        self.progression.start_lesson(self.first)
        self.progression.begin_practice()
        self.assertEqual(phases, [LessonPhase.HUB, LessonPhase.BRIEFING, LessonPhase.PRACTICE])

    def test_sentences_cannot_be_changed_in_place(self):
        self.progression.start_lesson(self.first)
        self.progression.begin_practice()
        state = self.progression.state
        with self.assertRaises(AttributeError):
            state.sentences.append("Four.")
        self.assertEqual(self.progression.state.sentences, ("One.", "Two.", "Three."))


if __name__ == "__main__":
    unittest.main()
