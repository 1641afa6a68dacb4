import os
import sys
import unittest

# Add the src directory to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from recital_coach.alignment import DiffEntry, diff_words
from recital_coach.scoring import calculate_similarity, levenshtein_distance, summarize_diff


class TestLevenshteinDistance(unittest.TestCase):
    def test_known_distances(self):
        self.assertEqual(levenshtein_distance("kitten", "sitting"), 3)
        self.assertEqual(levenshtein_distance("flaw", "lawn"), 2)
        self.assertEqual(levenshtein_distance("", "abc"), 3)
        self.assertEqual(levenshtein_distance("abc", ""), 3)
        self.assertEqual(levenshtein_distance("", ""), 0)

    def test_symmetric(self):
        pairs = [("kitten", "sitting"), ("a", "abcdef"), ("hello world", "yellow word"), ("", "x")]
        for a, b in pairs:
            self.assertEqual(levenshtein_distance(a, b), levenshtein_distance(b, a))

    def test_case_sensitive(self):
        self.assertEqual(levenshtein_distance("Hello", "hello"), 1)

    def test_long_inputs(self):
        a = "the quick brown fox " * 50
        b = "the quick brown fix " * 50
        self.assertEqual(levenshtein_distance(a, b), 50)


class TestSimilarity(unittest.TestCase):
    def test_identical_strings(self):
        for s in ["", "a", "Hello world.", "same same"]:
            self.assertEqual(calculate_similarity(s, s), 100.0)

    def test_completely_different(self):
        self.assertEqual(calculate_similarity("abc", "xyz"), 0.0)

    def test_partial(self):
        self.assertAlmostEqual(calculate_similarity("kitten", "sitting"), (1 - 3 / 7) * 100)

    def test_one_empty(self):
        self.assertEqual(calculate_similarity("", "abc"), 0.0)


class TestSummarizeDiff(unittest.TestCase):
    def test_counts(self):
        summary = summarize_diff(diff_words("the cat sat", "the dog sat"))
        self.assertEqual(summary['correct'], 2)
        self.assertEqual(summary['incorrect'], 1)
        self.assertEqual(summary['extra'], 1)
        self.assertEqual(summary['total_reference_words'], 3)
        self.assertAlmostEqual(summary['accuracy'], 200 / 3)

    def test_empty_reference(self):
        self.assertEqual(summarize_diff([])['accuracy'], 100.0)

    def test_unknown_type_is_an_error(self):
        with self.assertRaises(ValueError):
            summarize_diff([DiffEntry("word", "bogus")])


if __name__ == "__main__":
    unittest.main()
