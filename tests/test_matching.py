"""Tests for matching data and similarity scores."""

from __future__ import annotations

import os
import sys
import unittest
from collections import Counter
from unittest import mock


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from solmatch.matching import (  # noqa: E402
    MatchingOptions,
    add_similarity_scores,
    best_matching_variations,
    best_scored_solutions,
    build_list_matching_data,
    dice_coefficient,
    matchable_words,
    score_solution,
)
from solmatch.solution_list import (  # noqa: E402
    ChallengeMetadata,
    NotParsedError,
    ParsedSolutionList,
    PatternSource,
    SentenceSource,
    SolutionListType,
    UnparsedSolutionList,
    ensure_parsed,
)


def sentence_list(sentences, locale="en"):
    metadata = ChallengeMetadata(locale=locale)
    return ensure_parsed(UnparsedSolutionList(metadata, (SentenceSource(tuple(sentences)),)))


def pattern_list(patterns, locale="en"):
    metadata = ChallengeMetadata(locale=locale)
    return ensure_parsed(UnparsedSolutionList(metadata, (PatternSource(tuple(patterns)),)))


class MatchingDataTests(unittest.TestCase):
    def test_corpus_is_the_union_of_solution_words(self) -> None:
        solutions = sentence_list(["I am happy", "You are happy", "I'm sad"])
        data = build_list_matching_data(solutions)
        expected = set()
        for solution in solutions:
            expected.update(solution.matching_data.words)
        self.assertEqual(set(data.words), expected)
        self.assertEqual(set(data.words), {"i", "am", "happy", "you", "are", "m", "sad"})
        self.assertTrue(data.is_word_based)

    def test_solution_words_are_sorted_and_unique(self) -> None:
        solutions = sentence_list(["The cat and the dog"])
        build_list_matching_data(solutions)
        self.assertEqual(solutions.solutions[0].matching_data.words, ("and", "cat", "dog", "the"))

    def test_non_word_based_locale_uses_summaries(self) -> None:
        solutions = sentence_list(["猫です。"], "ja")
        data = build_list_matching_data(solutions)
        self.assertIsNone(data.words)
        self.assertEqual(solutions.solutions[0].matching_data.summary, "猫です")

    def test_matching_data_is_built_once(self) -> None:
        solutions = sentence_list(["a"])
        self.assertIs(build_list_matching_data(solutions), build_list_matching_data(solutions))

    def test_unparsed_list_raises(self) -> None:
        unparsed = UnparsedSolutionList(ChallengeMetadata(locale="en"), (SentenceSource(("a",)),))
        with self.assertRaises(NotParsedError):
            build_list_matching_data(unparsed)
        with self.assertRaises(NotParsedError):
            add_similarity_scores(unparsed, "a")

    def test_matchable_words(self) -> None:
        self.assertEqual(matchable_words("Très   CAFÉ!", "fr"), ["très", "café"])
        self.assertEqual(matchable_words("Très café", "fr", MatchingOptions(ignore_diacritics=True)), ["tres", "cafe"])


class ScoreTests(unittest.TestCase):
    def test_dice_coefficient(self) -> None:
        self.assertEqual(dice_coefficient(Counter("ab"), Counter("ab")), 1.0)
        self.assertEqual(dice_coefficient(Counter(), Counter()), 0.0)
        self.assertAlmostEqual(dice_coefficient(Counter("ab"), Counter("ac")), 0.5)

    def test_identical_answer_scores_one(self) -> None:
        solutions = add_similarity_scores(sentence_list(["I am happy", "I was happy"]), "I am happy")
        self.assertEqual(solutions.solutions[0].score, 1.0)
        self.assertLess(solutions.solutions[1].score, 1.0)

    def test_identical_variation_of_folded_solution_scores_one(self) -> None:
        solutions = add_similarity_scores(pattern_list(["I [am/'m] happy"]), "I'm happy")
        self.assertEqual(solutions.solutions[0].score, 1.0)

    def test_scores_are_bounded(self) -> None:
        solutions = add_similarity_scores(sentence_list(["I am happy", "xyz"]), "I am hapy")
        for solution in solutions:
            self.assertGreaterEqual(solution.score, 0.0)
            self.assertLessEqual(solution.score, 1.0)
        self.assertAlmostEqual(solutions.solutions[0].score, 10 / 11)

    def test_word_order_is_ignored_by_default(self) -> None:
        solutions = sentence_list(["I am happy"])
        build_list_matching_data(solutions)
        solution = solutions.solutions[0]
        self.assertEqual(score_solution(solution, "happy I am"), 1.0)
        self.assertLess(score_solution(solution, "happy I am", MatchingOptions(ignore_word_order=False)), 1.0)

    def test_diacritics_can_be_ignored(self) -> None:
        options = MatchingOptions(ignore_diacritics=True)
        solutions = add_similarity_scores(sentence_list(["un café"], "fr"), "un cafe", options)
        self.assertEqual(solutions.solutions[0].score, 1.0)

    def test_non_word_based_scoring(self) -> None:
        solutions = add_similarity_scores(sentence_list(["猫です"], "ja"), "猫です")
        self.assertEqual(solutions.solutions[0].score, 1.0)

    def test_empty_answer_resets_scores(self) -> None:
        solutions = add_similarity_scores(sentence_list(["I am happy"]), "I am happy")
        add_similarity_scores(solutions, "   ")
        self.assertIsNone(solutions.solutions[0].score)
        self.assertFalse(solutions.is_scored)

    def test_a_failing_solution_is_left_unscored(self) -> None:
        solutions = sentence_list(["I am happy", "I am sad", "I was happy"])

        def score(solution, answer, options):
            if solution.reference == "I am sad":
                raise ValueError("broken matching data")
            return score_solution(solution, answer, options)

        with mock.patch("solmatch.matching.score_solution", side_effect=score):
            with self.assertLogs("solmatch.matching", level="ERROR") as logs:
                add_similarity_scores(solutions, "I am happy")
        self.assertEqual([it.score is not None for it in solutions.solutions], [True, False, True])
        self.assertEqual(solutions.solutions[0].score, 1.0)
        self.assertEqual(len(logs.records), 1)
        self.assertIn("Could not score solution", logs.output[0])
        self.assertIsNotNone(logs.records[0].exc_info)

    def test_best_matching_variations(self) -> None:
        solutions = pattern_list(["I [am/was] happy"])
        build_list_matching_data(solutions)
        solution = solutions.solutions[0]
        self.assertEqual(best_matching_variations(solution, "I was happy"), ["I was happy"])

    def test_best_scored_solutions(self) -> None:
        solutions = add_similarity_scores(sentence_list(["I am happy", "I was happy"]), "I am happy")
        self.assertEqual([it.reference for it in best_scored_solutions(solutions)], ["I am happy"])
        self.assertEqual(best_scored_solutions(sentence_list(["a"])), [])


class EnsureParsedTests(unittest.TestCase):
    def test_prefers_requested_type(self) -> None:
        unparsed = UnparsedSolutionList(
            ChallengeMetadata(locale="en"),
            (SentenceSource(("I am happy",)), PatternSource(("I [am/'m] happy",))),
        )
        parsed = ensure_parsed(unparsed, SolutionListType.COMPACT)
        self.assertIs(parsed.type, SolutionListType.COMPACT)
        self.assertEqual(parsed.other_types, (SolutionListType.EXPANDED,))

    def test_falls_back_to_available_type(self) -> None:
        unparsed = UnparsedSolutionList(ChallengeMetadata(locale="en"), (SentenceSource(("a", "b")),))
        parsed = ensure_parsed(unparsed, SolutionListType.COMPACT)
        self.assertIs(parsed.type, SolutionListType.EXPANDED)
        self.assertEqual(len(parsed), 2)

    def test_parsed_list_is_returned_unchanged(self) -> None:
        parsed = ParsedSolutionList(locale="en", type=SolutionListType.EXPANDED, solutions=())
        self.assertIs(ensure_parsed(parsed), parsed)

    def test_no_source(self) -> None:
        parsed = ensure_parsed(UnparsedSolutionList(ChallengeMetadata(locale="en")))
        self.assertEqual(len(parsed), 0)


if __name__ == "__main__":
    unittest.main()
