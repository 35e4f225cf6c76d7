"""Tests for challenge payloads and answer reviews."""

from __future__ import annotations

import os
import sys
import unittest


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from solmatch.challenges import ChallengeType, parse_challenge, parse_challenges, review_answer  # noqa: E402
from solmatch.corrections import CorrectionStatus  # noqa: E402
from solmatch.solution_list import NotParsedError, SolutionListType, ensure_parsed  # noqa: E402

TRANSLATION = {
    "type": "translate",
    "prompt": "Je suis  content",
    "sentenceDiscussionId": "123",
    "grader": {
        "language": "en",
        "whitespaceDelimited": True,
        "vertices": [
            [{"lenient": "I", "to": 1}],
            [{"lenient": "am", "to": 2}, {"lenient": "was", "to": 2}],
            [{"lenient": "happy"}],
        ],
    },
    "compactTranslations": ["I [am/was] happy"],
}

NAMING = {
    "type": "name",
    "prompt": "the cat",
    "targetLanguage": "fr",
    "correctSolutions": ["le chat", "un chat"],
}

LISTENING = {
    "type": "listenTap",
    "prompt": "I am happy",
    "targetLanguage": "en",
    "solutionTranslation": "Je suis content",
    "correctTokens": ["I", "am", "happy"],
}


class ParseChallengeTests(unittest.TestCase):
    def test_translation(self) -> None:
        challenge = parse_challenge(TRANSLATION, "fr", "en")
        self.assertEqual(challenge.type, ChallengeType.TRANSLATION)
        self.assertEqual(challenge.statement, "Je suis content")
        self.assertEqual(challenge.key, "123")
        self.assertEqual(challenge.locale, "en")
        self.assertEqual(
            challenge.solutions.available_types,
            (SolutionListType.EXPANDED, SolutionListType.COMPACT),
        )

    def test_both_representations_hold_the_same_sentences(self) -> None:
        challenge = parse_challenge(TRANSLATION)
        expanded = ensure_parsed(challenge.solutions, SolutionListType.EXPANDED)
        compact = ensure_parsed(challenge.solutions, SolutionListType.COMPACT)
        self.assertEqual({it.reference for it in expanded}, {"I am happy", "I was happy"})
        self.assertEqual(
            {variation for it in compact for variation in it.variations()},
            {"I am happy", "I was happy"},
        )
        self.assertEqual(compact.other_types, (SolutionListType.EXPANDED,))

    def test_naming(self) -> None:
        challenge = parse_challenge(NAMING)
        self.assertEqual(challenge.type, ChallengeType.NAMING)
        self.assertTrue(challenge.is_of_type(ChallengeType.TRANSLATION))
        self.assertEqual(challenge.key, "solmatch-3-the cat")
        parsed = ensure_parsed(challenge.solutions)
        self.assertEqual([it.reference for it in parsed], ["le chat", "un chat"])

    def test_listening(self) -> None:
        challenge = parse_challenge(LISTENING)
        self.assertEqual(challenge.type, ChallengeType.LISTENING)
        self.assertEqual(challenge.solution_translation, "Je suis content")
        self.assertEqual(len(challenge.solutions.sources), 2)

    def test_unsupported_payloads(self) -> None:
        self.assertIsNone(parse_challenge({"type": "select", "prompt": "x"}))
        self.assertIsNone(parse_challenge({"type": "translate", "prompt": "x"}))
        self.assertIsNone(parse_challenge("not a payload"))

    def test_invalid_graph_is_ignored(self) -> None:
        payload = dict(TRANSLATION, grader={"language": "en", "vertices": ["bad"]})
        with self.assertLogs("solmatch.challenges", level="WARNING"):
            challenge = parse_challenge(payload)
        self.assertEqual(challenge.solutions.available_types, (SolutionListType.COMPACT,))

    def test_parse_challenges_skips_unsupported(self) -> None:
        challenges = parse_challenges([TRANSLATION, {"type": "select"}, NAMING])
        self.assertEqual([it.key for it in challenges], ["123", "solmatch-3-the cat"])


class ReviewAnswerTests(unittest.TestCase):
    def test_review_of_a_correct_answer_with_a_typo(self) -> None:
        parsed = ensure_parsed(parse_challenge(TRANSLATION).solutions, SolutionListType.EXPANDED)
        review = review_answer(parsed, "I am  hapy", is_correct=True)
        self.assertEqual(review.answer, "I am hapy")
        self.assertEqual([it.reference for it in review.best_solutions], ["I am happy"])
        self.assertIs(review.correction.status, CorrectionStatus.CORRECTED)
        self.assertEqual(review.correction.variation, "I am happy")

    def test_review_of_an_incorrect_answer_has_no_correction(self) -> None:
        parsed = ensure_parsed(parse_challenge(TRANSLATION).solutions)
        review = review_answer(parsed, "I am sad")
        self.assertIsNone(review.correction)
        self.assertTrue(parsed.is_scored)

    def test_unparsed_list_raises(self) -> None:
        with self.assertRaises(NotParsedError):
            review_answer(parse_challenge(TRANSLATION).solutions, "I am happy")


if __name__ == "__main__":
    unittest.main()
