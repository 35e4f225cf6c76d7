"""Tests for the Flask JSON API."""

from __future__ import annotations

import os
import sys
import unittest
from unittest import mock


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from solmatch import web  # noqa: E402
from solmatch.challenges import parse_challenge  # noqa: E402
from solmatch.config import EngineConfig  # noqa: E402
from solmatch.solution_list import SolutionListType  # noqa: E402

PAYLOAD = {
    "type": "translate",
    "prompt": "Je suis content",
    "sentenceDiscussionId": "web-1",
    "grader": {
        "language": "en",
        "whitespaceDelimited": True,
        "vertices": [["I"], ["am", "was"], ["happy"]],
    },
    "compactTranslations": ["I [am/was] happy"],
}


class ChallengeStoreTests(unittest.TestCase):
    def test_oldest_challenges_are_forgotten(self) -> None:
        store = web.ChallengeStore(EngineConfig(max_remembered_challenges=1))
        first = parse_challenge(dict(PAYLOAD, sentenceDiscussionId="a"))
        second = parse_challenge(dict(PAYLOAD, sentenceDiscussionId="b"))
        store.add(first)
        store.add(second)
        self.assertEqual(len(store), 1)
        self.assertIsNone(store.get("a"))
        self.assertIs(store.get("b"), second)

    def test_parsed_lists_are_cached(self) -> None:
        store = web.ChallengeStore(EngineConfig(parsed_list_cache_size=1))
        store.add(parse_challenge(PAYLOAD))
        entry = store.entry("web-1", SolutionListType.COMPACT)
        self.assertIs(store.entry("web-1", SolutionListType.COMPACT), entry)
        expanded = store.entry("web-1", SolutionListType.EXPANDED)
        self.assertIs(expanded.solutions.type, SolutionListType.EXPANDED)
        self.assertIsNot(store.entry("web-1", SolutionListType.COMPACT), entry)

    def test_unknown_challenge(self) -> None:
        store = web.ChallengeStore()
        self.assertIsNone(store.entry("missing", SolutionListType.COMPACT))


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        store = web.ChallengeStore(EngineConfig())
        patcher = mock.patch.object(web, "challenge_store", store)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = web.app.test_client()
        response = self.client.post("/api/challenges", json={"challenges": [PAYLOAD]})
        self.assertEqual(response.status_code, 200)

    def test_register(self) -> None:
        response = self.client.post("/api/challenges", json=PAYLOAD)
        data = response.get_json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["challenges"][0]["key"], "web-1")
        self.assertEqual(data["challenges"][0]["solution_types"], ["expanded", "compact"])

    def test_register_unsupported_payload(self) -> None:
        response = self.client.post("/api/challenges", json={"type": "select"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()["ok"])

    def test_solutions(self) -> None:
        data = self.client.get("/api/challenges/web-1/solutions?unfold=1").get_json()
        self.assertEqual(data["type"], "compact")
        self.assertEqual(data["other_types"], ["expanded"])
        self.assertEqual(data["count"], "1+")
        self.assertEqual(data["solutions"][0]["summary"], "I [am/was] happy")
        self.assertEqual(data["solutions"][0]["variations"], ["I am happy", "I was happy"])

    def test_unknown_challenge(self) -> None:
        response = self.client.get("/api/challenges/missing/solutions")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"ok": False, "error": "Challenge expired or unknown."})

    def test_unknown_list_type(self) -> None:
        response = self.client.get("/api/challenges/web-1/solutions?type=folded")
        self.assertEqual(response.status_code, 400)

    def test_review(self) -> None:
        response = self.client.post(
            "/api/challenges/web-1/review",
            json={"answer": "I am hapy", "correct": True, "type": "expanded"},
        )
        data = response.get_json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["best_solutions"][0]["reference"], "I am happy")
        self.assertEqual(data["correction"]["status"], "corrected")
        self.assertEqual(data["correction"]["variation"], "I am happy")
        self.assertIn("similarity", data["view"]["sort_types"])
        self.assertEqual(data["view"]["sort"], "similarity")
        self.assertEqual(data["view"]["solutions"][0]["reference"], "I am happy")

    def test_review_requires_an_answer(self) -> None:
        response = self.client.post("/api/challenges/web-1/review", json={})
        self.assertEqual(response.status_code, 400)

    def test_view(self) -> None:
        response = self.client.post(
            "/api/challenges/web-1/view",
            json={"type": "expanded", "filters": ["was"], "page_size": 10},
        )
        data = response.get_json()["view"]
        self.assertEqual(data["filtered_count"], 1)
        self.assertEqual(data["total_count"], 2)
        self.assertEqual(data["page_size"], 10)
        self.assertEqual([it["reference"] for it in data["solutions"]], ["I was happy"])

        data = self.client.post("/api/challenges/web-1/view", json={"type": "expanded"}).get_json()["view"]
        self.assertEqual(data["filtered_count"], 1)

        data = self.client.post(
            "/api/challenges/web-1/view",
            json={"type": "expanded", "filters": [], "direction": "desc"},
        ).get_json()["view"]
        self.assertEqual([it["reference"] for it in data["solutions"]], ["I was happy", "I am happy"])

    def test_view_filters_languages_without_spaces_on_summaries(self) -> None:
        payload = {
            "type": "translate",
            "prompt": "It is a cat",
            "sentenceDiscussionId": "ja-1",
            "grader": {"language": "ja", "vertices": [["猫", "犬"], ["です"]]},
        }
        self.assertEqual(self.client.post("/api/challenges", json=payload).status_code, 200)
        data = self.client.post(
            "/api/challenges/ja-1/view",
            json={"type": "expanded", "filters": ["猫"]},
        ).get_json()["view"]
        self.assertEqual(data["total_count"], 2)
        self.assertEqual(data["filtered_count"], 1)
        self.assertEqual([it["reference"] for it in data["solutions"]], ["猫です"])

        data = self.client.post(
            "/api/challenges/ja-1/view",
            json={"type": "expanded", "filters": ["猫"], "match_mode": "words"},
        ).get_json()["view"]
        self.assertEqual(data["filtered_count"], 0)

    def test_invalid_view_request(self) -> None:
        response = self.client.post("/api/challenges/web-1/view", json={"page_size": 30})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/challenges/web-1/view", json={"sort": "similarity"})
        self.assertEqual(response.status_code, 400)

    def test_word_suggestions(self) -> None:
        data = self.client.get("/api/challenges/web-1/words?type=expanded&query=ha").get_json()
        self.assertEqual(data["words"], ["happy"])

    def test_export(self) -> None:
        response = self.client.get("/api/challenges/web-1/export?unfold=1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_data(as_text=True), '"I am happy"\n"I was happy"\n')
        self.assertIn("je_suis_content.csv", response.headers["Content-Disposition"])

    def test_large_export_requires_confirmation(self) -> None:
        with mock.patch.object(web, "engine_config", EngineConfig(export_size_alert_threshold=1)):
            response = self.client.get("/api/challenges/web-1/export?unfold=1")
            self.assertEqual(response.status_code, 409)
            self.assertEqual(response.get_json()["row_count"], 2)
            response = self.client.get("/api/challenges/web-1/export?unfold=1&confirm=1")
            self.assertEqual(response.status_code, 200)


if __name__ == "__main__":
    unittest.main()
