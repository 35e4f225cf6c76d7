"""Tests for solution exports."""

from __future__ import annotations

import os
import sys
import unittest


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from solmatch.export import export_filename, export_solutions, plan_export  # noqa: E402
from solmatch.patterns import expand_patterns  # noqa: E402
from solmatch.solutions import from_sentences  # noqa: E402


class ExportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.solutions = expand_patterns(["I [am/'m] happy", 'He said "hi"'], "en")

    def test_folded_export(self) -> None:
        self.assertEqual(
            export_solutions(self.solutions),
            '"I [am/\'m] happy"\n"He said ""hi"""\n',
        )

    def test_unfolded_export(self) -> None:
        self.assertEqual(
            export_solutions(self.solutions[:1], unfolded=True),
            '"I am happy"\n"I \'m happy"\n',
        )

    def test_plan(self) -> None:
        plan = plan_export(self.solutions, unfolded=True, threshold=2)
        self.assertEqual((plan.solution_count, plan.row_count), (2, 3))
        self.assertTrue(plan.is_large)
        self.assertFalse(plan_export(self.solutions, threshold=2).is_large)

    def test_large_export_can_be_cancelled(self) -> None:
        solutions = from_sentences(["a", "b", "c"], "en")
        plans = []

        def decline(plan) -> bool:
            plans.append(plan)
            return False

        self.assertIsNone(export_solutions(solutions, threshold=2, confirm=decline))
        self.assertEqual(plans[0].row_count, 3)
        self.assertEqual(export_solutions(solutions, threshold=2, confirm=lambda plan: True), '"a"\n"b"\n"c"\n')

    def test_large_export_without_confirmation_is_logged(self) -> None:
        solutions = from_sentences(["a", "b", "c"], "en")
        with self.assertLogs("solmatch.export", level="WARNING"):
            content = export_solutions(solutions, threshold=2)
        self.assertEqual(content.count("\n"), 3)

    def test_filename(self) -> None:
        self.assertEqual(export_filename("Je suis très content !"), "je_suis_tres_content.csv")
        self.assertEqual(export_filename("???", "txt"), "solutions.txt")


if __name__ == "__main__":
    unittest.main()
