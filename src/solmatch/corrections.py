"""Corrections of answers, as diffs towards the closest variations of the solutions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .locales import CORRECTION_UNSUPPORTED_LOCALES, DIFF_IGNORABLE_VARIANTS
from .matching import MatchingOptions, best_matching_variations, best_scored_solutions, build_list_matching_data
from .solution_list import SolutionList, require_parsed
from .tokenizer import is_word_based_locale, is_word_char, lower, normalize

logger = logging.getLogger(__name__)

_WORD_OR_SEPARATOR = re.compile(r"[^\W_]+|[\W_]+")


class SegmentKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffSegment:
    kind: SegmentKind
    value: str
    ignorable: bool = False

    @property
    def is_change(self) -> bool:
        return self.kind is not SegmentKind.UNCHANGED

    @property
    def is_significant(self) -> bool:
        return self.is_change and not self.ignorable


class CorrectionStatus(str, Enum):
    CORRECTED = "corrected"
    NONE = "none"
    UNSUPPORTED = "unsupported"
    EMPTY_ANSWER = "empty_answer"


@dataclass(frozen=True)
class CorrectionResult:
    status: CorrectionStatus
    diff: Optional[Tuple[DiffSegment, ...]] = None
    variation: Optional[str] = None


def _diff_tokens(text: str, word_based: bool) -> List[str]:
    if word_based:
        return _WORD_OR_SEPARATOR.findall(text)
    return list(text)


def _comparison_key(token: str, locale: str) -> str:
    key = lower(token, locale)
    for variant, replacement in DIFF_IGNORABLE_VARIANTS.get(locale, {}).items():
        key = key.replace(variant, replacement)
    return key


def _is_ignorable_text(text: str) -> bool:
    return not any(is_word_char(char) for char in text)


def _append(segments: List[DiffSegment], kind: SegmentKind, value: str, ignorable: bool = False) -> None:
    if not value:
        return
    if segments and segments[-1].kind is kind and segments[-1].ignorable == ignorable:
        last = segments.pop()
        value = last.value + value
    segments.append(DiffSegment(kind, value, ignorable))


def variation_diff(variation: str, answer: str, locale: str) -> Optional[List[DiffSegment]]:
    """Return the changes leading from *answer* to *variation*, or None if they are all ignorable.

    REMOVED segments are only in the answer, ADDED segments are only in the variation.
    Punctuation, whitespace and case changes are ignorable.
    """
    word_based = is_word_based_locale(locale)
    answer_tokens = _diff_tokens(normalize(answer), word_based)
    variation_tokens = _diff_tokens(normalize(variation), word_based)
    matcher = SequenceMatcher(
        None,
        [_comparison_key(token, locale) for token in answer_tokens],
        [_comparison_key(token, locale) for token in variation_tokens],
        autojunk=False,
    )

    segments: List[DiffSegment] = []
    for tag, answer_start, answer_end, variation_start, variation_end in matcher.get_opcodes():
        if tag == "equal":
            for answer_token, variation_token in zip(
                answer_tokens[answer_start:answer_end],
                variation_tokens[variation_start:variation_end],
            ):
                if answer_token == variation_token:
                    _append(segments, SegmentKind.UNCHANGED, answer_token)
                else:
                    _append(segments, SegmentKind.REMOVED, answer_token, ignorable=True)
                    _append(segments, SegmentKind.ADDED, variation_token, ignorable=True)
            continue
        removed = "".join(answer_tokens[answer_start:answer_end])
        added = "".join(variation_tokens[variation_start:variation_end])
        _append(segments, SegmentKind.REMOVED, removed, _is_ignorable_text(removed))
        _append(segments, SegmentKind.ADDED, added, _is_ignorable_text(added))

    if not any(segment.is_significant for segment in segments):
        return None
    return segments


def _diff_weight(diff: Sequence[DiffSegment]) -> Tuple[int, int]:
    significant = [segment for segment in diff if segment.is_significant]
    return len(significant), sum(len(segment.value) for segment in significant)


def build_correction(
    solution_list: SolutionList,
    answer: str,
    options: Optional[MatchingOptions] = None,
) -> CorrectionResult:
    """Return the smallest correction of *answer*, based on the best matching variations.

    No correction is given when any candidate variation is equivalent to the answer.
    """
    parsed = require_parsed(solution_list)
    answer = normalize(answer)
    if not answer:
        return CorrectionResult(CorrectionStatus.EMPTY_ANSWER)
    if parsed.locale in CORRECTION_UNSUPPORTED_LOCALES:
        return CorrectionResult(CorrectionStatus.UNSUPPORTED)

    matching_data = build_list_matching_data(parsed, options)
    best_solutions = best_scored_solutions(parsed.solutions)
    if best_solutions:
        variations = [
            variation
            for solution in best_solutions
            for variation in best_matching_variations(solution, answer, matching_data.options)
        ]
    else:
        variations = [variation for solution in parsed.solutions for variation in solution.variations()]

    best: Optional[Tuple[Tuple[int, int], str, List[DiffSegment]]] = None
    for variation in dict.fromkeys(variations):
        diff = variation_diff(variation, answer, parsed.locale)
        if diff is None:
            return CorrectionResult(CorrectionStatus.NONE)
        weight = _diff_weight(diff)
        if best is None or weight < best[0]:
            best = (weight, variation, diff)

    if best is None:
        return CorrectionResult(CorrectionStatus.NONE)
    logger.debug("Corrected an answer towards %r", best[1])
    return CorrectionResult(CorrectionStatus.CORRECTED, tuple(best[2]), best[1])


__all__ = [
    "CorrectionResult",
    "CorrectionStatus",
    "DiffSegment",
    "SegmentKind",
    "build_correction",
    "variation_diff",
]
