"""Challenges parsed from raw exercise payloads, and review of user answers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .corrections import CorrectionResult, build_correction
from .matching import MatchingOptions, add_similarity_scores, best_scored_solutions
from .solution_list import (
    ChallengeMetadata,
    GraphSource,
    ParsedSolutionList,
    PatternSource,
    SentenceSource,
    Source,
    SolutionList,
    UnparsedSolutionList,
    require_parsed,
)
from .solutions import Solution
from .tokenizer import normalize

logger = logging.getLogger(__name__)

KEY_PREFIX = "solmatch"

UI_TRANSLATION_CHALLENGE_TYPES = ("name", "translate", "completeReverseTranslation")
UI_LISTENING_CHALLENGE_TYPES = ("listen", "listenTap")
UI_NAMING_CHALLENGE_TYPES = ("name",)
UI_WORD_BANK_CHALLENGE_TYPES = ("listenTap",)


class ChallengeType(IntFlag):
    TRANSLATION = 0b001
    NAMING = 0b011
    LISTENING = 0b100


@dataclass(frozen=True)
class Challenge:
    type: ChallengeType
    statement: str
    solutions: UnparsedSolutionList
    from_language: str = ""
    to_language: str = ""
    discussion_id: str = ""
    solution_translation: str = ""

    @property
    def key(self) -> str:
        return self.discussion_id or f"{KEY_PREFIX}-{int(self.type)}-{self.statement}"

    @property
    def locale(self) -> str:
        return self.solutions.locale

    def is_of_type(self, challenge_type: ChallengeType) -> bool:
        return bool(self.type & challenge_type)


def _string_list(value: Any) -> Optional[Tuple[str, ...]]:
    if not isinstance(value, list):
        return None
    return tuple(item for item in value if isinstance(item, str))


def solution_list_from_payload(payload: Mapping[str, Any]) -> UnparsedSolutionList:
    """Collect the solution representations available in a raw challenge payload.

    Missing or malformed fields make the corresponding representation unavailable.
    """
    grader = payload.get("grader") if isinstance(payload.get("grader"), dict) else {}
    metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
    challenge_type = payload.get("type")
    locale = str(
        payload.get("targetLanguage")
        or grader.get("language")
        or metadata.get("target_language")
        or metadata.get("language")
        or ""
    ).strip()

    sources: List[Source] = []

    correct_solutions = _string_list(payload.get("correctSolutions"))
    if correct_solutions and challenge_type in UI_NAMING_CHALLENGE_TYPES:
        sources.append(SentenceSource(correct_solutions))

    vertices = grader.get("vertices")
    if isinstance(vertices, list) and vertices:
        if all(isinstance(layer, list) for layer in vertices):
            sources.append(GraphSource(tuple(vertices)))
        else:
            logger.warning("Ignoring a solution graph with invalid layers")

    patterns = _string_list(payload.get("compactTranslations"))
    if patterns:
        sources.append(PatternSource(patterns))

    prompt = payload.get("prompt")
    if isinstance(prompt, str) and prompt.strip() and challenge_type in UI_LISTENING_CHALLENGE_TYPES:
        sources.append(SentenceSource((prompt,)))

    tokens = _string_list(payload.get("correctTokens"))
    if tokens and challenge_type in UI_WORD_BANK_CHALLENGE_TYPES:
        sources.append(SentenceSource(tokens, word_bank=True))

    return UnparsedSolutionList(
        metadata=ChallengeMetadata(
            locale=locale,
            whitespace_delimited=bool(grader.get("whitespaceDelimited")),
            extra=metadata,
        ),
        sources=tuple(sources),
    )


def parse_challenge(
    payload: Mapping[str, Any],
    from_language: str = "",
    to_language: str = "",
) -> Optional[Challenge]:
    """Return the challenge described by *payload*, or None if it is not a supported challenge."""
    if not isinstance(payload, Mapping):
        return None
    solutions = solution_list_from_payload(payload)
    if not solutions.sources:
        return None

    challenge_type = payload.get("type")
    statement = normalize(str(payload.get("prompt") or ""))
    discussion_id = str(payload.get("sentenceDiscussionId") or "").strip()
    solution_translation = normalize(str(payload.get("solutionTranslation") or ""))

    if statement and challenge_type in UI_TRANSLATION_CHALLENGE_TYPES:
        kind = ChallengeType.NAMING if challenge_type in UI_NAMING_CHALLENGE_TYPES else ChallengeType.TRANSLATION
        solution_translation = ""
    elif challenge_type in UI_LISTENING_CHALLENGE_TYPES and solution_translation:
        kind = ChallengeType.LISTENING
    else:
        return None

    return Challenge(
        type=kind,
        statement=statement,
        solutions=solutions,
        from_language=from_language,
        to_language=to_language,
        discussion_id=discussion_id,
        solution_translation=solution_translation,
    )


def parse_challenges(
    payloads: Iterable[Any],
    from_language: str = "",
    to_language: str = "",
) -> List[Challenge]:
    challenges = []
    for payload in payloads:
        challenge = parse_challenge(payload, from_language, to_language)
        if challenge is None:
            logger.debug("Skipping an unsupported challenge payload")
            continue
        challenges.append(challenge)
    return challenges


@dataclass(frozen=True)
class AnswerReview:
    solutions: ParsedSolutionList
    answer: str
    best_solutions: Tuple[Solution, ...]
    correction: Optional[CorrectionResult] = None


def review_answer(
    solution_list: SolutionList,
    answer: str,
    is_correct: bool = False,
    options: Optional[MatchingOptions] = None,
) -> AnswerReview:
    """Score *answer* against a parsed list, and correct it when it was graded correct."""
    parsed = require_parsed(solution_list)
    add_similarity_scores(parsed, answer, options)
    correction = build_correction(parsed, answer, options) if is_correct else None
    return AnswerReview(
        solutions=parsed,
        answer=normalize(answer),
        best_solutions=tuple(best_scored_solutions(parsed.solutions)),
        correction=correction,
    )


__all__ = [
    "AnswerReview",
    "Challenge",
    "ChallengeType",
    "KEY_PREFIX",
    "UI_LISTENING_CHALLENGE_TYPES",
    "UI_NAMING_CHALLENGE_TYPES",
    "UI_TRANSLATION_CHALLENGE_TYPES",
    "UI_WORD_BANK_CHALLENGE_TYPES",
    "parse_challenge",
    "parse_challenges",
    "review_answer",
    "solution_list_from_payload",
]
