"""Matching data and similarity scores of solutions against user answers."""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .solution_list import ParsedSolutionList, SolutionList, require_parsed
from .solutions import Solution
from .tokenizer import is_word_based_locale, lower, normalize, strip_non_word_edges, word_bigrams, words_of

logger = logging.getLogger(__name__)

_PAIR_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class MatchingOptions:
    ignore_diacritics: bool = False
    ignore_word_order: bool = True


@dataclass(frozen=True)
class SolutionMatchingData:
    """Matchable forms of a solution.

    Word-based locales fill *token_words* (the words of each choice of each token)
    and *words* (sorted, deduplicated); other locales fill *summary*.
    """

    id: int
    token_words: Optional[Tuple[Tuple[Tuple[str, ...], ...], ...]] = None
    words: Optional[Tuple[str, ...]] = None
    summary: Optional[str] = None
    shared_bigrams: Counter = field(default_factory=Counter, repr=False, compare=False)
    choice_bigrams: Tuple[Tuple[Counter, ...], ...] = field(default=(), repr=False, compare=False)
    complex_indices: Tuple[int, ...] = field(default=(), repr=False, compare=False)


@dataclass(frozen=True)
class ListMatchingData:
    options: MatchingOptions
    locale: str
    words: Optional[Tuple[str, ...]] = None

    @property
    def is_word_based(self) -> bool:
        return self.words is not None


@lru_cache(maxsize=8192)
def _matchable_words(text: str, locale: str, ignore_diacritics: bool) -> Tuple[str, ...]:
    return tuple(words_of(lower(normalize(text, True, ignore_diacritics), locale)))


def matchable_words(text: str, locale: str, options: MatchingOptions = MatchingOptions()) -> List[str]:
    """Return the lowercased words of *text*, as compared with the words of solutions."""
    return list(_matchable_words(text, locale, options.ignore_diacritics))


def matchable_summary(text: str, locale: str, options: MatchingOptions = MatchingOptions()) -> str:
    return strip_non_word_edges(lower(normalize(text, True, options.ignore_diacritics), locale))


def _bigram_features(words: Sequence[str]) -> Counter:
    features: Counter = Counter()
    for word in words:
        features.update(word_bigrams(word))
    return features


def _pair_features(words: Sequence[str]) -> Counter:
    return Counter(left + _PAIR_SEPARATOR + right for left, right in zip(words, words[1:]))


def answer_features(words: Sequence[str], options: MatchingOptions) -> Counter:
    features = _bigram_features(words)
    if not options.ignore_word_order:
        features.update(_pair_features(words))
    return features


def dice_coefficient(left: Counter, right: Counter) -> float:
    """Return the Sørensen-Dice coefficient of two multisets."""
    total = sum(left.values()) + sum(right.values())
    if total == 0:
        return 0.0
    return 2.0 * sum((left & right).values()) / total


def _words_matching_data(solution: Solution, solution_id: int, options: MatchingOptions) -> SolutionMatchingData:
    token_words = tuple(
        tuple(_matchable_words(choice, solution.locale, options.ignore_diacritics) for choice in token)
        for token in solution.tokens
    )
    shared: Counter = Counter()
    choice_bigrams = []
    complex_indices = []
    for index, choices in enumerate(token_words):
        if len(choices) == 1:
            shared.update(_bigram_features(choices[0]))
        else:
            complex_indices.append(index)
            choice_bigrams.append(tuple(_bigram_features(words) for words in choices))
    words = sorted({word for choices in token_words for words in choices for word in words})
    return SolutionMatchingData(
        id=solution_id,
        token_words=token_words,
        words=tuple(words),
        shared_bigrams=shared,
        choice_bigrams=tuple(choice_bigrams),
        complex_indices=tuple(complex_indices),
    )


def _summary_matching_data(solution: Solution, solution_id: int, options: MatchingOptions) -> SolutionMatchingData:
    return SolutionMatchingData(
        id=solution_id,
        summary=matchable_summary(solution.summary, solution.locale, options),
    )


def build_list_matching_data(
    solution_list: SolutionList,
    options: Optional[MatchingOptions] = None,
) -> ListMatchingData:
    """Attach matching data to a parsed list and its solutions, unless it is already there.

    Raises NotParsedError for unparsed lists.
    """
    parsed = require_parsed(solution_list)
    if parsed.matching_data is not None:
        return parsed.matching_data

    options = options or MatchingOptions()
    word_based = is_word_based(parsed)
    corpus = set()
    for solution_id, solution in enumerate(parsed.solutions):
        if word_based:
            solution.matching_data = _words_matching_data(solution, solution_id, options)
            corpus.update(solution.matching_data.words)
        else:
            solution.matching_data = _summary_matching_data(solution, solution_id, options)

    parsed.matching_data = ListMatchingData(
        options=options,
        locale=parsed.locale,
        words=tuple(sorted(corpus)) if word_based else None,
    )
    logger.debug(
        "Built matching data for %d solutions (%d distinct words)", len(parsed.solutions), len(corpus)
    )
    return parsed.matching_data


def is_word_based(solution_list: ParsedSolutionList) -> bool:
    return is_word_based_locale(solution_list.locale)


def _path_words(solution: Solution, indices: Sequence[int]) -> List[str]:
    data = solution.matching_data
    chosen = dict(zip(data.complex_indices, indices))
    return [
        word
        for position, choices in enumerate(data.token_words)
        for word in choices[chosen.get(position, 0)]
    ]


def _path_scores(
    solution: Solution,
    answer_words: Sequence[str],
    options: MatchingOptions,
) -> Iterator[Tuple[Tuple[int, ...], float]]:
    """Yield the score of each variation, identified by its choice indices on the complex tokens."""
    data = solution.matching_data
    answer = answer_features(answer_words, options)
    answer_size = sum(answer.values())
    paths = itertools.product(*(range(len(choices)) for choices in data.choice_bigrams))

    if not options.ignore_word_order:
        for indices in paths:
            features = answer_features(_path_words(solution, indices), options)
            yield indices, dice_coefficient(answer, features)
        return

    # Count the shared part once, then only the chosen parts for each variation.
    remaining = answer - data.shared_bigrams
    shared_common = sum((answer & data.shared_bigrams).values())
    shared_size = sum(data.shared_bigrams.values())
    for indices in paths:
        chosen: Counter = Counter()
        for choices, index in zip(data.choice_bigrams, indices):
            chosen.update(choices[index])
        total = answer_size + shared_size + sum(chosen.values())
        if total == 0:
            yield indices, 0.0
            continue
        common = shared_common + sum((remaining & chosen).values())
        yield indices, 2.0 * common / total


def _summary_score(solution: Solution, answer_summary: str) -> float:
    return dice_coefficient(
        _bigram_features(words_of(answer_summary)),
        _bigram_features(words_of(solution.matching_data.summary)),
    )


def score_solution(solution: Solution, answer: str, options: MatchingOptions = MatchingOptions()) -> float:
    """Return the best similarity score in [0, 1] between *answer* and the variations of *solution*."""
    data = solution.matching_data
    if data is None:
        raise ValueError(f"solution {solution.position} has no matching data")
    if data.token_words is None:
        return _summary_score(solution, matchable_summary(answer, solution.locale, options))
    answer_words = matchable_words(answer, solution.locale, options)
    return max(score for _, score in _path_scores(solution, answer_words, options))


def add_similarity_scores(
    solution_list: SolutionList,
    answer: str,
    options: Optional[MatchingOptions] = None,
) -> ParsedSolutionList:
    """Score every solution of a parsed list against *answer*.

    An empty answer resets the scores. A solution that cannot be scored is left unscored.
    """
    parsed = require_parsed(solution_list)
    matching_data = build_list_matching_data(parsed, options)
    answer = normalize(answer)

    if not answer:
        for solution in parsed.solutions:
            solution.score = None
        return parsed

    for solution in parsed.solutions:
        try:
            solution.score = score_solution(solution, answer, matching_data.options)
        except Exception:
            logger.exception("Could not score solution %d against the answer", solution.position)
            solution.score = None
    return parsed


def best_matching_variations(
    solution: Solution,
    answer: str,
    options: MatchingOptions = MatchingOptions(),
) -> List[str]:
    """Return the variations of *solution* that reach its best score against *answer*."""
    data = solution.matching_data
    if not solution.is_complex:
        return [solution.reference]
    if data is None or data.token_words is None:
        return list(solution.variations())

    answer_words = matchable_words(answer, solution.locale, options)
    best_score = -1.0
    best_paths: List[Tuple[int, ...]] = []
    for indices, score in _path_scores(solution, answer_words, options):
        if score > best_score:
            best_score, best_paths = score, [indices]
        elif score == best_score:
            best_paths.append(indices)

    variations = []
    for indices in best_paths:
        chosen = dict(zip(data.complex_indices, indices))
        variations.append(solution.variation_at([chosen.get(position, 0) for position in range(len(solution.tokens))]))
    return list(dict.fromkeys(variations))


def best_scored_solutions(solutions: Iterable[Solution]) -> List[Solution]:
    scored = [solution for solution in solutions if solution.score is not None]
    if not scored:
        return []
    best = max(solution.score for solution in scored)
    return [solution for solution in scored if solution.score == best]


__all__ = [
    "ListMatchingData",
    "MatchingOptions",
    "SolutionMatchingData",
    "add_similarity_scores",
    "answer_features",
    "best_matching_variations",
    "best_scored_solutions",
    "build_list_matching_data",
    "dice_coefficient",
    "is_word_based",
    "matchable_summary",
    "matchable_words",
    "score_solution",
]
