"""Word filters, flag filters, sorting and pagination of solution lists."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .locales import FlagFilter, FlagFilterSet
from .matching import MatchingOptions, matchable_words
from .solutions import Solution
from .tokenizer import bound_indices_of, collation_key, is_word_based_locale, normalize

logger = logging.getLogger(__name__)

PAGE_SIZE_ALL = "all"
PAGE_SIZES: Tuple[Union[int, str], ...] = (10, 20, 50, 200, PAGE_SIZE_ALL)
DEFAULT_PAGE_SIZE = 20
MIN_SUGGESTION_QUERY_LENGTH = 2

PageSize = Union[int, str]


class MatchType(IntFlag):
    NONE = 0b0000
    ANYWHERE = 0b0001
    START = 0b0011
    END = 0b0101
    EXACT = 0b1111


class MatchMode(str, Enum):
    GLOBAL = "global"
    WORDS = "words"


# Match types by match mode, leading marker ("", "=" or "*") and trailing marker ("" or "*").
MATCH_TYPE_MAP: Mapping[MatchMode, Mapping[str, Mapping[str, MatchType]]] = {
    MatchMode.GLOBAL: {
        "": {"": MatchType.ANYWHERE, "*": MatchType.START},
        "=": {"": MatchType.EXACT},
        "*": {"": MatchType.END, "*": MatchType.ANYWHERE},
    },
    MatchMode.WORDS: {
        "": {"": MatchType.EXACT, "*": MatchType.START},
        "*": {"": MatchType.END, "*": MatchType.ANYWHERE},
    },
}

_QUERY_PATTERN = re.compile(r"^([-+]?)([*=]?)(.+?)(\*?)$", re.DOTALL)


@dataclass(frozen=True)
class WordFilter:
    word: str
    match_type: MatchType = MatchType.EXACT
    excluded: bool = False


@dataclass(frozen=True)
class MatchResult:
    is_matched: bool
    matches: int
    is_partial: bool
    index: int = 0


def has_match_type(match_type: int, matches: int) -> bool:
    return (match_type & matches) == match_type


def match_substring(text: str, substring: str) -> MatchType:
    """Return where *substring* occurs in *text*: nowhere, anywhere, at the start, at the end, or as a whole."""
    if not substring:
        return MatchType.NONE
    if text == substring:
        return MatchType.EXACT
    first, last = bound_indices_of(text, substring)
    if first < 0:
        return MatchType.NONE
    matches = MatchType.ANYWHERE
    if first == 0:
        matches |= MatchType.START
    if last + len(substring) == len(text):
        matches |= MatchType.END
    return matches


def default_match_mode(locale: str, value: Optional[str] = None) -> MatchMode:
    """Return the requested match mode, or the one suited to how the locale separates words."""
    if value:
        return MatchMode(value)
    return MatchMode.WORDS if is_word_based_locale(locale) else MatchMode.GLOBAL


def parse_word_filter(
    query: str,
    locale: str,
    match_mode: MatchMode = MatchMode.WORDS,
    options: MatchingOptions = MatchingOptions(),
) -> Optional[WordFilter]:
    """Parse a filter query such as "-run*" or "=run". Returns None if the query holds no word."""
    match = _QUERY_PATTERN.match(query.strip())
    if match is None:
        return None
    sign, start, base, end = match.groups()
    words = matchable_words(base, locale, options)
    if not words:
        return None
    types = MATCH_TYPE_MAP[MatchMode(match_mode)]
    match_type = types.get(start, {}).get(end) or types[""][end]
    return WordFilter(word=words[0], match_type=match_type, excluded=sign == "-")


def match_solution_on_words(
    solution: Solution,
    word_filter: WordFilter,
    matches: int = MatchType.NONE,
    index: int = 0,
) -> MatchResult:
    """Match the words of *solution* from *index* on, stopping as soon as the filter is satisfied.

    Passing back the returned matches and index resumes the search where it stopped.
    """
    words = solution.matching_data.words or ()
    is_matched = has_match_type(word_filter.match_type, matches)
    while not is_matched and index < len(words):
        matches |= match_substring(words[index], word_filter.word)
        index = len(words) if matches == MatchType.EXACT else index + 1
        is_matched = has_match_type(word_filter.match_type, matches)
    return MatchResult(is_matched, matches, index < len(words), index)


def match_solution_on_summary(
    solution: Solution,
    word_filter: WordFilter,
    matches: int = MatchType.NONE,
    index: int = 0,
) -> MatchResult:
    matches = match_substring(solution.matching_data.summary or "", word_filter.word)
    return MatchResult(has_match_type(word_filter.match_type, matches), matches, False)


class FilterCache:
    """Match results by filter word and solution id, so that filters can be resumed."""

    def __init__(self) -> None:
        self._entries: Dict[str, Dict[int, MatchResult]] = {}

    def get(self, word: str, solution_id: int) -> Optional[MatchResult]:
        return self._entries.get(word, {}).get(solution_id)

    def store(self, word: str, solution_id: int, result: MatchResult) -> None:
        self._entries.setdefault(word, {})[solution_id] = result

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(results) for results in self._entries.values())


def _matches_filters(
    solution: Solution,
    filters: Sequence[WordFilter],
    flag_mask: Optional[int],
    cache: FilterCache,
    matcher: Callable[..., MatchResult],
) -> bool:
    if flag_mask is not None and not solution.flags & flag_mask:
        return False
    solution_id = solution.matching_data.id
    for word_filter in filters:
        cached = cache.get(word_filter.word, solution_id)
        if cached is not None:
            matches, is_partial, index = cached.matches, cached.is_partial, cached.index
            is_matched = has_match_type(word_filter.match_type, matches)
        else:
            matches, is_partial, index = MatchType.NONE, True, 0
            is_matched = False
        if not is_matched and is_partial:
            result = matcher(solution, word_filter, matches, index)
            cache.store(word_filter.word, solution_id, result)
            is_matched = result.is_matched
        if is_matched == word_filter.excluded:
            return False
    return True


def filter_solutions(
    solutions: Sequence[Solution],
    filters: Sequence[WordFilter],
    flag_mask: Optional[int] = None,
    cache: Optional[FilterCache] = None,
    word_based: bool = True,
) -> List[Solution]:
    """Return the solutions matching every filter and at least one flag of the mask.

    A solution that fails to be matched is treated as a non-match.
    """
    cache = cache if cache is not None else FilterCache()
    matcher = match_solution_on_words if word_based else match_solution_on_summary
    result = []
    for solution in solutions:
        try:
            if _matches_filters(solution, filters, flag_mask, cache, matcher):
                result.append(solution)
        except Exception:
            logger.exception("Could not filter solution %d", solution.position)
    return result


def applicable_flag_filters(
    solutions: Sequence[Solution],
    flag_filter_set: Optional[FlagFilterSet],
) -> Tuple[Tuple[Tuple[FlagFilter, int], ...], Optional[int]]:
    """Return the flag filters worth offering, with their match counts, and the default mask.

    Flag filters are only offered when at least two of them match some solutions.
    """
    if flag_filter_set is None:
        return (), None
    applicable = []
    for flag_filter in flag_filter_set.filters:
        count = sum(1 for solution in solutions if solution.flags & flag_filter.flag)
        if count > 0:
            applicable.append((flag_filter, count))
    if len(applicable) < 2:
        return (), None
    defaults = [flag_filter for flag_filter, _ in applicable if flag_filter.default] or [applicable[0][0]]
    mask = 0
    for flag_filter in defaults:
        mask |= flag_filter.flag
    return tuple(applicable), mask


class SortType(str, Enum):
    SIMILARITY = "similarity"
    ALPHABETICAL = "alphabetical"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_DIRECTIONS: Mapping[SortType, SortDirection] = {
    SortType.SIMILARITY: SortDirection.DESC,
    SortType.ALPHABETICAL: SortDirection.ASC,
}


def reference_sort_key(solution: Solution):
    return collation_key(solution.reference, solution.locale), not solution.is_complex


def available_sort_types(solutions: Sequence[Solution]) -> Tuple[SortType, ...]:
    if any(solution.score is not None for solution in solutions):
        return (SortType.SIMILARITY, SortType.ALPHABETICAL)
    return (SortType.ALPHABETICAL,)


def sort_solutions(
    solutions: Sequence[Solution],
    sort_type: SortType,
    direction: Optional[SortDirection] = None,
) -> List[Solution]:
    """Sort solutions by similarity score or alphabetically.

    Unscored solutions come last in their original order when sorting by similarity.
    """
    sort_type = SortType(sort_type)
    direction = SortDirection(direction or DEFAULT_SORT_DIRECTIONS[sort_type])
    reverse = direction is SortDirection.DESC
    if sort_type is SortType.ALPHABETICAL:
        return sorted(solutions, key=reference_sort_key, reverse=reverse)
    scored = sorted((solution for solution in solutions if solution.score is not None), key=reference_sort_key)
    scored.sort(key=lambda solution: solution.score, reverse=reverse)
    unscored = sorted((solution for solution in solutions if solution.score is None), key=lambda it: it.position)
    return scored + unscored


@dataclass(frozen=True)
class Page:
    items: Tuple[Solution, ...]
    number: int
    size: PageSize
    count: int
    total: int

    @property
    def first_index(self) -> int:
        """1-based index of the first item, 0 on an empty page."""
        if not self.items:
            return 0
        return 1 if self.size == PAGE_SIZE_ALL else (self.number - 1) * self.size + 1

    @property
    def last_index(self) -> int:
        if not self.items:
            return 0
        return self.first_index + len(self.items) - 1


def coerce_page_size(size: object, allowed: Sequence[PageSize] = PAGE_SIZES) -> PageSize:
    """Return the page size matching *size*, given as an int or a string. Raises ValueError otherwise."""
    if isinstance(size, str) and size.strip().isdigit():
        size = int(size.strip())
    if isinstance(size, bool) or size not in allowed:
        raise ValueError(f"unsupported page size: {size!r}")
    return size


def page_count(total: int, size: PageSize) -> int:
    if size == PAGE_SIZE_ALL or total == 0:
        return 1
    return math.ceil(total / size)


def paginate(items: Sequence[Solution], page: int, size: PageSize) -> Page:
    """Return the page of *items* with the given number, clamped to the existing pages."""
    total = len(items)
    count = page_count(total, size)
    number = max(1, min(page, count))
    if size == PAGE_SIZE_ALL:
        selected = tuple(items)
    else:
        selected = tuple(items[(number - 1) * size:number * size])
    return Page(items=selected, number=number, size=size, count=count, total=total)


def page_for_new_size(page: int, old_size: PageSize, new_size: PageSize, total: int) -> int:
    """Return the page that keeps the first item of the current page visible after a page size change."""
    if new_size == PAGE_SIZE_ALL:
        return 1
    old_size = total if old_size == PAGE_SIZE_ALL else min(old_size, total)
    if old_size <= 0:
        return 1
    return max(1, math.ceil(((page - 1) * old_size + 1) / new_size))


def suggest_words(
    query: str,
    words: Sequence[str],
    locale: str,
    min_length: int = MIN_SUGGESTION_QUERY_LENGTH,
    limit: Optional[int] = None,
) -> List[str]:
    """Return the corpus words that contain the query word, exact and prefix matches first.

    Diacritics are ignored on both sides.
    """
    word_filter = parse_word_filter(query, locale, MatchMode.GLOBAL)
    if word_filter is None or len(word_filter.word) < min_length:
        return []
    needle = normalize(word_filter.word, remove_diacritics=True)
    ranked = []
    for word in words:
        searchable = normalize(word, remove_diacritics=True)
        if needle not in searchable:
            continue
        if searchable == needle:
            rank = 0
        elif searchable.startswith(needle):
            rank = 1
        else:
            rank = 2
        ranked.append((rank, collation_key(word, locale), word))
    ranked.sort()
    suggestions = [word for _, _, word in ranked]
    return suggestions[:limit] if limit is not None else suggestions


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_SORT_DIRECTIONS",
    "FilterCache",
    "MATCH_TYPE_MAP",
    "MatchMode",
    "MatchResult",
    "MatchType",
    "PAGE_SIZES",
    "PAGE_SIZE_ALL",
    "Page",
    "PageSize",
    "SortDirection",
    "SortType",
    "WordFilter",
    "applicable_flag_filters",
    "available_sort_types",
    "coerce_page_size",
    "default_match_mode",
    "filter_solutions",
    "has_match_type",
    "match_solution_on_summary",
    "match_solution_on_words",
    "match_substring",
    "page_count",
    "page_for_new_size",
    "paginate",
    "parse_word_filter",
    "reference_sort_key",
    "sort_solutions",
    "suggest_words",
]
