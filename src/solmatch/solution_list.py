"""Solution lists, kept unparsed until one of their representations is needed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, List, Mapping, Optional, Tuple, Union

from .graph import expand_graph
from .patterns import expand_patterns
from .solutions import Solution, SolutionError, from_sentences, from_word_bank_tokens

if TYPE_CHECKING:
    from .matching import ListMatchingData

logger = logging.getLogger(__name__)


class SolutionListType(str, Enum):
    EXPANDED = "expanded"
    COMPACT = "compact"


class NotParsedError(SolutionError):
    """Raised when an operation needs the solutions of a list that has not been parsed yet."""


@dataclass(frozen=True)
class ChallengeMetadata:
    locale: str
    whitespace_delimited: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphSource:
    vertices: Tuple[Any, ...]

    list_type = SolutionListType.EXPANDED

    def expand(self, metadata: ChallengeMetadata) -> List[Solution]:
        return expand_graph(self.vertices, metadata.locale, metadata.whitespace_delimited)


@dataclass(frozen=True)
class PatternSource:
    patterns: Tuple[str, ...]

    list_type = SolutionListType.COMPACT

    def expand(self, metadata: ChallengeMetadata) -> List[Solution]:
        return expand_patterns(self.patterns, metadata.locale)


@dataclass(frozen=True)
class SentenceSource:
    """Flat sentences, or the correct tokens of a word bank when *word_bank* is set."""

    sentences: Tuple[str, ...]
    word_bank: bool = False

    list_type = SolutionListType.EXPANDED

    def expand(self, metadata: ChallengeMetadata) -> List[Solution]:
        if self.word_bank:
            return from_word_bank_tokens(self.sentences, metadata.locale)
        return from_sentences(self.sentences, metadata.locale)


Source = Union[GraphSource, PatternSource, SentenceSource]


@dataclass(frozen=True)
class UnparsedSolutionList:
    metadata: ChallengeMetadata
    sources: Tuple[Source, ...] = ()

    @property
    def locale(self) -> str:
        return self.metadata.locale

    @property
    def available_types(self) -> Tuple[SolutionListType, ...]:
        types: List[SolutionListType] = []
        for source in self.sources:
            if source.list_type not in types:
                types.append(source.list_type)
        return tuple(types)


@dataclass(eq=False)
class ParsedSolutionList:
    locale: str
    type: SolutionListType
    solutions: Tuple[Solution, ...]
    other_types: Tuple[SolutionListType, ...] = ()
    matching_data: Optional["ListMatchingData"] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.solutions)

    def __iter__(self) -> Iterator[Solution]:
        return iter(self.solutions)

    @property
    def is_scored(self) -> bool:
        return any(solution.score is not None for solution in self.solutions)


SolutionList = Union[UnparsedSolutionList, ParsedSolutionList]


def ensure_parsed(
    solution_list: SolutionList,
    preferred_type: SolutionListType = SolutionListType.COMPACT,
) -> ParsedSolutionList:
    """Parse *solution_list* if needed, preferring the representation of the given type.

    Falls back to the first available representation. Parsed lists are returned unchanged.
    """
    if isinstance(solution_list, ParsedSolutionList):
        return solution_list
    if not isinstance(solution_list, UnparsedSolutionList):
        raise NotParsedError(f"not a solution list: {solution_list!r}")

    preferred_type = SolutionListType(preferred_type)
    metadata = solution_list.metadata
    sources = solution_list.sources
    source = next((it for it in sources if it.list_type is preferred_type), sources[0] if sources else None)
    if source is None:
        logger.debug("No solution representation is available for locale %s", metadata.locale)
        return ParsedSolutionList(locale=metadata.locale, type=preferred_type, solutions=())

    solutions = source.expand(metadata)
    for position, solution in enumerate(solutions):
        solution.position = position

    other_types = tuple(it for it in solution_list.available_types if it is not source.list_type)
    logger.debug(
        "Parsed %d %s solutions for locale %s (also available: %s)",
        len(solutions),
        source.list_type.value,
        metadata.locale,
        ", ".join(it.value for it in other_types) or "none",
    )
    return ParsedSolutionList(
        locale=metadata.locale,
        type=source.list_type,
        solutions=tuple(solutions),
        other_types=other_types,
    )


def require_parsed(solution_list: SolutionList) -> ParsedSolutionList:
    if not isinstance(solution_list, ParsedSolutionList):
        raise NotParsedError("the solution list must be parsed first")
    return solution_list


__all__ = [
    "ChallengeMetadata",
    "GraphSource",
    "NotParsedError",
    "ParsedSolutionList",
    "PatternSource",
    "SentenceSource",
    "SolutionList",
    "SolutionListType",
    "Source",
    "UnparsedSolutionList",
    "ensure_parsed",
    "require_parsed",
]
