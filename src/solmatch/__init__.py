"""Expansion, matching and browsing of the accepted solutions of language exercises."""

from .challenges import AnswerReview, Challenge, ChallengeType, parse_challenge, parse_challenges, review_answer
from .config import EngineConfig, load_config, setup_logging
from .corrections import CorrectionResult, CorrectionStatus, DiffSegment, SegmentKind, build_correction
from .export import ExportScope, export_solutions
from .filtering import MatchMode, MatchType, SortDirection, SortType, WordFilter, parse_word_filter
from .graph import MalformedGraphError, expand_graph
from .matching import MatchingOptions, add_similarity_scores, build_list_matching_data
from .patterns import expand_patterns, parse_pattern
from .solution_list import NotParsedError, ParsedSolutionList, SolutionListType, UnparsedSolutionList, ensure_parsed
from .solutions import Solution, SolutionError
from .views import ListView, ViewSnapshot, ViewState

__all__ = [
    "AnswerReview",
    "Challenge",
    "ChallengeType",
    "CorrectionResult",
    "CorrectionStatus",
    "DiffSegment",
    "EngineConfig",
    "ExportScope",
    "ListView",
    "MalformedGraphError",
    "MatchMode",
    "MatchType",
    "MatchingOptions",
    "NotParsedError",
    "ParsedSolutionList",
    "SegmentKind",
    "Solution",
    "SolutionError",
    "SolutionListType",
    "SortDirection",
    "SortType",
    "UnparsedSolutionList",
    "ViewSnapshot",
    "ViewState",
    "WordFilter",
    "add_similarity_scores",
    "build_correction",
    "build_list_matching_data",
    "ensure_parsed",
    "expand_graph",
    "expand_patterns",
    "export_solutions",
    "load_config",
    "parse_challenge",
    "parse_challenges",
    "parse_pattern",
    "parse_word_filter",
    "review_answer",
    "setup_logging",
]
