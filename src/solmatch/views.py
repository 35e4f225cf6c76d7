"""Interactive views over parsed solution lists: filtering, sorting and pagination."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from .export import ExportScope
from .filtering import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_DIRECTIONS,
    PAGE_SIZES,
    FilterCache,
    Page,
    PageSize,
    SortDirection,
    SortType,
    WordFilter,
    applicable_flag_filters,
    available_sort_types,
    coerce_page_size,
    filter_solutions,
    page_count,
    page_for_new_size,
    paginate,
    sort_solutions,
)
from .locales import FlagFilter, FlagFilterSet, flag_filter_set_for
from .matching import build_list_matching_data, is_word_based
from .solution_list import ParsedSolutionList, require_parsed
from .solutions import Solution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    filters: Tuple[WordFilter, ...] = ()
    flag_mask: Optional[int] = None
    sort_type: SortType = SortType.ALPHABETICAL
    sort_direction: SortDirection = SortDirection.ASC
    page: int = 1
    page_size: PageSize = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ViewSnapshot:
    state: ViewState
    page: Page
    total_count: int
    filtered_count: int
    generation: int
    flag_filters: Tuple[Tuple[FlagFilter, int], ...] = ()
    sort_types: Tuple[SortType, ...] = ()

    @property
    def solutions(self) -> Tuple[Solution, ...]:
        return self.page.items


ViewChange = Callable[[ViewState], ViewState]


class ListView:
    """A filtered, sorted and paginated view of a parsed solution list.

    Each stage is cached on its inputs. Requests may overlap: only the result of
    the latest one is committed, older ones resolve to None.
    """

    def __init__(
        self,
        solution_list: ParsedSolutionList,
        page_sizes: Sequence[PageSize] = PAGE_SIZES,
        default_page_size: PageSize = DEFAULT_PAGE_SIZE,
        flag_filter_set: Optional[FlagFilterSet] = None,
    ) -> None:
        self.solution_list = require_parsed(solution_list)
        build_list_matching_data(self.solution_list)
        self.page_sizes = tuple(page_sizes)
        self._word_based = is_word_based(self.solution_list)
        self._cache = FilterCache()
        self._lock = threading.Lock()
        self._generation = 0
        self._filtered_stage: Tuple[Optional[tuple], List[Solution]] = (None, [])
        self._sorted_stage: Tuple[Optional[tuple], List[Solution]] = (None, [])
        self._scores_version = 0
        self._was_scored = self.solution_list.is_scored

        if flag_filter_set is None:
            flag_filter_set = flag_filter_set_for(self.solution_list.locale)
        self.flag_filters, default_mask = applicable_flag_filters(self.solution_list.solutions, flag_filter_set)

        sort_type = SortType.SIMILARITY if self.solution_list.is_scored else SortType.ALPHABETICAL
        self._requested = ViewState(
            flag_mask=default_mask,
            sort_type=sort_type,
            sort_direction=DEFAULT_SORT_DIRECTIONS[sort_type],
            page_size=coerce_page_size(default_page_size, self.page_sizes),
        )
        self._snapshot = self._compute(self._requested, self._generation)

    @property
    def state(self) -> ViewState:
        """The latest requested state."""
        return self._requested

    @property
    def snapshot(self) -> ViewSnapshot:
        """The latest committed snapshot."""
        return self._snapshot

    def _filtered_solutions(self, state: ViewState) -> List[Solution]:
        key = (state.filters, state.flag_mask)
        cached_key, filtered = self._filtered_stage
        if key != cached_key:
            filtered = filter_solutions(
                self.solution_list.solutions,
                state.filters,
                state.flag_mask,
                self._cache,
                self._word_based,
            )
            self._filtered_stage = (key, filtered)
        return filtered

    def _sorted_solutions(self, state: ViewState) -> List[Solution]:
        filtered = self._filtered_solutions(state)
        key = (state.filters, state.flag_mask, state.sort_type, state.sort_direction, self._scores_version)
        cached_key, ordered = self._sorted_stage
        if key != cached_key:
            ordered = sort_solutions(filtered, state.sort_type, state.sort_direction)
            self._sorted_stage = (key, ordered)
        return ordered

    def _compute(self, state: ViewState, generation: int) -> ViewSnapshot:
        solutions = self._sorted_solutions(state)
        return ViewSnapshot(
            state=state,
            page=paginate(solutions, state.page, state.page_size),
            total_count=len(self.solution_list.solutions),
            filtered_count=len(solutions),
            generation=generation,
            flag_filters=self.flag_filters,
            sort_types=available_sort_types(self.solution_list.solutions),
        )

    def _begin(self, change: ViewChange) -> Tuple[int, ViewState]:
        with self._lock:
            self._requested = change(self._requested)
            self._generation += 1
            return self._generation, self._requested

    def _commit(self, generation: int, snapshot: ViewSnapshot) -> Optional[ViewSnapshot]:
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding the result of superseded request %d", generation)
                return None
            self._snapshot = snapshot
            return snapshot

    def _run(self, generation: int, state: ViewState) -> Optional[ViewSnapshot]:
        return self._commit(generation, self._compute(state, generation))

    def request(self, change: ViewChange) -> Optional[ViewSnapshot]:
        """Apply *change* to the requested state and return the new snapshot, or None if superseded."""
        generation, state = self._begin(change)
        return self._run(generation, state)

    def submit(self, executor: Executor, change: ViewChange) -> "Future[Optional[ViewSnapshot]]":
        """Like request(), computing the snapshot on *executor*."""
        generation, state = self._begin(change)
        return executor.submit(self._run, generation, state)

    def refresh_scores(self) -> Optional[ViewSnapshot]:
        """Recompute the view after the solutions have been (re)scored."""
        self._scores_version += 1
        is_scored = self.solution_list.is_scored
        first_scores = is_scored and not self._was_scored
        self._was_scored = is_scored

        def change(state: ViewState) -> ViewState:
            if first_scores:
                # Fresh scores bring the closest solutions to the front.
                sort_type = SortType.SIMILARITY
                return replace(state, sort_type=sort_type, sort_direction=DEFAULT_SORT_DIRECTIONS[sort_type], page=1)
            if state.sort_type is SortType.SIMILARITY and not is_scored:
                return replace(state, sort_type=SortType.ALPHABETICAL, sort_direction=SortDirection.ASC)
            return state

        return self.request(change)

    def add_filter(self, word_filter: WordFilter) -> Optional[ViewSnapshot]:
        def change(state: ViewState) -> ViewState:
            filters = tuple(it for it in state.filters if it.word != word_filter.word) + (word_filter,)
            return replace(state, filters=filters)

        return self.request(change)

    def remove_filter(self, word: str) -> Optional[ViewSnapshot]:
        return self.request(lambda state: replace(
            state,
            filters=tuple(it for it in state.filters if it.word != word),
        ))

    def clear_filters(self) -> Optional[ViewSnapshot]:
        return self.request(lambda state: replace(state, filters=()))

    def toggle_flag(self, flag: int) -> Optional[ViewSnapshot]:
        def change(state: ViewState) -> ViewState:
            if state.flag_mask is None:
                return state
            return replace(state, flag_mask=state.flag_mask ^ flag)

        return self.request(change)

    def set_flag_mask(self, flag_mask: int) -> Optional[ViewSnapshot]:
        def change(state: ViewState) -> ViewState:
            if state.flag_mask is None:
                return state
            return replace(state, flag_mask=flag_mask)

        return self.request(change)

    def set_sort(self, sort_type: SortType, direction: Optional[SortDirection] = None) -> Optional[ViewSnapshot]:
        sort_type = SortType(sort_type)
        if sort_type not in available_sort_types(self.solution_list.solutions):
            raise ValueError(f"unavailable sort type: {sort_type.value}")
        direction = SortDirection(direction or DEFAULT_SORT_DIRECTIONS[sort_type])
        return self.request(lambda state: replace(state, sort_type=sort_type, sort_direction=direction))

    def toggle_sort_direction(self) -> Optional[ViewSnapshot]:
        def change(state: ViewState) -> ViewState:
            direction = SortDirection.ASC if state.sort_direction is SortDirection.DESC else SortDirection.DESC
            return replace(state, sort_direction=direction)

        return self.request(change)

    def set_page(self, page: int) -> Optional[ViewSnapshot]:
        return self.request(lambda state: replace(state, page=max(1, int(page))))

    def set_page_size(self, page_size: PageSize) -> Optional[ViewSnapshot]:
        page_size = coerce_page_size(page_size, self.page_sizes)
        # The current page number is clamped to the pages that exist.
        filtered_count = self._snapshot.filtered_count

        def change(state: ViewState) -> ViewState:
            current = max(1, min(state.page, page_count(filtered_count, state.page_size)))
            page = page_for_new_size(current, state.page_size, page_size, filtered_count)
            return replace(state, page=page, page_size=page_size)

        return self.request(change)

    def solutions_for_scope(self, scope: ExportScope) -> List[Solution]:
        scope = ExportScope(scope)
        if scope is ExportScope.ALL:
            return list(self.solution_list.solutions)
        if scope is ExportScope.FILTERED:
            return list(self._sorted_solutions(self._snapshot.state))
        return list(self._snapshot.page.items)


__all__ = [
    "ListView",
    "ViewChange",
    "ViewSnapshot",
    "ViewState",
]
