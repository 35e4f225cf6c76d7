"""Export of solutions as text, one double-quoted value per line."""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional, Sequence

from .solutions import Solution
from .tokenizer import normalize

logger = logging.getLogger(__name__)

EXPORT_SIZE_ALERT_THRESHOLD = 10000
DEFAULT_EXPORT_BASENAME = "solutions"

_FILENAME_UNSAFE = re.compile(r"[\W_]+")


class ExportScope(str, Enum):
    ALL = "all"
    FILTERED = "filtered"
    CURRENT_PAGE = "current_page"


@dataclass(frozen=True)
class ExportPlan:
    solution_count: int
    row_count: int
    unfolded: bool
    is_large: bool


def plan_export(
    solutions: Sequence[Solution],
    unfolded: bool = False,
    threshold: int = EXPORT_SIZE_ALERT_THRESHOLD,
) -> ExportPlan:
    """Count the rows an export would produce, flagging exports above *threshold*."""
    if unfolded:
        row_count = sum(solution.variation_count for solution in solutions)
    else:
        row_count = len(solutions)
    return ExportPlan(
        solution_count=len(solutions),
        row_count=row_count,
        unfolded=unfolded,
        is_large=row_count > threshold,
    )


def export_rows(solutions: Sequence[Solution], unfolded: bool = False) -> Iterator[str]:
    for solution in solutions:
        if unfolded:
            yield from solution.variations()
        else:
            yield solution.summary


def serialize_rows(rows: Iterator[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([row])
    return buffer.getvalue()


def export_solutions(
    solutions: Sequence[Solution],
    unfolded: bool = False,
    threshold: int = EXPORT_SIZE_ALERT_THRESHOLD,
    confirm: Optional[Callable[[ExportPlan], bool]] = None,
) -> Optional[str]:
    """Return the exported text, or None if a large export was not confirmed.

    Without a *confirm* callback, large exports go through with a warning.
    """
    plan = plan_export(solutions, unfolded, threshold)
    if plan.is_large:
        if confirm is not None and not confirm(plan):
            logger.info("Cancelled the export of %d rows", plan.row_count)
            return None
        if confirm is None:
            logger.warning("Exporting %d rows", plan.row_count)
    return serialize_rows(export_rows(solutions, unfolded))


def export_filename(statement: str, extension: str = "csv") -> str:
    """Derive a file name from a challenge statement."""
    base = _FILENAME_UNSAFE.sub("_", normalize(statement, remove_diacritics=True).lower()).strip("_")
    return f"{base[:64].rstrip('_') or DEFAULT_EXPORT_BASENAME}.{extension}"


__all__ = [
    "DEFAULT_EXPORT_BASENAME",
    "EXPORT_SIZE_ALERT_THRESHOLD",
    "ExportPlan",
    "ExportScope",
    "export_filename",
    "export_rows",
    "export_solutions",
    "plan_export",
    "serialize_rows",
]
