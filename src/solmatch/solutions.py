"""Accepted solutions, in folded and unfolded form."""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .locales import sentence_flags
from .tokenizer import is_word_based_locale, normalize

if TYPE_CHECKING:
    from .matching import SolutionMatchingData

Token = Tuple[str, ...]

_WORD_SPLIT = re.compile(r"([^\W_]+)")


class SolutionError(ValueError):
    """Base class for errors raised while building or matching solutions."""


@dataclass(eq=False)
class Solution:
    """One accepted answer. A token with several choices is a bracketed alternative."""

    locale: str
    tokens: Tuple[Token, ...]
    flags: int = 0
    position: int = 0
    score: Optional[float] = None
    matching_data: Optional["SolutionMatchingData"] = field(default=None, repr=False)

    @cached_property
    def reference(self) -> str:
        return normalize("".join(token[0] for token in self.tokens))

    @property
    def is_complex(self) -> bool:
        return any(len(token) > 1 for token in self.tokens)

    @property
    def variation_count(self) -> int:
        count = 1
        for token in self.tokens:
            count *= len(token)
        return count

    def variations(self) -> Iterator[str]:
        """Yield every fully unfolded reading of the solution."""
        for choices in itertools.product(*self.tokens):
            yield normalize("".join(choices))

    def variation_at(self, indices: Sequence[int]) -> str:
        return normalize("".join(token[index] for token, index in zip(self.tokens, indices)))

    @cached_property
    def summary(self) -> str:
        """Reader-friendly string showing every choice in place."""
        if is_word_based_locale(self.locale):
            space, separator = "", "/"
        else:
            # Space out the choices when words are not separated by spaces.
            space, separator = " ", " / "
        parts = []
        for token in self.tokens:
            if len(token) == 1:
                parts.append(token[0])
            else:
                parts.append(f"{space}[{space}{separator.join(token)}{space}]{space}")
        return normalize("".join(parts))

    def collapsed_tokens(self) -> List[Union[str, Token]]:
        """Merge consecutive single-choice tokens into plain strings."""
        collapsed: List[Union[str, Token]] = []
        for token in self.tokens:
            if len(token) > 1:
                collapsed.append(token)
            elif collapsed and isinstance(collapsed[-1], str):
                collapsed[-1] += token[0]
            else:
                collapsed.append(token[0])
        return collapsed


def split_sentence_tokens(sentence: str) -> Tuple[Token, ...]:
    """Split a sentence into alternating word / separator tokens with a single choice each."""
    return tuple((part,) for part in _WORD_SPLIT.split(sentence) if part)


def i18n_counts(solutions: Sequence[Solution]) -> Tuple[str, int]:
    """Return a displayable count, with a "+" when some solutions are folded, and a plural count."""
    plural = len(solutions)
    display = str(plural)
    if any(solution.is_complex for solution in solutions):
        plural += 1
        display += "+"
    return display, plural


def from_sentences(
    sentences: Iterable[object],
    locale: str,
    flagger: Optional[Callable[[str], int]] = None,
) -> List[Solution]:
    """Build one solution per non-empty sentence."""
    solutions: List[Solution] = []
    for sentence in sentences:
        if not isinstance(sentence, str):
            continue
        reference = normalize(sentence)
        if not reference:
            continue
        flags = flagger(reference) if flagger is not None else sentence_flags(reference, locale)
        solutions.append(
            Solution(
                locale=locale,
                tokens=split_sentence_tokens(reference),
                flags=flags,
                position=len(solutions),
            )
        )
    return solutions


def from_word_bank_tokens(
    tokens: Iterable[object],
    locale: str,
    flagger: Optional[Callable[[str], int]] = None,
) -> List[Solution]:
    """Build the single solution made of the correct word-bank tokens."""
    separator = " " if is_word_based_locale(locale) else ""
    sentence = separator.join(token for token in tokens if isinstance(token, str))
    return from_sentences([sentence], locale, flagger)


__all__ = [
    "Solution",
    "SolutionError",
    "Token",
    "from_sentences",
    "from_word_bank_tokens",
    "i18n_counts",
    "split_sentence_tokens",
]
