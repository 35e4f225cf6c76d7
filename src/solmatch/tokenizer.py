"""Locale-aware normalization and word segmentation."""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from typing import List, Tuple

from .locales import EQUIVALENT_LOCALES, NON_WORD_BASED_LOCALES

WORD_PATTERN = re.compile(r"[^\W_]+")
NON_WORD_EDGES_PATTERN = re.compile(r"^[\W_]*(.*?)[\W_]*$", re.DOTALL)
_WHITESPACE_RUN = re.compile(r"(\s)\s+")
_COLLATION_PART = re.compile(r"(\d+)|([^\W\d_]+)")


def normalize(text: str, remove_extra_spaces: bool = True, remove_diacritics: bool = False) -> str:
    """Return *text* in NFC form, optionally without diacritics and redundant spaces."""
    result = text
    if remove_diacritics:
        decomposed = unicodedata.normalize("NFD", result)
        result = "".join(char for char in decomposed if not unicodedata.category(char).startswith("M"))
    result = unicodedata.normalize("NFC", result)
    if remove_extra_spaces:
        result = _WHITESPACE_RUN.sub(r"\1", result.strip())
    return result


def is_word_char(char: str) -> bool:
    return char.isalnum()


def words_of(text: str) -> List[str]:
    """Return the sequences of letters and/or digits contained in *text*."""
    return WORD_PATTERN.findall(text)


def word_at(text: str, position: int) -> str:
    """Return the word of *text* that covers *position*, if any."""
    if position < 0 or position >= len(text) or not is_word_char(text[position]):
        return ""
    start = position
    while start > 0 and is_word_char(text[start - 1]):
        start -= 1
    end = position + 1
    while end < len(text) and is_word_char(text[end]):
        end += 1
    return text[start:end]


def strip_non_word_edges(text: str) -> str:
    match = NON_WORD_EDGES_PATTERN.match(text)
    return match.group(1) if match and match.group(1) else text


def lower(text: str, locale: str) -> str:
    """Lowercase *text* one character at a time, so that positions are preserved.

    Turkish and Azeri map the dotted / dotless capital i to their own lowercase letters.
    """
    if locale in ("tr", "az"):
        text = text.replace("I", "ı").replace("İ", "i")
    chars = []
    for char in text:
        lowered = char.lower()
        chars.append(lowered if len(lowered) == 1 else char)
    return "".join(chars)


def is_word_based_locale(locale: str) -> bool:
    """Whether solutions in *locale* are matched on words rather than on whole summaries."""
    return locale not in NON_WORD_BASED_LOCALES


def is_same_locale(locale_a: str, locale_b: str) -> bool:
    return locale_a == locale_b or frozenset((locale_a, locale_b)) in EQUIVALENT_LOCALES


def bound_indices_of(text: str, substring: str) -> Tuple[int, int]:
    """Return the leftmost and rightmost indices of *substring* in *text* (-1 if absent)."""
    if text == substring:
        return (0, 0)
    if len(substring) >= len(text):
        return (-1, -1)
    first = text.find(substring)
    if first == -1:
        return (-1, -1)
    return (first, text.rfind(substring))


def word_bigrams(word: str) -> Counter:
    """Count the bigrams of *word*. Words of one or two characters are their own bigram."""
    if len(word) <= 2:
        return Counter((word,))
    return Counter(word[index:index + 2] for index in range(len(word) - 1))


def collation_key(text: str, locale: str = "") -> Tuple[Tuple[int, int, str], ...]:
    """Sort key ignoring case and punctuation, comparing digit runs numerically."""
    key = []
    for digits, letters in _COLLATION_PART.findall(normalize(text)):
        if digits:
            key.append((0, int(digits), ""))
        else:
            key.append((1, 0, lower(letters, locale)))
    return tuple(key)


def compare_strings(left: str, right: str, locale: str = "") -> int:
    left_key = collation_key(left, locale)
    right_key = collation_key(right, locale)
    return (left_key > right_key) - (left_key < right_key)


__all__ = [
    "bound_indices_of",
    "collation_key",
    "compare_strings",
    "is_same_locale",
    "is_word_based_locale",
    "is_word_char",
    "lower",
    "normalize",
    "strip_non_word_edges",
    "word_at",
    "word_bigrams",
    "words_of",
]
