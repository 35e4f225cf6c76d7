"""Locale configuration tables for solution matching and filtering."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

NON_WORD_BASED_LOCALES = frozenset({"ja", "zh", "zs"})

EQUIVALENT_LOCALES = frozenset({frozenset({"zh", "zs"})})

# The Japanese solution graphs are not reliable enough to compute corrections.
CORRECTION_UNSUPPORTED_LOCALES = frozenset({"ja"})

DIFF_IGNORABLE_VARIANTS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "ru": MappingProxyType({"ё": "е", "Ё": "Е"}),
})

SOLUTION_FLAG_HIRAGANA = 1 << 0
SOLUTION_FLAG_KANJI = 1 << 1
SOLUTION_FLAG_KATAKANA = 1 << 2
SOLUTION_FLAG_ROMAJI = 1 << 3


@dataclass(frozen=True)
class FlagFilter:
    flag: int
    label: str
    default: bool = False


@dataclass(frozen=True)
class FlagFilterSet:
    label: str
    hint: str
    filters: Tuple[FlagFilter, ...]


LOCALE_FLAG_FILTER_SETS: Mapping[str, FlagFilterSet] = MappingProxyType({
    "ja": FlagFilterSet(
        label="Syllabary:",
        hint="Select one or more Japanese syllabaries to see only the corresponding solutions.",
        filters=(
            FlagFilter(SOLUTION_FLAG_HIRAGANA, "Hiragana", default=True),
            FlagFilter(SOLUTION_FLAG_KANJI, "Kanji", default=True),
            FlagFilter(SOLUTION_FLAG_KATAKANA, "Katakana"),
            FlagFilter(SOLUTION_FLAG_ROMAJI, "Romaji"),
        ),
    ),
})


def _japanese_char_flag(char: str) -> int:
    code = ord(char)
    if 0x3041 <= code <= 0x309F:
        return SOLUTION_FLAG_HIRAGANA
    if 0x30A0 <= code <= 0x30FF or 0x31F0 <= code <= 0x31FF or 0xFF66 <= code <= 0xFF9F:
        return SOLUTION_FLAG_KATAKANA
    if 0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF or char in "々〆":
        return SOLUTION_FLAG_KANJI
    if (char.isascii() and char.isalpha()) or 0xFF21 <= code <= 0xFF5A:
        return SOLUTION_FLAG_ROMAJI
    return 0


def japanese_sentence_flags(sentence: str) -> int:
    """Return the mask of the syllabaries used by a Japanese sentence."""
    flags = 0
    for char in sentence:
        flags |= _japanese_char_flag(char)
    return flags


SENTENCE_FLAGGERS: Mapping[str, Callable[[str], int]] = MappingProxyType({
    "ja": japanese_sentence_flags,
})


def flagger_for(locale: str) -> Optional[Callable[[str], int]]:
    return SENTENCE_FLAGGERS.get(locale)


def sentence_flags(sentence: str, locale: str) -> int:
    flagger = flagger_for(locale)
    return flagger(sentence) if flagger is not None else 0


def flag_filter_set_for(locale: str) -> Optional[FlagFilterSet]:
    return LOCALE_FLAG_FILTER_SETS.get(locale)


__all__ = [
    "CORRECTION_UNSUPPORTED_LOCALES",
    "DIFF_IGNORABLE_VARIANTS",
    "EQUIVALENT_LOCALES",
    "FlagFilter",
    "FlagFilterSet",
    "LOCALE_FLAG_FILTER_SETS",
    "NON_WORD_BASED_LOCALES",
    "SENTENCE_FLAGGERS",
    "SOLUTION_FLAG_HIRAGANA",
    "SOLUTION_FLAG_KANJI",
    "SOLUTION_FLAG_KATAKANA",
    "SOLUTION_FLAG_ROMAJI",
    "flag_filter_set_for",
    "flagger_for",
    "japanese_sentence_flags",
    "sentence_flags",
]
