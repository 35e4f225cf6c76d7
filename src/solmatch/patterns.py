"""Parsing of compact translation patterns, such as "I [am/'m] happy"."""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional, Tuple

from .locales import flagger_for
from .solutions import Solution, Token, split_sentence_tokens
from .tokenizer import is_word_based_locale, normalize

logger = logging.getLogger(__name__)

CHOICE_SEPARATOR = "/"

_CHOICE_GROUP = re.compile(r"\[([^\[\]]*)\]")
# In word-based locales, letters glued to a group belong to its choices: "wom[a/e]n".
_WORD_CHOICE_SET = re.compile(r"[^\s\[\]]*(?:\[[^\[\]]*\][^\s\[\]]*)+")
_LEADING_NON_WORD = re.compile(r"^[\W_]*")
_TRAILING_NON_WORD = re.compile(r"[\W_]*$")
_NEXT_WORD = re.compile(r"(\s*)([^\W_]+)")
_GLUED_CHOICE_SET = re.compile(r"[^\s\[\]]*\[")
_SENTENCE_TERMINALS = frozenset(".!?…。！？")


def _upper_first(word: str, locale: str) -> str:
    if not word:
        return word
    first = word[0]
    if locale in ("tr", "az") and first == "i":
        return "İ" + word[1:]
    return first.upper() + word[1:]


def _is_title_cased(choice: str) -> bool:
    stripped = choice.lstrip()
    return bool(stripped) and (stripped[0].isdigit() or stripped[0].isupper())


def _unique_choices(choices: Iterable[str]) -> Tuple[str, ...]:
    return tuple(OrderedDict.fromkeys(choice.strip() for choice in choices))


def _compound_choices(choice_set: str) -> Tuple[str, Tuple[str, ...], str]:
    """Split a word-based choice set into its leading punctuation, its choices and its trailing punctuation."""
    prefix = _LEADING_NON_WORD.match(choice_set[:choice_set.index("[")]).group(0)
    body = choice_set[len(prefix):]
    choices = [""]
    index = 0
    for group in _CHOICE_GROUP.finditer(body):
        common = body[index:group.start()]
        choices = [choice + common for choice in choices]
        sub_choices = _unique_choices(group.group(1).split(CHOICE_SEPARATOR))
        choices = [choice + sub for choice in choices for sub in sub_choices]
        index = group.end()
    rest = body[index:]
    suffix = _TRAILING_NON_WORD.search(rest).group(0)
    common = rest[:len(rest) - len(suffix)]
    choices = [choice + common for choice in choices]
    return prefix, _unique_choices(choices), suffix


def _literal_tokens(text: str, word_based: bool) -> List[Token]:
    if not text:
        return []
    if word_based:
        return list(split_sentence_tokens(text))
    return [(text,)]


def _is_sentence_start(text_before: str) -> bool:
    stripped = text_before.rstrip()
    return not stripped or stripped[-1] in _SENTENCE_TERMINALS


def parse_pattern(
    pattern: str,
    locale: str,
    flagger: Optional[Callable[[str], int]] = None,
    position: int = 0,
) -> Optional[Solution]:
    """Return the folded solution described by *pattern*, or None if it is empty.

    Each "[a/b/c]" group becomes a token with one choice per alternative.
    Unbalanced brackets are kept as literal text.
    """
    text = normalize(pattern)
    if not text:
        return None

    word_based = is_word_based_locale(locale)
    choice_set_pattern = _WORD_CHOICE_SET if word_based else _CHOICE_GROUP
    tokens: List[Token] = []
    index = 0

    for choice_set in choice_set_pattern.finditer(text):
        tokens.extend(_literal_tokens(text[index:choice_set.start()], word_based))
        end = choice_set.end()

        if word_based:
            prefix, choices, suffix = _compound_choices(choice_set.group(0))
            tokens.extend(_literal_tokens(prefix, word_based))
            end -= len(suffix)
        else:
            choices = _unique_choices(choice_set.group(1).split(CHOICE_SEPARATOR))

        if (
            word_based
            and "" in choices
            and _is_sentence_start(text[:choice_set.start()])
            and all(_is_title_cased(choice) for choice in choices if choice)
        ):
            # The sentence starts on the next word when the empty choice is picked.
            next_word = _NEXT_WORD.match(text, end)
            if next_word and not _GLUED_CHOICE_SET.match(text, next_word.end()):
                space, word = next_word.groups()
                choices = tuple(
                    choice + space + word if choice else _upper_first(word, locale)
                    for choice in choices
                )
                end = next_word.end()

        if len(choices) == 1:
            tokens.extend(_literal_tokens(choices[0], word_based))
        elif choices:
            tokens.append(choices)
        index = end

    tokens.extend(_literal_tokens(text[index:], word_based))
    if not tokens:
        return None

    if flagger is None:
        flagger = flagger_for(locale)
    flags = 0
    if flagger is not None:
        flags = flagger("".join(choice for token in tokens for choice in token))

    return Solution(locale=locale, tokens=tuple(tokens), flags=flags, position=position)


def expand_patterns(
    patterns: Iterable[object],
    locale: str,
    flagger: Optional[Callable[[str], int]] = None,
) -> List[Solution]:
    """Return one folded solution per non-empty pattern."""
    solutions: List[Solution] = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            logger.warning("Ignoring a pattern that is not a string: %r", pattern)
            continue
        solution = parse_pattern(pattern, locale, flagger, position=len(solutions))
        if solution is not None:
            solutions.append(solution)
    logger.debug("Parsed %d folded solutions for locale %s", len(solutions), locale)
    return solutions


__all__ = [
    "CHOICE_SEPARATOR",
    "expand_patterns",
    "parse_pattern",
]
