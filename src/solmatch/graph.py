"""Expansion of layered solution graphs into sentences."""

from __future__ import annotations

import logging
import re
import unicodedata
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .locales import flagger_for
from .solutions import Solution, SolutionError, split_sentence_tokens
from .tokenizer import is_word_char, lower, normalize

logger = logging.getLogger(__name__)

_INNER_WHITESPACE = re.compile(r"\S\s+\S")
_EMBEDDED_AMPERSAND = re.compile(r"(^|[^&\s])&([^&\s]|$)")
_NON_WORD = re.compile(r"[\W_]+")
_GERMAN_UMLAUTS = (("ä", "a", "ae"), ("ö", "o", "oe"), ("ü", "u", "ue"))
_OPENING_CHARS = frozenset("¿¡'’-")


class MalformedGraphError(SolutionError):
    """Raised when a vertex points to a layer that does not exist."""


@dataclass(frozen=True)
class Vertex:
    to: Optional[int]
    lenient: str = ""
    orig: Optional[str] = None
    auto: bool = False
    type: Optional[str] = None

    @property
    def value(self) -> str:
        return self.orig or self.lenient

    @property
    def is_relevant(self) -> bool:
        return not self.auto and self.type != "typo"

    @classmethod
    def from_payload(cls, raw: object, layer_index: int, layer_count: int) -> "Vertex":
        """Build a vertex from a raw alternative.

        Plain strings and dicts without a "to" key point to the next layer,
        or are terminal on the last layer.
        """
        implicit_to = layer_index + 1 if layer_index + 1 < layer_count else None
        if isinstance(raw, Vertex):
            return raw
        if isinstance(raw, str):
            return cls(to=implicit_to, lenient=raw)
        if not isinstance(raw, dict):
            raise MalformedGraphError(f"invalid vertex in layer {layer_index}: {raw!r}")
        to = raw.get("to", implicit_to)
        if to is not None and (isinstance(to, bool) or not isinstance(to, int)):
            raise MalformedGraphError(f"invalid target in layer {layer_index}: {to!r}")
        orig = raw.get("orig")
        return cls(
            to=to,
            lenient=str(raw.get("lenient") or ""),
            orig=orig if isinstance(orig, str) else None,
            auto=bool(raw.get("auto", False)),
            type=raw.get("type") if isinstance(raw.get("type"), str) else None,
        )


def _simplified(value: str, locale: str) -> str:
    return _NON_WORD.sub("", lower(normalize(value, remove_diacritics=True), locale))


def _without_punctuation(value: str, locale: str) -> str:
    return _NON_WORD.sub("", lower(value, locale))


def _drop_invalid_umlauts(values: List[str]) -> List[str]:
    result = values
    for umlaut, vowel, simplified in _GERMAN_UMLAUTS:
        present = set(result)
        kept = [
            value for value in result
            if umlaut not in value
            or value.replace(umlaut, simplified) in present
            or value.replace(umlaut, vowel) not in present
        ]
        if kept:
            result = kept
    return result


def _drop_simplified_copies(values: List[str], locale: str) -> List[str]:
    groups: Dict[str, List[str]] = OrderedDict()
    for value in values:
        groups.setdefault(_simplified(value, locale), []).append(value)

    result: List[str] = []
    for key, members in groups.items():
        if len(members) > 1:
            accented = [value for value in members if _without_punctuation(value, locale) != key]
            if accented:
                members = accented
            longest = max(len(value) for value in members)
            members = [value for value in members if len(value) == longest]
            # Keep the uppercase version when only case differs.
            members = sorted(members)
        seen = set()
        for value in members:
            variant = _without_punctuation(value, locale)
            if variant not in seen:
                seen.add(variant)
                result.append(value)
    return result


def clean_layer_values(values: Sequence[str], locale: str, whitespace_delimited: bool) -> List[str]:
    """Remove the duplicate and known-invalid copies from the values of one set of alternatives."""
    result = list(values)

    # Copies of incorrectly expanded contractions, such as "hi am" for "him".
    if whitespace_delimited:
        result = [value for value in result if not _INNER_WHITESPACE.search(value)]

    if locale == "en":
        result = [
            value for value in result
            if len(value) == 1 or "&" not in value or not _EMBEDDED_AMPERSAND.search(value)
        ]
    elif locale == "fr":
        result = [value for value in result if value in ("où", "Où") or "ù" not in value]
    elif locale == "de":
        result = _drop_invalid_umlauts(result)

    invalid_dots = [value for value in result if "i\u0307" in value]
    result = [value for value in result if "i\u0307" not in value]
    if locale != "tr":
        result = [
            value for value in result
            if "ı" not in value and "I\u0307" not in value and "\u0130" not in value
        ]
    if not result:
        result = [value.replace("i\u0307", "i").replace("I\u0307", "I") for value in invalid_dots]

    if len(result) > 1:
        result = _drop_simplified_copies(list(OrderedDict.fromkeys(result)), locale)
    return result


def _needs_separator(previous: str, value: str) -> bool:
    if not previous or not value:
        return False
    last, first = previous[-1], value[0]
    if last.isspace() or first.isspace() or not is_word_char(first):
        return False
    return last not in _OPENING_CHARS and unicodedata.category(last) not in ("Ps", "Pi")


def join_values(values: Sequence[str], whitespace_delimited: bool) -> str:
    text = ""
    for value in values:
        if whitespace_delimited and _needs_separator(text, value):
            text += " "
        text += value
    return text


def _parse_layers(vertices: Sequence[Sequence[object]]) -> List[List[Vertex]]:
    if not isinstance(vertices, (list, tuple)):
        raise MalformedGraphError("the graph must be a list of layers")
    layer_count = len(vertices)
    layers: List[List[Vertex]] = []
    for index, layer in enumerate(vertices):
        if not isinstance(layer, (list, tuple)):
            raise MalformedGraphError(f"layer {index} is not a list")
        parsed = [Vertex.from_payload(raw, index, layer_count) for raw in layer]
        for vertex in parsed:
            if vertex.to is not None and not index < vertex.to < layer_count:
                raise MalformedGraphError(
                    f"vertex {vertex.value!r} in layer {index} points to missing layer {vertex.to}"
                )
        layers.append(parsed)
    return layers


def _group_layer(layer: Sequence[Vertex], locale: str, whitespace_delimited: bool) -> List[Tuple[Optional[int], List[str]]]:
    grouped: Dict[Optional[int], List[str]] = OrderedDict()
    for vertex in layer:
        if vertex.is_relevant:
            grouped.setdefault(vertex.to, []).append(vertex.value)
    groups = []
    for to, values in grouped.items():
        cleaned = clean_layer_values(values, locale, whitespace_delimited)
        if cleaned:
            groups.append((to, cleaned))
    return groups


def expand_graph(
    vertices: Sequence[Sequence[object]],
    locale: str,
    whitespace_delimited: bool = True,
    flagger: Optional[Callable[[str], int]] = None,
) -> List[Solution]:
    """Return one solution per distinct sentence read along a complete path of the graph.

    Raises MalformedGraphError if a vertex points to a layer that does not exist.
    """
    layers = _parse_layers(vertices)
    if not layers:
        return []
    if flagger is None:
        flagger = flagger_for(locale)

    groups = [_group_layer(layer, locale, whitespace_delimited) for layer in layers]
    last_index = len(layers) - 1
    memo: Dict[int, List[Tuple[str, ...]]] = {}

    def paths_from(index: int) -> List[Tuple[str, ...]]:
        if index in memo:
            return memo[index]
        if not groups[index]:
            # An empty last layer closes the paths that reach it, other empty layers are dead ends.
            paths = [()] if index == last_index else []
        else:
            paths = []
            for to, values in groups[index]:
                suffixes = [()] if to is None else paths_from(to)
                for value in values:
                    paths.extend((value,) + suffix for suffix in suffixes)
        memo[index] = paths
        return paths

    sentences: Dict[str, None] = OrderedDict()
    for path in paths_from(0):
        sentence = normalize(join_values(path, whitespace_delimited))
        if sentence:
            sentences.setdefault(sentence, None)

    logger.debug("Expanded a graph of %d layers into %d sentences", len(layers), len(sentences))
    return [
        Solution(
            locale=locale,
            tokens=split_sentence_tokens(sentence),
            flags=flagger(sentence) if flagger is not None else 0,
            position=position,
        )
        for position, sentence in enumerate(sentences)
    ]


__all__ = [
    "MalformedGraphError",
    "Vertex",
    "clean_layer_values",
    "expand_graph",
    "join_values",
]
