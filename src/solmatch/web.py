"""Flask JSON API exposing challenge solutions, answer reviews and solution list views."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Optional, Tuple

from flask import Flask, Response, jsonify, request

from .challenges import Challenge, parse_challenges, review_answer
from .config import EngineConfig, load_config
from .corrections import CorrectionResult
from .export import ExportScope, export_filename, export_solutions, plan_export
from .filtering import SortDirection, SortType, default_match_mode, parse_word_filter, suggest_words
from .matching import build_list_matching_data
from .solution_list import ParsedSolutionList, SolutionListType, ensure_parsed
from .solutions import Solution, i18n_counts
from .views import ListView, ViewSnapshot

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ParsedEntry:
    solutions: ParsedSolutionList
    view: ListView


class ChallengeStore:
    """Remembers registered challenges and the parsed solution lists of the latest ones."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self._lock = Lock()
        self._challenges: "OrderedDict[str, Challenge]" = OrderedDict()
        self._parsed: "OrderedDict[Tuple[str, SolutionListType], ParsedEntry]" = OrderedDict()

    def add(self, challenge: Challenge) -> None:
        with self._lock:
            self._challenges[challenge.key] = challenge
            self._challenges.move_to_end(challenge.key)
            for cache_key in [it for it in self._parsed if it[0] == challenge.key]:
                del self._parsed[cache_key]
            while len(self._challenges) > self.config.max_remembered_challenges:
                forgotten, _ = self._challenges.popitem(last=False)
                for cache_key in [it for it in self._parsed if it[0] == forgotten]:
                    del self._parsed[cache_key]

    def get(self, key: str) -> Optional[Challenge]:
        with self._lock:
            challenge = self._challenges.get(key)
            if challenge is not None:
                self._challenges.move_to_end(key)
            return challenge

    def entry(self, key: str, list_type: SolutionListType) -> Optional[ParsedEntry]:
        """Return the parsed list of a challenge, parsing it on first use."""
        challenge = self.get(key)
        if challenge is None:
            return None

        with self._lock:
            entry = self._parsed.get((key, list_type))
            if entry is not None:
                self._parsed.move_to_end((key, list_type))
                return entry

        solutions = ensure_parsed(challenge.solutions, list_type)
        build_list_matching_data(solutions, self.config.matching_options())
        entry = ParsedEntry(
            solutions=solutions,
            view=ListView(solutions, self.config.page_sizes, self.config.default_page_size),
        )
        with self._lock:
            entry = self._parsed.setdefault((key, list_type), entry)
            while len(self._parsed) > self.config.parsed_list_cache_size:
                evicted, _ = self._parsed.popitem(last=False)
                logger.debug("Evicted the parsed %s solutions of %s", evicted[1].value, evicted[0])
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)


engine_config = load_config()
challenge_store = ChallengeStore(engine_config)

app = Flask(__name__)


def _error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE_VALUES


def _list_type(value: Any) -> SolutionListType:
    return SolutionListType(value or SolutionListType.COMPACT.value)


def _solution_payload(solution: Solution, unfold: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "position": solution.position,
        "summary": solution.summary,
        "reference": solution.reference,
        "score": solution.score,
        "flags": solution.flags,
        "variation_count": solution.variation_count,
    }
    if unfold:
        payload["variations"] = list(solution.variations())
    return payload


def _challenge_payload(challenge: Challenge) -> Dict[str, Any]:
    return {
        "key": challenge.key,
        "type": int(challenge.type),
        "statement": challenge.statement,
        "locale": challenge.locale,
        "solution_types": [it.value for it in challenge.solutions.available_types],
    }


def _correction_payload(correction: Optional[CorrectionResult]) -> Optional[Dict[str, Any]]:
    if correction is None:
        return None
    return {
        "status": correction.status.value,
        "variation": correction.variation,
        "diff": [
            {"kind": segment.kind.value, "value": segment.value, "ignorable": segment.ignorable}
            for segment in correction.diff or ()
        ],
    }


def _snapshot_payload(snapshot: ViewSnapshot) -> Dict[str, Any]:
    state = snapshot.state
    page = snapshot.page
    return {
        "generation": snapshot.generation,
        "total_count": snapshot.total_count,
        "filtered_count": snapshot.filtered_count,
        "filters": [
            {"word": it.word, "match_type": int(it.match_type), "excluded": it.excluded}
            for it in state.filters
        ],
        "flag_mask": state.flag_mask,
        "flag_filters": [
            {"flag": flag_filter.flag, "label": flag_filter.label, "count": count}
            for flag_filter, count in snapshot.flag_filters
        ],
        "sort": state.sort_type.value,
        "direction": state.sort_direction.value,
        "sort_types": [it.value for it in snapshot.sort_types],
        "page": page.number,
        "page_size": page.size,
        "page_count": page.count,
        "first_index": page.first_index,
        "last_index": page.last_index,
        "solutions": [_solution_payload(solution) for solution in snapshot.solutions],
    }


def _lookup(key: str, list_type: SolutionListType):
    entry = challenge_store.entry(key, list_type)
    if entry is None:
        return None, _error("Challenge expired or unknown.", 404)
    return entry, None


@app.post("/api/challenges")
def register_challenges():
    payload = request.get_json(silent=True)
    if isinstance(payload, dict) and isinstance(payload.get("challenges"), list):
        payloads = payload["challenges"]
        from_language = str(payload.get("fromLanguage") or "")
        to_language = str(payload.get("toLanguage") or "")
    elif isinstance(payload, list):
        payloads, from_language, to_language = payload, "", ""
    elif isinstance(payload, dict):
        payloads, from_language, to_language = [payload], "", ""
    else:
        return _error("Invalid request payload.", 400)

    challenges = parse_challenges(payloads, from_language, to_language)
    if not challenges:
        return _error("The payload does not contain any supported challenge.", 400)
    for challenge in challenges:
        challenge_store.add(challenge)
    logger.info("Registered %d challenges", len(challenges))
    return jsonify({"ok": True, "challenges": [_challenge_payload(it) for it in challenges]})


@app.get("/api/challenges/<path:key>/solutions")
def list_solutions(key: str):
    try:
        entry, error = _lookup(key, _list_type(request.args.get("type")))
    except ValueError as exc:
        return _error(str(exc), 400)
    if error is not None:
        return error

    unfold = _flag(request.args.get("unfold"))
    solutions = entry.solutions
    display_count, plural_count = i18n_counts(solutions.solutions)
    return jsonify({
        "ok": True,
        "type": solutions.type.value,
        "other_types": [it.value for it in solutions.other_types],
        "count": display_count,
        "plural_count": plural_count,
        "solutions": [_solution_payload(solution, unfold) for solution in solutions],
    })


@app.get("/api/challenges/<path:key>/words")
def suggest_filter_words(key: str):
    try:
        entry, error = _lookup(key, _list_type(request.args.get("type")))
    except ValueError as exc:
        return _error(str(exc), 400)
    if error is not None:
        return error

    words = entry.solutions.matching_data.words or ()
    suggestions = suggest_words(
        request.args.get("query", ""),
        words,
        entry.solutions.locale,
        min_length=engine_config.min_filter_query_length,
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"ok": True, "words": suggestions})


@app.post("/api/challenges/<path:key>/review")
def review(key: str):
    payload = request.get_json(silent=True) or {}
    answer = payload.get("answer")
    if not isinstance(answer, str):
        return _error("The answer must be a string.", 400)
    try:
        entry, error = _lookup(key, _list_type(payload.get("type")))
        if error is not None:
            return error
        result = review_answer(
            entry.solutions,
            answer,
            _flag(payload.get("correct")),
            engine_config.matching_options(),
        )
    except ValueError as exc:
        return _error(str(exc), 400)

    snapshot = entry.view.refresh_scores() or entry.view.snapshot
    return jsonify({
        "ok": True,
        "answer": result.answer,
        "best_solutions": [_solution_payload(solution) for solution in result.best_solutions],
        "correction": _correction_payload(result.correction),
        "view": _snapshot_payload(snapshot),
    })


def _update_view(view: ListView, payload: Dict[str, Any]) -> None:
    if "filters" in payload:
        queries = payload["filters"]
        if not isinstance(queries, list) or not all(isinstance(it, str) for it in queries):
            raise ValueError("Filters must be a list of strings.")
        match_mode = default_match_mode(view.solution_list.locale, payload.get("match_mode"))
        view.clear_filters()
        for query in queries:
            word_filter = parse_word_filter(
                query,
                view.solution_list.locale,
                match_mode,
                engine_config.matching_options(),
            )
            if word_filter is None:
                raise ValueError(f"Invalid filter: {query!r}")
            view.add_filter(word_filter)
    if payload.get("flag_mask") is not None:
        view.set_flag_mask(int(payload["flag_mask"]))
    if payload.get("sort") is not None:
        direction = payload.get("direction")
        view.set_sort(SortType(payload["sort"]), SortDirection(direction) if direction else None)
    elif payload.get("direction") is not None and SortDirection(payload["direction"]) is not view.state.sort_direction:
        view.toggle_sort_direction()
    if payload.get("page_size") is not None:
        view.set_page_size(payload["page_size"])
    if payload.get("page") is not None:
        view.set_page(int(payload["page"]))


@app.post("/api/challenges/<path:key>/view")
def update_view(key: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    try:
        entry, error = _lookup(key, _list_type(payload.get("type")))
        if error is not None:
            return error
        _update_view(entry.view, payload)
    except (TypeError, ValueError) as exc:
        return _error(str(exc), 400)
    return jsonify({"ok": True, "view": _snapshot_payload(entry.view.snapshot)})


@app.get("/api/challenges/<path:key>/export")
def export(key: str):
    try:
        list_type = _list_type(request.args.get("type"))
        scope = ExportScope(request.args.get("scope", ExportScope.ALL.value))
        entry, error = _lookup(key, list_type)
    except ValueError as exc:
        return _error(str(exc), 400)
    if error is not None:
        return error

    unfold = _flag(request.args.get("unfold"))
    solutions = entry.view.solutions_for_scope(scope)
    plan = plan_export(solutions, unfold, engine_config.export_size_alert_threshold)
    if plan.is_large and not _flag(request.args.get("confirm")):
        return jsonify({
            "ok": False,
            "error": "The export is large, repeat the request with confirm=1.",
            "row_count": plan.row_count,
        }), 409

    content = export_solutions(
        solutions,
        unfolded=unfold,
        threshold=engine_config.export_size_alert_threshold,
        confirm=lambda _: True,
    )
    challenge = challenge_store.get(key)
    filename = export_filename(challenge.statement if challenge is not None else "")
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Start the Flask development server."""

    app.run(host=host, port=port, debug=False)


__all__ = [
    "ChallengeStore",
    "ParsedEntry",
    "app",
    "challenge_store",
    "engine_config",
    "run",
]
