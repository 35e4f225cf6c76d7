"""Command line interface for the solution matching engine."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .challenges import Challenge, parse_challenges, review_answer
from .config import EngineConfig, load_config, setup_logging
from .corrections import CorrectionStatus, DiffSegment, SegmentKind
from .export import ExportScope, export_filename, export_solutions
from .filtering import MatchMode, SortDirection, SortType, default_match_mode, parse_word_filter
from .matching import add_similarity_scores, build_list_matching_data
from .solution_list import ParsedSolutionList, SolutionListType, ensure_parsed
from .views import ListView, ViewSnapshot


def _read_payload(file: Optional[Path]) -> Any:
    if file is not None:
        text = file.read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ValueError(f"invalid JSON payload: {exc}") from exc


def _load_challenge(file: Optional[Path]) -> Challenge:
    payload = _read_payload(file)
    if isinstance(payload, dict) and isinstance(payload.get("challenges"), list):
        payloads = payload["challenges"]
    elif isinstance(payload, list):
        payloads = payload
    else:
        payloads = [payload]
    challenges = parse_challenges(payloads)
    if not challenges:
        raise ValueError("the payload does not contain any supported challenge")
    return challenges[0]


def _parsed_solutions(args: argparse.Namespace) -> ParsedSolutionList:
    challenge = _load_challenge(args.file)
    return ensure_parsed(challenge.solutions, SolutionListType(args.type))


def _render_diff(diff: Sequence[DiffSegment]) -> str:
    parts = []
    for segment in diff:
        if segment.kind is SegmentKind.REMOVED:
            parts.append(f"[-{segment.value}-]")
        elif segment.kind is SegmentKind.ADDED:
            parts.append(f"{{+{segment.value}+}}")
        else:
            parts.append(segment.value)
    return "".join(parts)


def _write_snapshot(snapshot: ViewSnapshot) -> None:
    page = snapshot.page
    sys.stdout.write(
        f"solutions {page.first_index}-{page.last_index} of {snapshot.filtered_count}"
        f" ({snapshot.total_count} total), page {page.number}/{page.count}\n"
    )
    for solution in snapshot.solutions:
        prefix = f"{solution.score:.2f}  " if solution.score is not None else ""
        sys.stdout.write(f"{prefix}{solution.summary}\n")


def _apply_filters(view: ListView, args: argparse.Namespace, config: EngineConfig) -> None:
    locale = view.solution_list.locale
    match_mode = default_match_mode(locale, args.match_mode)
    for query in args.filter or []:
        word_filter = parse_word_filter(query, locale, match_mode, config.matching_options())
        if word_filter is None:
            raise ValueError(f"invalid filter: {query!r}")
        view.add_filter(word_filter)


def _build_view(args: argparse.Namespace, config: EngineConfig) -> ListView:
    solutions = _parsed_solutions(args)
    options = config.matching_options()
    build_list_matching_data(solutions, options)
    if args.answer:
        add_similarity_scores(solutions, args.answer, options)
    view = ListView(solutions, config.page_sizes, config.default_page_size)
    _apply_filters(view, args, config)
    if args.flag_mask is not None:
        view.set_flag_mask(args.flag_mask)
    if args.sort is not None:
        view.set_sort(SortType(args.sort), SortDirection(args.direction) if args.direction else None)
    if args.page_size is not None:
        view.set_page_size(args.page_size)
    if args.page is not None:
        view.set_page(args.page)
    return view


def _handle_solutions(args: argparse.Namespace, config: EngineConfig) -> int:
    solutions = _parsed_solutions(args)
    for solution in solutions:
        if args.unfold:
            for variation in solution.variations():
                sys.stdout.write(variation + "\n")
        else:
            sys.stdout.write(solution.summary + "\n")
    return 0


def _handle_review(args: argparse.Namespace, config: EngineConfig) -> int:
    solutions = _parsed_solutions(args)
    review = review_answer(solutions, args.answer, args.correct, config.matching_options())
    ranked = sorted(
        (solution for solution in review.solutions if solution.score is not None),
        key=lambda solution: (-solution.score, solution.position),
    )
    for solution in ranked[:args.limit]:
        sys.stdout.write(f"{solution.score:.2f}  {solution.summary}\n")
    correction = review.correction
    if correction is not None:
        if correction.status is CorrectionStatus.CORRECTED:
            sys.stdout.write(f"correction: {correction.variation}\n")
            sys.stdout.write(f"diff: {_render_diff(correction.diff)}\n")
        else:
            sys.stdout.write(f"correction: {correction.status.value}\n")
    return 0


def _handle_browse(args: argparse.Namespace, config: EngineConfig) -> int:
    view = _build_view(args, config)
    _write_snapshot(view.snapshot)
    return 0


def _handle_export(args: argparse.Namespace, config: EngineConfig) -> int:
    challenge = _load_challenge(args.file)
    solutions = ensure_parsed(challenge.solutions, SolutionListType(args.type))
    build_list_matching_data(solutions, config.matching_options())
    view = ListView(solutions, config.page_sizes, config.default_page_size)
    _apply_filters(view, args, config)

    def confirm(plan) -> bool:
        if not args.yes:
            sys.stderr.write(f"error: the export would contain {plan.row_count} rows, pass --yes to confirm\n")
        return args.yes

    content = export_solutions(
        view.solutions_for_scope(ExportScope(args.scope)),
        unfolded=args.unfold,
        threshold=config.export_size_alert_threshold,
        confirm=confirm,
    )
    if content is None:
        return 1
    if args.output is not None:
        output = args.output
        if output.is_dir():
            output = output / export_filename(challenge.statement)
        output.write_text(content, encoding="utf-8")
    else:
        sys.stdout.write(content)
    return 0


def _import_web_run():
    from .web import run

    return run


def _add_payload_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "file",
        nargs="?",
        type=Path,
        help="JSON challenge payload (default: read from stdin).",
    )
    parser.add_argument(
        "--type",
        choices=[it.value for it in SolutionListType],
        default=SolutionListType.COMPACT.value,
        help="Preferred solution list type (default: compact).",
    )


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--filter",
        action="append",
        metavar="QUERY",
        help="Word filter, such as 'run', '-run', 'run*' or '=run' (repeatable).",
    )
    parser.add_argument(
        "--match-mode",
        choices=[it.value for it in MatchMode],
        help="How filter queries are matched (default: words, or global for languages written without spaces).",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="solmatch",
        description="Expand, browse and match the accepted solutions of language exercises.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON configuration file (default: $SOLMATCH_CONFIG).",
    )
    subparsers = parser.add_subparsers(dest="command")

    solutions_parser = subparsers.add_parser("solutions", help="List the solutions of a challenge.")
    _add_payload_arguments(solutions_parser)
    solutions_parser.add_argument("--unfold", action="store_true", help="List every variation.")

    review_parser = subparsers.add_parser("review", help="Score an answer against the solutions.")
    _add_payload_arguments(review_parser)
    review_parser.add_argument("--answer", required=True, help="The user answer.")
    review_parser.add_argument(
        "--correct",
        action="store_true",
        help="The answer was graded correct: show the correction of its typos.",
    )
    review_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of closest solutions to show (default: 5).",
    )

    browse_parser = subparsers.add_parser("browse", help="Filter, sort and paginate the solutions.")
    _add_payload_arguments(browse_parser)
    _add_filter_arguments(browse_parser)
    browse_parser.add_argument("--answer", help="Score the solutions against this answer first.")
    browse_parser.add_argument("--flag-mask", type=int, help="Mask of the flag filters to apply.")
    browse_parser.add_argument("--sort", choices=[it.value for it in SortType])
    browse_parser.add_argument("--direction", choices=[it.value for it in SortDirection])
    browse_parser.add_argument("--page", type=int)
    browse_parser.add_argument("--page-size", help="One of the configured page sizes, or 'all'.")

    export_parser = subparsers.add_parser("export", help="Export the solutions, one per line.")
    _add_payload_arguments(export_parser)
    _add_filter_arguments(export_parser)
    export_parser.add_argument(
        "--scope",
        choices=[ExportScope.ALL.value, ExportScope.FILTERED.value],
        default=ExportScope.ALL.value,
    )
    export_parser.add_argument("--unfold", action="store_true", help="Export every variation.")
    export_parser.add_argument("--yes", action="store_true", help="Confirm large exports.")
    export_parser.add_argument("-o", "--output", type=Path, help="Output file or directory.")

    web_parser = subparsers.add_parser(
        "web",
        help="Launch the JSON API (requires Flask).",
    )
    web_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface to bind (default: 127.0.0.1).",
    )
    web_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind (default: 8000).",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    handlers = {
        "solutions": _handle_solutions,
        "review": _handle_review,
        "browse": _handle_browse,
        "export": _handle_export,
    }
    if args.command in handlers:
        config = load_config(args.config)
        try:
            return handlers[args.command](args, config)
        except (OSError, ValueError) as exc:
            sys.stderr.write(f"error: {exc}\n")
            return 1
    if args.command == "web":
        try:
            run = _import_web_run()
        except ModuleNotFoundError as exc:  # pragma: no cover - depends on env
            if getattr(exc, "name", None) == "flask":
                sys.stderr.write(
                    "error: Flask is required for the web interface. Install it with `pip install flask`.\n"
                )
                return 1
            raise

        run(host=args.host, port=args.port)
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    sys.exit(main())
