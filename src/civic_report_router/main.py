"""CLI entrypoint for classification, routing and report lifecycle updates."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, List

from pydantic import BaseModel

from .classifier import classify_text, score_entities
from .errors import StoreError
from .lexicon import load_lexicon
from .models import Author, Location, ReportSubmission
from .service import build_service


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _print(payload: Any) -> None:
    print(json.dumps(_dump(payload), indent=2, ensure_ascii=False))


def _lexicon_from_args(args: argparse.Namespace):
    return load_lexicon(Path(args.lexicon) if args.lexicon else None)


def cmd_classify(args: argparse.Namespace) -> int:
    lexicon = _lexicon_from_args(args)
    result = classify_text(args.title, args.description, lexicon)
    scores = [
        {"entity": s.entity, "score": s.score, "matched_terms": s.matched_terms}
        for s in score_entities(args.title, args.description, lexicon)
        if s.score > 0
    ]
    _print({"classification": result, "scores": scores})
    return 0


def cmd_lexicon(args: argparse.Namespace) -> int:
    _print(_lexicon_from_args(args).to_config())
    return 0


def cmd_entities(_: argparse.Namespace) -> int:
    _print(build_service().entities())
    return 0


def cmd_submit(args: argparse.Namespace) -> int:
    submission = ReportSubmission(
        title=args.title,
        description=args.description,
        manual_entity=args.entity,
        category=args.category,
        location=Location(address=args.address or "", latitude=args.lat, longitude=args.lng),
        user_id=args.user_id,
        user_name=args.user_name,
        user_email=args.user_email,
    )
    report = build_service().submit(submission, dry_run=args.dry_run)
    _print(report)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    _print(build_service().get(args.report_id))
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    _print(build_service().list_reports(status=args.status, entity=args.entity))
    return 0


def cmd_set_status(args: argparse.Namespace) -> int:
    report = build_service().update_status(args.report_id, args.status, expected_version=args.expected_version)
    _print(report)
    return 0


def cmd_assign(args: argparse.Namespace) -> int:
    _print(build_service().reassign(args.report_id, args.entity, expected_version=args.expected_version))
    return 0


def cmd_rate(args: argparse.Namespace) -> int:
    _print(build_service().rate(args.report_id, args.stars, comment=args.comment))
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    build_service().delete(args.report_id)
    _print({"deleted": args.report_id})
    return 0


def cmd_comment(args: argparse.Namespace) -> int:
    author = Author(user_id=args.user_id, user_name=args.user_name, user_email=args.user_email)
    _print(build_service().comment(args.report_id, args.text, author))
    return 0


def cmd_comments(args: argparse.Namespace) -> int:
    _print(build_service().comments(args.report_id))
    return 0


def cmd_summary(_: argparse.Namespace) -> int:
    _print(build_service().summary())
    return 0


def _add_author_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--user-id", default=None)
    parser.add_argument("--user-name", default="Usuario")
    parser.add_argument("--user-email", default="")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="civic-report-router")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_parser = subparsers.add_parser("classify", help="Classify a report text without storing it")
    classify_parser.add_argument("--title", default="")
    classify_parser.add_argument("--description", default="")
    classify_parser.add_argument("--lexicon", help="Path to a lexicon JSON file")
    classify_parser.set_defaults(func=cmd_classify)

    lexicon_parser = subparsers.add_parser("lexicon", help="Print the active keyword lexicon")
    lexicon_parser.add_argument("--lexicon", help="Path to a lexicon JSON file")
    lexicon_parser.set_defaults(func=cmd_lexicon)

    entities_parser = subparsers.add_parser("entities", help="List responsible entities")
    entities_parser.set_defaults(func=cmd_entities)

    submit_parser = subparsers.add_parser("submit", help="Route and store a new report")
    submit_parser.add_argument("--title", required=True)
    submit_parser.add_argument("--description", default="")
    submit_parser.add_argument("--entity", help="Manual entity name, or 'auto' to classify")
    submit_parser.add_argument("--category", default="general")
    submit_parser.add_argument("--address", default="")
    submit_parser.add_argument("--lat", type=float)
    submit_parser.add_argument("--lng", type=float)
    _add_author_args(submit_parser)
    submit_parser.add_argument("--dry-run", action="store_true", help="Print the routed report without storing it")
    submit_parser.set_defaults(func=cmd_submit)

    show_parser = subparsers.add_parser("show", help="Show one report")
    show_parser.add_argument("report_id")
    show_parser.set_defaults(func=cmd_show)

    list_parser = subparsers.add_parser("list", help="List reports, newest first")
    list_parser.add_argument("--status")
    list_parser.add_argument("--entity")
    list_parser.set_defaults(func=cmd_list)

    status_parser = subparsers.add_parser("set-status", help="Change a report's status")
    status_parser.add_argument("report_id")
    status_parser.add_argument("status")
    status_parser.add_argument("--expected-version", type=int)
    status_parser.set_defaults(func=cmd_set_status)

    assign_parser = subparsers.add_parser("assign", help="Reassign a report to another entity")
    assign_parser.add_argument("report_id")
    assign_parser.add_argument("entity")
    assign_parser.add_argument("--expected-version", type=int)
    assign_parser.set_defaults(func=cmd_assign)

    rate_parser = subparsers.add_parser("rate", help="Rate the handling of a report (1-5)")
    rate_parser.add_argument("report_id")
    rate_parser.add_argument("stars", type=int)
    rate_parser.add_argument("--comment")
    rate_parser.set_defaults(func=cmd_rate)

    delete_parser = subparsers.add_parser("delete", help="Delete a report and its comments")
    delete_parser.add_argument("report_id")
    delete_parser.set_defaults(func=cmd_delete)

    comment_parser = subparsers.add_parser("comment", help="Add a comment to a report")
    comment_parser.add_argument("report_id")
    comment_parser.add_argument("text")
    _add_author_args(comment_parser)
    comment_parser.set_defaults(func=cmd_comment)

    comments_parser = subparsers.add_parser("comments", help="List a report's comments, newest first")
    comments_parser.add_argument("report_id")
    comments_parser.set_defaults(func=cmd_comments)

    summary_parser = subparsers.add_parser("summary", help="Status counts and per-entity performance")
    summary_parser.set_defaults(func=cmd_summary)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    try:
        return args.func(args)
    except (StoreError, ValueError) as exc:
        print(json.dumps({"error": str(exc), "type": type(exc).__name__}, ensure_ascii=False))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
