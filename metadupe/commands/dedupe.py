"""CLI command for finding, deleting and exporting duplicate post meta."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from ..config import DEFAULT_CONFIG_PATH, MetaDedupeConfig, load_config
from ..db import MetaStore
from ..dedupe import DedupeOptions, run_dedupe
from ..errors import MetaDedupeError, UserDeclined
from ..models import ExportRequest, MatchMode
from ..reporting import Reporter, Severity


def _export_request(raw: str) -> ExportRequest:
    try:
        return ExportRequest.parse(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _post_id(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"post id must be an integer, got {raw!r}") from e
    if value < 0:
        raise argparse.ArgumentTypeError("post id must be 0 (all posts) or a positive integer")
    return value


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help=f"Path to config file (default: {DEFAULT_CONFIG_PATH}, optional)")
    parser.add_argument("--db", help="Explicit path to the SQLite database (overrides config)")
    parser.add_argument("--table", help="Meta table name (overrides config, default wp_postmeta)")
    parser.add_argument("--export-dir", help="Base output directory; CSV files go into its export/ subfolder")
    parser.add_argument("--post_id", "--post-id", dest="post_id", type=_post_id, default=0, help="Only check this post (0 = all posts)")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Report duplicates without deleting anything")
    parser.add_argument(
        "--export",
        type=_export_request,
        default=ExportRequest(),
        help="count (default, no file), keys, values or different_values[<meta_key>]",
    )
    parser.add_argument("--match", choices=[m.value for m in MatchMode], help="Delete exact copies only (value) or every non-canonical row (key)")
    parser.add_argument("--report-limit", type=int, help="Number of posts listed in the duplicate preview")
    parser.add_argument("--no-confirm", action="store_true", help="Skip confirmation prompt before deleting")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "delete-duplicate-meta",
        aliases=["dedupe"],
        help="Delete (and optionally export) duplicate post meta rows",
        description="Find meta rows sharing a post id and meta key, keep the oldest row of each group and delete the rest.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "metadupe delete-duplicate-meta", description="Delete duplicate post meta rows")
    _configure_parser(parser)
    return parser


def prompt_confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/n] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _load_settings(args: argparse.Namespace) -> MetaDedupeConfig:
    # Only the default config path may be absent; an explicit --config must exist
    if args.config:
        cfg = load_config(Path(args.config))
    else:
        cfg = load_config(Path(DEFAULT_CONFIG_PATH), missing_ok=True)

    # Assignments are validated, so a bad --table never reaches SQL text
    if args.db:
        cfg.db.path = args.db
    if args.table:
        cfg.db.table = args.table
    if args.export_dir:
        cfg.export.base_dir = args.export_dir
    return cfg


def run_from_args(args: argparse.Namespace, reporter: Optional[Reporter] = None) -> int:
    reporter = reporter or Reporter()
    try:
        cfg = _load_settings(args)
    except FileNotFoundError as e:
        reporter.report(Severity.ERROR, str(e))
        return 1
    except ValidationError as e:
        reporter.report(Severity.ERROR, f"Invalid configuration: {e}")
        return 1

    options = DedupeOptions(
        owner_id=args.post_id,
        dry_run=cfg.dedupe.dry_run if args.dry_run is None else args.dry_run,
        export=args.export,
        match=MatchMode(args.match) if args.match else cfg.dedupe.match,
        no_confirm=args.no_confirm,
        report_limit=cfg.dedupe.report_limit if args.report_limit is None else args.report_limit,
    )

    try:
        with MetaStore.open(cfg.db) as store:
            run_dedupe(store, options, cfg.export.export_dir(), reporter=reporter, confirm=prompt_confirm)
    except UserDeclined as e:
        reporter.report(Severity.LOG, str(e))
        return 0
    except MetaDedupeError as e:
        reporter.report(Severity.ERROR, str(e))
        return 1
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "prompt_confirm", "run_cli", "run_from_args"]
