"""linearsync CLI.

Subcommands:
  sync    -> copy assignee or priority from GitHub issues to their Linear mirrors
  doctor  -> report configuration and credential status (no network calls)
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any

from .config import ConfigError, SyncConfig
from .env_auth import EnvAuthConfig, create_env_auth_manager
from .github_rest import GitHubRestClient
from .linear_client import LinearClient
from .logging import configure_logging
from .models import TrackedField
from .orchestrator import format_report, run_sync, write_summary
from .runtime import execute_command, prepare_config
from .ux import (
    print_error,
    print_operation_status,
    print_success,
    print_summary_box,
    print_warning,
)

REPO_HELP = "Override target repository (owner/repo or repo)"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", default=None, help="YAML config file (default: linearsync.config.yaml if present)"
    )
    parser.add_argument("--repo", help=REPO_HELP)
    parser.add_argument("--owner", help="Override GitHub owner")
    parser.add_argument("--team", help="Override Linear team key or name")


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(
        prog="linearsync", description="One-way GitHub -> Linear assignee and priority sync"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors (env: LINEARSYNC_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Copy a GitHub issue field onto matching Linear issues")
    ps.add_argument(
        "--field",
        required=True,
        choices=[f.value for f in TrackedField],
        help="Field to sync",
    )
    _add_common(ps)
    ps.add_argument("--project-number", type=int, help="Override GitHub Projects V2 number")
    ps.add_argument("--dry-run", action="store_true", help="Plan updates without applying them")
    ps.add_argument(
        "--prefetch",
        action="store_true",
        help="Load the team's Linear issues once instead of querying per GitHub issue",
    )
    ps.add_argument("--summary-json", help="Write the run report to this JSON file")

    pd = sub.add_parser("doctor", help="Check configuration and credentials (offline)")
    _add_common(pd)
    return p


def _build_clients(cfg: SyncConfig) -> tuple[GitHubRestClient, LinearClient]:
    github = GitHubRestClient(token=str(cfg.github_token), owner=str(cfg.owner), repo=str(cfg.repo))
    linear = LinearClient(api_key=str(cfg.linear_api_key))
    return github, linear


def _cmd_sync(cfg: SyncConfig, args: argparse.Namespace) -> int:
    level = "WARNING" if args.quiet else cfg.logging_level
    logger = configure_logging(json_logging=cfg.logging_json_enabled, level=level)
    tracked_field = TrackedField(args.field)

    if not args.quiet:
        mode = "DRY RUN" if args.dry_run else "LIVE"
        print_operation_status("sync", "starting", f"field={tracked_field.value} mode={mode}")

    github, linear = _build_clients(cfg)
    report = run_sync(
        cfg,
        tracked_field,
        github=github,
        linear=linear,
        dry_run=args.dry_run,
        prefetch=args.prefetch,
        logger=logger,
    )
    if args.summary_json:
        write_summary(args.summary_json, report)

    totals = report.totals
    if args.quiet:
        print("[sync] totals", json.dumps(totals))
    else:
        for line in format_report(report):
            print(line)
        print_summary_box(
            "Sync Summary",
            [
                ("Collected", totals["collected"]),
                ("Matched", totals["matched"]),
                ("Unchanged", totals["unchanged"]),
                ("Updated", totals["updated"]),
                ("Skipped", totals["skipped"]),
                ("Failed", totals["failed"]),
            ],
        )
        print_operation_status("sync", "completed" if report.ok else "failed")
    return 0 if report.ok else 1


def _cmd_doctor(cfg: SyncConfig, args: argparse.Namespace) -> int:
    """Report configuration and credential status without touching the network."""
    problems: list[str] = []
    warnings: list[str] = []

    print(f"[doctor] config file: {cfg.source_file or 'none'}")
    print(f"[doctor] repository: {cfg.repository if cfg.owner and cfg.repo else 'None'}")
    print(f"[doctor] team: {cfg.team or 'None'}")
    for name, description in cfg.missing_settings():
        problems.append(f"{name} is not set ({description})")

    auth = create_env_auth_manager(EnvAuthConfig(load_dotenv=False))
    print(f"[doctor] github token: {'present' if cfg.github_token else 'missing'}")
    print(f"[doctor] linear api key: {'present' if cfg.linear_api_key else 'missing'}")
    if not (cfg.github_token and cfg.linear_api_key):
        warnings.extend(auth.get_authentication_recommendations())

    if cfg.project_number is not None:
        print(
            f"[doctor] priority source: project #{cfg.project_number} "
            f"({cfg.project_owner_type}) field '{cfg.priority_field}', labels as fallback"
        )
    else:
        print("[doctor] priority source: issue labels (no GITHUB_PROJECT_NUMBER)")
    if cfg.actor_overrides:
        print(f"[doctor] actor overrides: {len(cfg.actor_overrides)}")

    if warnings:
        print_warning(f"{len(warnings)} suggestion(s):")
        for w in warnings:
            print(f"  • {w}")
    if problems:
        print_error(f"{len(problems)} problem(s) detected:")
        for problem in problems:
            print(f"  • {problem}")
        return 2
    print_success("Configuration complete")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: SyncConfig) -> dict[str, Any]:
    return {
        "sync": lambda: _cmd_sync(cfg, args),
        "doctor": lambda: _cmd_doctor(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "quiet", False) and os.environ.get("LINEARSYNC_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
    except ConfigError as exc:
        print_error(str(exc))
        return 2
    handler = _build_handlers(args, cfg).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    return execute_command(handler, args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
