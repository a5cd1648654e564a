"""Runtime helpers for linearsync CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

from .config import SyncConfig, load_config
from .errors import TeamNotFoundError, TransportError, redact
from .logging import get_logger
from .ux import print_error


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def _split_repository(value: str) -> tuple[str | None, str]:
    owner, sep, repo = value.partition("/")
    if sep:
        return owner or None, repo
    return None, value


def prepare_config(
    args: Any, *, loader: Callable[[str | None], SyncConfig] = load_config
) -> SyncConfig:
    """Load config for the argparse namespace and apply CLI overrides.

    Only ``sync`` validates; ``doctor`` reports missing settings instead of
    failing on them.
    """
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    cfg = loader(args.config)
    repo_override = getattr(args, "repo", None)
    if repo_override:
        owner, repo = _split_repository(repo_override)
        cfg.repo = repo
        if owner:
            cfg.owner = owner
    for attr in ("owner", "team", "project_number"):
        value = getattr(args, attr, None)
        if value is not None:
            setattr(cfg, attr, value)
    if getattr(args, "cmd", None) == "sync":
        cfg.validate()
    return cfg


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Run a command handler, turning fatal run errors into a non-zero exit."""
    logger = get_logger()
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except TeamNotFoundError as exc:
        print_error(str(exc))
        exit_code = 2
    except TransportError as exc:
        # only the team lookup lets a transport error escape a run
        print_error(f"{command} aborted: {redact(str(exc))}")
        exit_code = 1
    logger.log_performance(
        f"command_{command}", (time.monotonic() - start) * 1000, exit_code=exit_code
    )
    return exit_code


__all__ = ["prepare_config", "execute_command"]
