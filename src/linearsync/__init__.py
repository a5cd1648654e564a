"""linearsync - one-way GitHub -> Linear assignee and priority sync.

High-level public API:

from linearsync import load_config, run_sync, TrackedField
from linearsync import GitHubRestClient, LinearClient

cfg = load_config('linearsync.config.yaml').validate()
report = run_sync(
    cfg,
    TrackedField.PRIORITY,
    github=GitHubRestClient(cfg.github_token, cfg.owner, cfg.repo),
    linear=LinearClient(cfg.linear_api_key),
    dry_run=True,
)
print(report.totals)

The CLI (``linearsync sync --field priority``) delegates to the same engine.
"""

from __future__ import annotations

from .config import ConfigError, SyncConfig, load_config
from .errors import TeamNotFoundError, TransportError
from .github_rest import GitHubRestClient
from .linear_client import LinearClient
from .models import TrackedField, UpdateIntent
from .orchestrator import SyncReport, run_sync

# Version constant (sync manually with pyproject)
__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "GitHubRestClient",
    "LinearClient",
    "SyncConfig",
    "SyncReport",
    "TeamNotFoundError",
    "TrackedField",
    "TransportError",
    "UpdateIntent",
    "__version__",
    "load_config",
    "run_sync",
]
