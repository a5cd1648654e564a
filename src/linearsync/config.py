from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .env_auth import load_environment_files

CONFIG_DEFAULT = "linearsync.config.yaml"
DEFAULT_PRIORITY_FIELD = "Priority"
DEFAULT_PAGE_SIZE = 100
DEFAULT_QUOTA_LOW_WATER = 10
DEFAULT_QUOTA_WARNING = 50

_USAGE_EXAMPLE = (
    "Example:\n"
    "  LINEAR_API_KEY=xxx GITHUB_TOKEN=yyy LINEAR_TEAM_ID=Engineering \\\n"
    "  GITHUB_OWNER=octocat GITHUB_REPO=my-repo GITHUB_PROJECT_NUMBER=1 \\\n"
    "  linearsync sync --field priority"
)

_REQUIRED_SETTINGS: tuple[tuple[str, str, str], ...] = (
    ("linear_api_key", "LINEAR_API_KEY", "Linear personal API key"),
    ("github_token", "GITHUB_TOKEN", "GitHub token with read access to the repository"),
    ("team", "LINEAR_TEAM_ID", "Linear team key or team name"),
    ("owner", "GITHUB_OWNER", "GitHub owner (user or organization)"),
    ("repo", "GITHUB_REPO", "GitHub repository name"),
)


class ConfigError(RuntimeError):
    pass


@dataclass
class SyncConfig:
    team: str | None
    owner: str | None
    repo: str | None
    linear_api_key: str | None = field(default=None, repr=False)
    github_token: str | None = field(default=None, repr=False)
    project_number: int | None = None
    project_owner_type: str = "organization"
    priority_field: str = DEFAULT_PRIORITY_FIELD
    actor_overrides: dict[str, str] = field(default_factory=dict)
    page_size: int = DEFAULT_PAGE_SIZE
    quota_low_water: int = DEFAULT_QUOTA_LOW_WATER
    quota_warning: int = DEFAULT_QUOTA_WARNING
    include_completed: bool = False
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Environment configuration
    env_load_dotenv: bool = True
    env_dotenv_path: str | None = None
    source_file: Path | None = None

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    def missing_settings(self) -> list[tuple[str, str]]:
        missing: list[tuple[str, str]] = []
        for attr, env_name, description in _REQUIRED_SETTINGS:
            value = getattr(self, attr)
            if not (isinstance(value, str) and value.strip()):
                missing.append((env_name, description))
        return missing

    def validate(self) -> SyncConfig:
        """Raise ``ConfigError`` naming every missing required setting."""
        missing = self.missing_settings()
        problems: list[str] = []
        if missing:
            problems.append("Required settings are missing:")
            problems.extend(f"  {name}: {desc}" for name, desc in missing)
        if self.project_owner_type not in {"organization", "user"}:
            problems.append("github.project.owner_type must be 'organization' or 'user'")
        if self.page_size <= 0:
            problems.append("behavior.page_size must be positive")
        if problems:
            problems.append("")
            problems.append("Optional: GITHUB_PROJECT_NUMBER, GITHUB_PRIORITY_FIELD (default: Priority)")
            problems.append(_USAGE_EXAMPLE)
            raise ConfigError("\n".join(problems))
        return self


def _resolve_env_var(value: Any, environ: Mapping[str, str]) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return environ.get(value[1:], None)
    return value


def _first_env(environ: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        raw = environ.get(name)
        if raw is None:
            continue
        cleaned = raw.strip()
        if cleaned:
            return cleaned
    return None


def _coerce_int(value: Any, setting: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{setting} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{setting} must be an integer, got {value!r}") from exc


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def _coerce_bool(value: Any, default: bool, setting: str) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"{setting} must be true or false, got {value!r}")


def _int_setting(
    section: Mapping[str, Any], key: str, default: int, setting: str, environ: Mapping[str, str]
) -> int:
    value = _coerce_int(_resolve_env_var(section.get(key), environ), setting)
    return default if value is None else value


def _bool_setting(
    section: Mapping[str, Any], key: str, default: bool, setting: str, environ: Mapping[str, str]
) -> bool:
    return _coerce_bool(_resolve_env_var(section.get(key), environ), default, setting)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return cast(dict[str, Any], raw)


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SyncConfig:
    """Build a ``SyncConfig`` from an optional YAML file and the environment.

    Environment variables win over file values. When ``path`` is None the
    default file is read if it exists; an explicitly named file must exist.
    The result is not validated; call :meth:`SyncConfig.validate`.
    """
    raw: dict[str, Any] = {}
    source_file: Path | None = None
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f'Configuration file not found: {p}')
        raw = _read_yaml(p)
        source_file = p
    elif Path(CONFIG_DEFAULT).exists():
        source_file = Path(CONFIG_DEFAULT)
        raw = _read_yaml(source_file)

    gh = cast(dict[str, Any], raw.get('github', {}) or {})
    linear = cast(dict[str, Any], raw.get('linear', {}) or {})
    project = cast(dict[str, Any], gh.get('project', {}) or {})
    actors = cast(dict[str, Any], raw.get('actors', {}) or {})
    behavior = cast(dict[str, Any], raw.get('behavior', {}) or {})
    logging_config = cast(dict[str, Any], raw.get('logging', {}) or {})
    env_config = cast(dict[str, Any], raw.get('environment', {}) or {})

    load_env_files = _bool_setting(
        env_config, 'load_dotenv', True, 'environment.load_dotenv',
        os.environ if environ is None else environ,
    )
    dotenv_path = env_config.get('dotenv_path')
    if environ is None and load_env_files:
        # .env values must be visible before settings are resolved
        load_environment_files(dotenv_path)
    env = os.environ if environ is None else environ

    overrides_raw = actors.get('overrides', {}) or {}
    if not isinstance(overrides_raw, dict):
        raise ConfigError("actors.overrides must be a mapping of GitHub login -> Linear name or email")
    overrides = {str(k): str(v) for k, v in overrides_raw.items() if v is not None}

    project_number = _coerce_int(
        _first_env(env, 'GITHUB_PROJECT_NUMBER') or _resolve_env_var(project.get('number'), env),
        'GITHUB_PROJECT_NUMBER',
    )

    return SyncConfig(
        team=_first_env(env, 'LINEAR_TEAM_ID') or _resolve_env_var(linear.get('team'), env),
        owner=_first_env(env, 'GITHUB_OWNER') or _resolve_env_var(gh.get('owner'), env),
        repo=_first_env(env, 'GITHUB_REPO') or _resolve_env_var(gh.get('repo'), env),
        linear_api_key=_first_env(env, 'LINEAR_API_KEY')
        or _resolve_env_var(linear.get('api_key'), env),
        github_token=_first_env(env, 'GITHUB_TOKEN', 'GH_TOKEN')
        or _resolve_env_var(gh.get('token'), env),
        project_number=project_number,
        project_owner_type=str(project.get('owner_type', 'organization')).lower(),
        priority_field=_first_env(env, 'GITHUB_PRIORITY_FIELD')
        or project.get('priority_field', DEFAULT_PRIORITY_FIELD),
        actor_overrides=overrides,
        page_size=_int_setting(behavior, 'page_size', DEFAULT_PAGE_SIZE, 'behavior.page_size', env),
        quota_low_water=_int_setting(
            behavior, 'quota_low_water', DEFAULT_QUOTA_LOW_WATER, 'behavior.quota_low_water', env
        ),
        quota_warning=_int_setting(
            behavior, 'quota_warning', DEFAULT_QUOTA_WARNING, 'behavior.quota_warning', env
        ),
        include_completed=_bool_setting(
            behavior, 'include_completed', False, 'behavior.include_completed', env
        ),
        logging_json_enabled=_bool_setting(
            logging_config, 'json_enabled', False, 'logging.json_enabled', env
        ),
        logging_level=logging_config.get('level', 'INFO'),
        env_load_dotenv=load_env_files,
        env_dotenv_path=dotenv_path,
        source_file=source_file,
    )


__all__ = ["CONFIG_DEFAULT", "ConfigError", "SyncConfig", "load_config"]
