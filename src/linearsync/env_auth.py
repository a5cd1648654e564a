"""Environment-based credentials for linearsync.

Loads ``.env`` files with python-dotenv and discovers the GitHub token and
Linear API key from environment variables. Values already present in the
process environment are never overridden by a ``.env`` file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

DOTENV_LOCATIONS = ('.env', '.env.local')


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"
    linear_api_key_var: str = "LINEAR_API_KEY"


def load_environment_files(dotenv_path: str | None = None) -> Path | None:
    """Load the first available .env file; returns the path that was loaded."""
    logger = get_logger()
    candidates = [dotenv_path] if dotenv_path else list(DOTENV_LOCATIONS)
    for location in candidates:
        env_path = Path(location)
        if env_path.exists():
            load_dotenv(str(env_path), override=False)
            logger.debug(f"Loaded environment variables from {env_path}")
            return env_path
    return None


class EnvironmentAuthManager:
    """Discovers tracker credentials through environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig, environ: Mapping[str, str] | None = None):
        self.config = config
        self.logger = get_logger()
        self._environ = environ
        self.dotenv_file: Path | None = None
        if config.load_dotenv and environ is None:
            self.dotenv_file = load_environment_files(config.dotenv_path)

    def _get(self, name: str) -> str | None:
        env = os.environ if self._environ is None else self._environ
        value = env.get(name)
        if value is None:
            return None
        return value.strip() or None

    def get_github_token(self) -> str | None:
        """Get GitHub token from environment variables."""
        token = self._get(self.config.github_token_var)
        if token:
            self.logger.debug("Found GitHub token in environment variables")
            return token
        for alt_var in ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GITHUB_PAT"):
            token = self._get(alt_var)
            if token:
                self.logger.debug(f"Found GitHub token in {alt_var}")
                return token
        return None

    def get_linear_api_key(self) -> str | None:
        return self._get(self.config.linear_api_key_var)

    def is_online_environment(self) -> bool:
        """Detect CI or hosted editor environments."""
        for indicator in ('CODESPACES', 'CI', 'GITHUB_ACTIONS'):
            if self._get(indicator):
                self.logger.debug(f"Detected online environment: {indicator}")
                return True
        return False

    def get_authentication_recommendations(self) -> list[str]:
        recommendations: list[str] = []
        if not self.get_github_token():
            if self.is_online_environment():
                recommendations.append("Expose GITHUB_TOKEN to the job environment")
            else:
                recommendations.extend(
                    [
                        "Set GITHUB_TOKEN environment variable",
                        "Or create .env file with GITHUB_TOKEN=your_token",
                    ]
                )
        if not self.get_linear_api_key():
            recommendations.extend(
                [
                    "Set LINEAR_API_KEY (Linear > Settings > API > Personal API keys)",
                    "Or add LINEAR_API_KEY=lin_api_... to your .env file",
                ]
            )
        return recommendations


def create_env_auth_manager(
    config: EnvAuthConfig | None = None, environ: Mapping[str, str] | None = None
) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config, environ=environ)


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "create_env_auth_manager",
    "load_environment_files",
]
