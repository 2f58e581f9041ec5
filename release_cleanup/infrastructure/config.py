"""Configuration loaded from the GitHub Action environment."""

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from release_cleanup.domain.release import RepositoryCoordinate, SelectionParams


class ConfigurationError(Exception):
    """Raised when a required parameter is missing or invalid."""
    pass


def _get(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return None
    return value


def _require(environ: Mapping[str, str], key: str, name: str) -> str:
    value = _get(environ, key)
    if value is None:
        raise ConfigurationError(f"Parameter {name} must be set ({key})")
    return value


def _check_pattern(pattern: Optional[str], name: str) -> None:
    if pattern is None:
        return
    try:
        re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"Parameter {name} is not a valid regular expression: {e}") from e


@dataclass(frozen=True)
class Settings:
    """Everything a cleanup run needs, read once at process start."""

    coordinate: RepositoryCoordinate
    params: SelectionParams
    api_url: str = "https://api.github.com"
    dry_run: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from INPUT_* environment variables.

        Args:
            environ: Environment mapping. If None, uses os.environ.

        Raises:
            ConfigurationError: If a parameter is missing or invalid
        """
        if environ is None:
            environ = os.environ

        repository = _require(environ, "INPUT_REPOSITORY", "repository")
        token = _require(environ, "INPUT_TOKEN", "token")
        keep_last_n_raw = _require(environ, "INPUT_KEEP-LAST-N", "keep-last-n")
        tag_filter = _get(environ, "INPUT_TAG-FILTER")
        name_filter = _get(environ, "INPUT_NAME-FILTER")

        owner, _, repo_name = repository.strip().partition("/")
        if not owner or not repo_name or "/" in repo_name:
            raise ConfigurationError(f"Parameter repository must be in the format 'owner/repo', got '{repository}'")

        try:
            keep_last_n = int(keep_last_n_raw.strip())
        except ValueError:
            raise ConfigurationError(f"Parameter keep-last-n must be an integer, got '{keep_last_n_raw}'")

        if tag_filter is None and name_filter is None:
            raise ConfigurationError("At least one of tag-filter or name-filter must be set")
        _check_pattern(tag_filter, "tag-filter")
        _check_pattern(name_filter, "name-filter")

        dry_run = (_get(environ, "INPUT_DRY-RUN") or "false").strip().lower() in ("true", "1", "yes")

        return cls(
            coordinate=RepositoryCoordinate(owner=owner, repository=repo_name, token=token),
            params=SelectionParams(tag_filter=tag_filter, name_filter=name_filter, keep_last_n=keep_last_n),
            api_url=_get(environ, "GITHUB_API_URL") or "https://api.github.com",
            dry_run=dry_run,
        )
