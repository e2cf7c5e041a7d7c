"""Configuration management for reviewed-patch."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIR = Path.home() / ".reviewed-patch"
REPO_CONFIG_RELPATH = Path(".reviewed-patch") / "config.toml"


def _find_repo_root(start_dir: Path) -> Path:
    """Nearest ancestor of start_dir (inclusive) holding .git, else start_dir."""
    for candidate in (start_dir, *start_dir.parents):
        if (candidate / ".git").exists():
            return candidate
    return start_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Read <repo>/.reviewed-patch/config.toml; None when absent or unreadable."""
    config_file = repo_root / REPO_CONFIG_RELPATH
    if not config_file.is_file():
        return None

    try:
        return tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {config_file}: {e}")
        return None


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _repo_bool(data: Optional[dict], section: str, key: str) -> Optional[bool]:
    if not data:
        return None
    table = data.get(section)
    if not isinstance(table, dict):
        return None
    value = table.get(key)
    return value if isinstance(value, bool) else None


class ReviewConfig(BaseModel):
    """Configuration for storage location and hashing."""

    storage_dir: Path = Field(default=DEFAULT_STORAGE_DIR)
    normalize_whitespace: bool = Field(default=False)

    @classmethod
    def from_env(
        cls,
        cli_storage_dir: Optional[str] = None,
        cli_normalize_whitespace: Optional[bool] = None,
        cwd: Optional[Path] = None,
    ) -> "ReviewConfig":
        """Resolve configuration with the following precedence:

        1. CLI options (if provided)
        2. repo-local .reviewed-patch/config.toml (walk upward from cwd)
        3. REVIEWED_PATCH_STORAGE_DIR / REVIEWED_PATCH_NORMALIZE_WHITESPACE
        4. Defaults (~/.reviewed-patch, no whitespace normalization)

        Args:
            cli_storage_dir: Storage directory from --storage-dir
            cli_normalize_whitespace: Flag from --normalize-whitespace
            cwd: Directory to start the repo config search from

        Returns:
            Resolved ReviewConfig
        """
        repo_config = _load_repo_config_data(_find_repo_root(cwd or Path.cwd()))

        storage_dir: Optional[Path] = None
        if cli_storage_dir:
            storage_dir = Path(cli_storage_dir)
        elif repo_config and isinstance(repo_config.get("storage_dir"), str):
            storage_dir = Path(repo_config["storage_dir"])
        elif os.environ.get("REVIEWED_PATCH_STORAGE_DIR"):
            storage_dir = Path(os.environ["REVIEWED_PATCH_STORAGE_DIR"])

        normalize = cli_normalize_whitespace
        if normalize is None:
            normalize = _repo_bool(repo_config, "hashing", "normalize_whitespace")
        if normalize is None:
            normalize = _env_bool("REVIEWED_PATCH_NORMALIZE_WHITESPACE")

        return cls(
            storage_dir=(storage_dir or DEFAULT_STORAGE_DIR).expanduser().resolve(),
            normalize_whitespace=bool(normalize),
        )
