import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, ClassVar

from .constants import (
    APP_NAME,
    CACHE_REFRESH_INTERVAL,
    CONFIG_FILE,
    DEFAULT_REMOTE,
    ICON_ADDED,
    ICON_CONFLICTING,
    ICON_MODIFIED,
    ICON_UNSTAGED,
    INITIAL_COMMIT_MESSAGE,
    LOCAL_CONFIG_NAME,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | float | str) -> float:
    """Converts human-readable time strings (e.g., '10ms', '2 sec') to seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(ms|s|sec|m|min)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"ms": 0.001, "s": 1, "sec": 1, "m": 60, "min": 60}
    return num * multiplier[unit]


@dataclass
class CoreConfig:
    """Core repository settings.

    Attributes:
        remote_name (str): The remote used by push/pull when none is given.
        initial_commit_message (str): Message of the commit made by `create`.
        author_name (str | None): Overrides the Git author/committer name.
        author_email (str | None): Overrides the Git author/committer email.
    """

    remote_name: str = DEFAULT_REMOTE
    initial_commit_message: str = INITIAL_COMMIT_MESSAGE
    author_name: str | None = None
    author_email: str | None = None

    def identity_env(self) -> dict[str, str]:
        """Returns the GIT_* variables that pin the configured identity."""
        env = {}
        if self.author_name:
            env["GIT_AUTHOR_NAME"] = self.author_name
            env["GIT_COMMITTER_NAME"] = self.author_name
        if self.author_email:
            env["GIT_AUTHOR_EMAIL"] = self.author_email
            env["GIT_COMMITTER_EMAIL"] = self.author_email
        return env


@dataclass
class CacheConfig:
    """Status cache settings.

    Attributes:
        refresh_interval (float): Seconds before an icon lookup rebuilds the cache.
    """

    refresh_interval: float = CACHE_REFRESH_INTERVAL


@dataclass
class IconsConfig:
    """Icon resource names per status set.

    The untracked default reuses the conflicting icon, matching the icon set
    shipped with the original editor plugin.
    """

    added: str = ICON_ADDED
    changed: str = ICON_UNSTAGED
    missing: str = ICON_UNSTAGED
    modified: str = ICON_MODIFIED
    untracked: str = ICON_CONFLICTING


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        max_log_size (int): Max bytes for the log file before rotation.
        level (str): The minimum level written by the handlers.
    """

    max_log_size: int = 5 * 1024 * 1024
    level: str = "INFO"


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Repository settings.
        cache (CacheConfig): Status cache settings.
        icons (IconsConfig): Status icon table.
        logging (LoggingConfig): Log handler settings.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    icons: IconsConfig = field(default_factory=IconsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Cache for the base global configuration
    _global_cache: ClassVar["Config | None"] = None

    @classmethod
    def load(cls, repo_path: Path | None = None) -> "Config":
        """Loads and merges configuration from defaults, global, and local sources.

        Args:
            repo_path (Path | None): The working directory to search for local config.

        Returns:
            Config: The fully merged configuration object.
        """
        # 1. Load or Retrieve Global Config
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        # Copy each section so local overrides never leak into the cache
        base = cls._global_cache
        instance = cls(
            core=replace(base.core),
            cache=replace(base.cache),
            icons=replace(base.icons),
            logging=replace(base.logging),
        )

        # 2. Load Local Config (if applicable)
        if repo_path:
            local_toml = repo_path / LOCAL_CONFIG_NAME
            pyproject = repo_path / "pyproject.toml"

            if local_toml.exists():
                instance._merge_from_file(local_toml)
            elif pyproject.exists():
                instance._merge_from_file(pyproject, section="tool.gitlink")

        return instance

    def _merge_from_file(self, path: Path, section: str | None = None) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated section path (e.g., 'tool.gitlink').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if section:
                for key in section.split("."):
                    data = data.get(key, {})

            if not data:
                return

            if "core" in data:
                self.core = self._update_dataclass("core", self.core, data["core"])
            if "cache" in data:
                self.cache = self._update_dataclass("cache", self.cache, data["cache"])
            if "icons" in data:
                self.icons = self._update_dataclass("icons", self.icons, data["icons"])
            if "logging" in data:
                self.logging = self._update_dataclass(
                    "logging", self.logging, data["logging"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "refresh_interval":
                    filtered_updates[k] = parse_time(v)
                elif k == "level":
                    level = str(v).upper()
                    if level not in logging.getLevelNamesMapping():
                        raise ValueError(f"Invalid log level '{v}'")
                    filtered_updates[k] = level
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
