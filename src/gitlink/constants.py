"""Global constants and path definitions for GitLink.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default Git and icon values used across the
package.
"""

import os
from pathlib import Path

# --- Identity ---
APP_NAME = "gitlink"
"""str: The application name, also used as the logger name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "gitlink"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "gitlink.log"
"""Path: The file path for the rotating log."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/gitlink"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The global configuration file path."""

LOCAL_CONFIG_NAME = "gitlink.toml"
"""str: The per-project configuration file, looked up in the working directory."""

# --- Git Constants ---
GIT_DIR_NAME = ".git"
"""str: The metadata directory that marks a working directory as a repository."""

DEFAULT_REMOTE = "origin"
"""str: The remote used by push/pull when none is given."""

INITIAL_COMMIT_MESSAGE = "Initial repository creation"
"""str: The message of the commit created alongside a new repository."""

DEFAULT_NEW_REMOTE = "upstream"
"""str: The name pre-filled when the user adds a new remote."""

DEFAULT_REMOTE_URL = "git@github.com:<username>/<repository>"
"""str: The URI template pre-filled when the user adds a new remote."""

# --- Status Cache ---
CACHE_REFRESH_INTERVAL = 1.0
"""float: Seconds a status snapshot stays fresh before icon lookups rebuild it."""

# --- Icons ---
ICON_ADDED = "vcs-added.png"
ICON_UNSTAGED = "vcs-locally-modified-not-staged.png"
ICON_MODIFIED = "vcs-locally-modified.png"
ICON_CONFLICTING = "vcs-conflicting.png"

# --- Build Variables ---
VARIABLE_DELIMITER = "::"
"""str: Separator between accumulated values and between builtin arguments."""

BUILTIN_PREFIX = "__builtin_"
"""str: Prefix that marks a build-script token as a builtin command."""
