"""Working-tree status snapshots and the per-file icon cache.

A `StatusSnapshot` classifies repository-relative paths the way the editor
tree needs them. `StatusCache` turns a snapshot into an absolute-path to icon
mapping and rebuilds it wholesale when it goes stale or is invalidated.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import IconsConfig
from .constants import APP_NAME, CACHE_REFRESH_INTERVAL

logger = logging.getLogger(APP_NAME)

IconResolver = Callable[[str], Any]
"""Turns an icon resource name into whatever the host draws."""

# Status sets that receive an icon, in the order they are applied.
ICON_RULE_ORDER = ("added", "changed", "missing", "modified", "untracked")

_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}


@dataclass(frozen=True)
class StatusSnapshot:
    """Repository-relative POSIX paths grouped by status.

    Attributes:
        added (frozenset[str]): New in the index, absent from HEAD.
        changed (frozenset[str]): Staged content differs from HEAD.
        missing (frozenset[str]): Tracked in the index but deleted on disk.
        modified (frozenset[str]): Working copy differs from the index.
        untracked (frozenset[str]): Unknown to the index and not ignored.
        removed (frozenset[str]): Staged for deletion.
        conflicting (frozenset[str]): Unmerged after a failed merge.
    """

    added: frozenset[str] = field(default_factory=frozenset)
    changed: frozenset[str] = field(default_factory=frozenset)
    missing: frozenset[str] = field(default_factory=frozenset)
    modified: frozenset[str] = field(default_factory=frozenset)
    untracked: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)
    conflicting: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_uncommitted_changes(self) -> bool:
        """True when anything but untracked files differs from HEAD."""
        return bool(
            self.added
            or self.changed
            or self.missing
            or self.modified
            or self.removed
            or self.conflicting
        )

    @property
    def is_clean(self) -> bool:
        return not (self.has_uncommitted_changes or self.untracked)


def parse_porcelain(output: str) -> StatusSnapshot:
    """Parses `git status --porcelain=v1 -z` output into a snapshot.

    Args:
        output (str): The raw, unstripped NUL-separated status output.

    Returns:
        StatusSnapshot: The classified paths.
    """
    sets: dict[str, set[str]] = {
        name: set() for name in StatusSnapshot.__dataclass_fields__
    }

    entries = iter(output.split("\0"))
    for entry in entries:
        if len(entry) < 4:
            continue
        x, y, path = entry[0], entry[1], entry[3:]

        if x in "RC":
            # Renames and copies carry the source path as the next entry.
            source = next(entries, "")
            if x == "R" and source:
                sets["removed"].add(source)

        code = x + y
        if code == "??":
            sets["untracked"].add(path)
            continue
        if code == "!!":
            continue
        if code in _CONFLICT_CODES:
            sets["conflicting"].add(path)
            continue

        if x in "ARC":
            sets["added"].add(path)
        elif x in "MT":
            sets["changed"].add(path)
        elif x == "D":
            sets["removed"].add(path)

        if y in "MT":
            sets["modified"].add(path)
        elif y == "D":
            sets["missing"].add(path)

    return StatusSnapshot(**{name: frozenset(paths) for name, paths in sets.items()})


def icon_rules(icons: IconsConfig | None = None) -> list[tuple[str, str]]:
    """Returns the (status set, icon resource) table in application order."""
    icons = icons or IconsConfig()
    return [(name, getattr(icons, name)) for name in ICON_RULE_ORDER]


def build_icon_map(
    snapshot: StatusSnapshot,
    root: Path,
    rules: list[tuple[str, str]],
    resolve: IconResolver,
) -> dict[Path, Any]:
    """Maps the absolute path of every file with a status to its icon.

    Rules are applied in order, so a path present in several sets ends up
    with the icon of the last one.
    """
    icons: dict[Path, Any] = {}
    for status_name, resource in rules:
        icon = resolve(resource)
        for rel in getattr(snapshot, status_name):
            icons[root / rel] = icon
    return icons


class StatusCache:
    """A path to icon cache rebuilt from scratch whenever it is refreshed.

    Attributes:
        root (Path): The working directory that snapshot paths are relative to.
        max_age (float): Seconds a built map stays fresh.
    """

    def __init__(
        self,
        root: Path,
        loader: Callable[[], StatusSnapshot],
        resolve: IconResolver | None = None,
        icons: IconsConfig | None = None,
        max_age: float = CACHE_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.root = root
        self.max_age = max_age
        self._loader = loader
        self._resolve: IconResolver = resolve or (lambda name: name)
        self._rules = icon_rules(icons)
        self._clock = clock
        self._icons: dict[Path, Any] = {}
        self._built_at: float | None = None

    @property
    def is_stale(self) -> bool:
        if self._built_at is None:
            return True
        return self._clock() - self._built_at > self.max_age

    def invalidate(self) -> None:
        """Forces the next lookup to rebuild the map."""
        self._built_at = None

    def clear(self) -> None:
        """Drops every cached icon, e.g. when the repository disappears."""
        self._icons = {}
        self._built_at = None

    def refresh(self) -> None:
        """Loads a fresh snapshot and swaps in a newly built icon map.

        Raises:
            Exception: Whatever the snapshot loader raises. The previous map is
                       discarded so stale icons are never shown.
        """
        try:
            snapshot = self._loader()
        except Exception:
            self.clear()
            raise
        self._icons = build_icon_map(snapshot, self.root, self._rules, self._resolve)
        self._built_at = self._clock()
        logger.debug(f"Status cache rebuilt with {len(self._icons)} entries")

    def icon_for(self, path: Path) -> Any | None:
        """Returns the icon for `path`, refreshing first if the map is stale.

        Args:
            path (Path): An absolute file path.

        Returns:
            Any | None: The resolved icon, or None if the file has no status.
        """
        if self.is_stale:
            self.refresh()
        return self._icons.get(Path(path))
