"""Editor plugin adapter.

The host asks the plugin for menu entries, toolbar buttons and file icon
overlays, and notifies it of project events. Everything the host renders is
plain data (`MenuItem`, `ToolbarButton`); the actions call into the
`Repository` facade.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

from .config import Config
from .constants import APP_NAME, DEFAULT_NEW_REMOTE, DEFAULT_REMOTE_URL
from .host import HostBridge
from .repository import Repository, branch_name

logger = logging.getLogger(APP_NAME)


class MenuTarget(Enum):
    """What a context menu was opened on."""

    FILE = "file"
    PROJECT = "project"


class Event(Enum):
    PROJECT_OPEN = "project_open"
    PROJECT_CLOSE = "project_close"


@dataclass
class MenuItem:
    """A single menu entry.

    Attributes:
        label (str): The visible text. Empty for separators.
        action (Callable[[], Any] | None): Invoked when the entry is chosen.
        enabled (bool): Whether the entry can be chosen.
        checked (bool | None): Radio state; None for plain entries.
        children (list[MenuItem]): Submenu entries.
        separator (bool): Whether this entry is a divider.
    """

    label: str
    action: Callable[[], Any] | None = None
    enabled: bool = True
    checked: bool | None = None
    children: list["MenuItem"] = field(default_factory=list)
    separator: bool = False

    @classmethod
    def divider(cls) -> "MenuItem":
        return cls("", enabled=False, separator=True)


@dataclass
class ToolbarButton:
    """A toolbar button that either acts directly or pops up a menu.

    Attributes:
        name (str): Stable identifier (pull, push, commit, branch).
        icon (Any): The host icon for the button face.
        tooltip (str): Hover text.
        enabled (bool): Whether the button reacts to clicks.
        action (Callable[[], Any] | None): Invoked on click.
        menu (Callable[[], list[MenuItem]] | None): Builds the popup on click.
    """

    name: str
    icon: Any
    tooltip: str
    enabled: bool = True
    action: Callable[[], Any] | None = None
    menu: Callable[[], list[MenuItem]] | None = None


class GitLinkPlugin:
    """Exposes a `Repository` through the host's plugin capabilities.

    Attributes:
        host (HostBridge): The editor services.
        repository (Repository): The facade for the host's working directory.
    """

    preferences_title = "Git Link"

    def __init__(self, host: HostBridge, config: Config | None = None):
        self.host = host
        self.repository = Repository(host, config=config, resolve_icon=host.load_icon)
        self._buttons: list[ToolbarButton] = []

    # --- Context menus ---

    def context_menu(
        self, kind: MenuTarget, target: Path | None = None
    ) -> list[MenuItem]:
        """Returns the entries to add to a tree context menu.

        Args:
            kind (MenuTarget): What the menu was opened on.
            target (Path | None): The file, for `MenuTarget.FILE`.
        """
        repo = self.repository
        if repo.present or repo.open():
            if kind is MenuTarget.FILE and target is not None:
                if not repo.has_file(target):
                    return [
                        MenuItem("Add to Git repository", partial(repo.add_file, target))
                    ]
            return []

        if kind is MenuTarget.PROJECT:
            return [MenuItem("Create Git Repository", self.create_repository)]
        return []

    # --- Toolbar ---

    def toolbar(self) -> list[ToolbarButton]:
        """Builds the pull, push, commit and branch buttons."""
        enabled = self.repository.present or self.repository.open()
        self._buttons = [
            ToolbarButton(
                "pull",
                self.host.load_icon("pull.png"),
                "Pull from remote repository",
                enabled=enabled,
                menu=self.pull_menu,
            ),
            ToolbarButton(
                "push",
                self.host.load_icon("push.png"),
                "Push to remote repository",
                enabled=enabled,
                menu=self.push_menu,
            ),
            ToolbarButton(
                "commit",
                self.host.load_icon("commit.png"),
                "Commit all changes",
                enabled=enabled,
                action=self.commit_all_updates,
            ),
            ToolbarButton(
                "branch",
                self.host.load_icon("branch.png"),
                "Branch",
                enabled=enabled,
                menu=self.branch_menu,
            ),
        ]
        return self._buttons

    def _remote_menu(
        self, title: str, operation: Callable[[str], bool]
    ) -> list[MenuItem]:
        items = [MenuItem(title, enabled=False), MenuItem.divider()]
        for name, url in self.repository.remotes().items():
            items.append(MenuItem(f"{name} ({url})", partial(operation, name)))
        items.append(MenuItem.divider())
        items.append(MenuItem("Add new remote", self.create_remote))
        return items

    def pull_menu(self) -> list[MenuItem]:
        return self._remote_menu("Pull from remote", self.repository.pull)

    def push_menu(self) -> list[MenuItem]:
        return self._remote_menu("Push to remote", self.repository.push)

    def branch_menu(self) -> list[MenuItem]:
        """Create, switch-to and merge entries for the branch button."""
        repo = self.repository
        current = repo.current_branch()
        branches = repo.branches()

        items = [
            MenuItem("Create new branch", self.create_branch),
            MenuItem.divider(),
            MenuItem("Switch to branch:", enabled=False),
            MenuItem.divider(),
        ]
        for ref in branches:
            short = branch_name(ref)
            items.append(
                MenuItem(
                    short,
                    partial(repo.switch_branch, ref),
                    checked=short == current,
                )
            )

        items.append(MenuItem.divider())
        merge = [
            MenuItem(branch_name(ref), partial(repo.merge_branch, ref))
            for ref in branches
            if branch_name(ref) != current
        ]
        items.append(MenuItem("Merge branch", children=merge))
        return items

    # --- Prompted actions ---

    def create_repository(self) -> bool:
        created = self.repository.create()
        if created:
            self.handle_event(Event.PROJECT_OPEN)
        return created

    def create_remote(self) -> bool:
        """Prompts for a remote name and URI and adds it."""
        title = "Add new remote repository"
        name = self.host.prompt(title, "Repository name:", DEFAULT_NEW_REMOTE)
        if not name:
            return False
        url = self.host.prompt(title, "Remote URI:", DEFAULT_REMOTE_URL)
        if not url:
            return False
        return self.repository.add_remote(name, url)

    def commit_all_updates(self) -> bool:
        """Prompts for a message and commits, if there is anything to commit."""
        if not self.repository.has_uncommitted_changes():
            return False
        message = self.host.prompt("Commit to Git repository", "Enter commit message:")
        if not message:
            return False
        return self.repository.commit(message)

    def create_branch(self) -> bool:
        name = self.host.prompt("Create new branch", "Enter branch name:")
        if not name:
            return False
        return self.repository.create_branch(name)

    # --- Events & overlays ---

    def handle_event(self, event: Event) -> None:
        if event is Event.PROJECT_OPEN:
            present = self.repository.open()
            logger.debug(f"Project opened, repository present: {present}")
            self.repository.refresh_status()
            for button in self._buttons:
                button.enabled = present
        elif event is Event.PROJECT_CLOSE:
            self.repository.status_cache.clear()

    def icon_overlay(self, path: Path) -> Any | None:
        """Returns the status icon to draw over a file in the tree."""
        return self.repository.icon_for(path)
