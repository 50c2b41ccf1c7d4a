import logging
import shutil
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .config import Config
from .constants import APP_NAME, GIT_DIR_NAME
from .git_wrapper import GitRepo
from .host import HostBridge
from .status import IconResolver, StatusCache, StatusSnapshot, parse_porcelain

logger = logging.getLogger(APP_NAME)

UNCOMMITTED_TITLE = "Cannot switch branches"
UNCOMMITTED_MESSAGE = "You have uncommitted changes."


def branch_name(ref: str) -> str:
    """Strips the `refs/heads/` prefix so checkouts stay on the branch."""
    prefix = "refs/heads/"
    return ref[len(prefix) :] if ref.startswith(prefix) else ref


class Repository:
    """The repository handle behind an open project.

    The handle may exist before the repository does. Every public operation
    re-checks the `.git` directory and reopens the handle when needed, so
    "no repository yet" is a normal state rather than an error. Failures from
    Git are logged, passed to the host's error reporter and turned into a
    False/None result; nothing is raised to the caller.

    Attributes:
        host (HostBridge): The editor services used for refreshes and errors.
        path (Path): The working directory.
        git_dir (Path): The metadata directory inside `path`.
        config (Config): The merged configuration for `path`.
        status_cache (StatusCache): The per-file icon cache.
    """

    def __init__(
        self,
        host: HostBridge,
        config: Config | None = None,
        resolve_icon: IconResolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.host = host
        self.path = Path(host.working_directory()).absolute()
        self.git_dir = self.path / GIT_DIR_NAME
        self.config = config or Config.load(self.path)
        self._repo: GitRepo | None = None
        self.status_cache = StatusCache(
            self.path,
            self.status,
            resolve=resolve_icon,
            icons=self.config.icons,
            max_age=self.config.cache.refresh_interval,
            clock=clock,
        )
        self.open()

    @property
    def present(self) -> bool:
        """True when the handle is open and `.git` still exists on disk."""
        return self._repo is not None and self.git_dir.is_dir()

    def open(self) -> bool:
        """Binds the handle to `.git` if it exists.

        Returns:
            bool: Whether a repository is present.
        """
        if not self.git_dir.is_dir():
            if self._repo is not None:
                logger.info(f"Repository at {self.path} is gone")
            self._repo = None
            self.status_cache.clear()
            return False

        if self._repo is None:
            try:
                self._repo = GitRepo(self.path, env=self.config.core.identity_env())
            except Exception as e:
                self._fail("open repository", e)
                return False
            logger.debug(f"Opened repository at {self.path}")
        return True

    def _ensure_open(self) -> GitRepo | None:
        if not self.present:
            self.open()
        return self._repo

    def _fail(self, action: str, error: Exception) -> bool:
        logger.error(f"Failed to {action} in {self.path}: {error}")
        self.host.report_error(error)
        return False

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.host.set_busy(True)
        try:
            yield
        finally:
            self.host.set_busy(False)

    def _after_change(self) -> None:
        """Rebuilds the status cache and asks the host to repaint its tree."""
        self.refresh_status()
        self.host.refresh_tree()

    def _relative(self, path: Path | str) -> str:
        p = Path(path)
        if p.is_absolute():
            p = p.relative_to(self.path)
        return p.as_posix()

    # --- Status ---

    def status(self) -> StatusSnapshot:
        """Queries Git for the current working-tree status.

        Returns:
            StatusSnapshot: The classified paths; empty when there is no repository.

        Raises:
            RuntimeError: If `git status` fails.
        """
        repo = self._ensure_open()
        if repo is None:
            return StatusSnapshot()
        return parse_porcelain(repo.status_porcelain())

    def has_uncommitted_changes(self) -> bool:
        try:
            return self.status().has_uncommitted_changes
        except Exception as e:
            return self._fail("read repository status", e)

    def refresh_status(self) -> None:
        """Rebuilds the icon cache from a fresh status snapshot."""
        if self._ensure_open() is None:
            self.status_cache.clear()
            return
        try:
            self.status_cache.refresh()
        except Exception as e:
            self._fail("read repository status", e)

    def icon_for(self, path: Path | str) -> Any | None:
        """Returns the status icon for a file, or None if it has no status.

        Args:
            path (Path | str): The absolute file path.
        """
        if self._ensure_open() is None:
            return None
        try:
            return self.status_cache.icon_for(Path(path))
        except Exception as e:
            self._fail("read repository status", e)
            return None

    # --- Repository lifecycle ---

    def create(self) -> bool:
        """Initializes a repository holding every existing file in one commit.

        Returns:
            bool: False if a repository already exists or creation failed.
        """
        if self.open():
            return False

        core = self.config.core
        try:
            repo = GitRepo.init(self.path, env=core.identity_env())
            self._repo = repo
            repo.add_all()
            repo.commit(core.initial_commit_message, allow_empty=True)
        except Exception as e:
            # Leave no half-made repository behind so create() can be retried.
            self._repo = None
            shutil.rmtree(self.git_dir, ignore_errors=True)
            self.status_cache.clear()
            return self._fail("create repository", e)

        logger.info(f"Created repository at {self.path}")
        self._after_change()
        return True

    def add_file(self, path: Path | str) -> bool:
        """Stages a single file.

        Args:
            path (Path | str): Absolute, or relative to the working directory.
        """
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            repo.add(self._relative(path))
        except Exception as e:
            return self._fail(f"add {path}", e)
        self._after_change()
        return True

    def commit(self, message: str) -> bool:
        """Stages all tracked modifications and commits them."""
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            with self._busy():
                repo.commit(message, all_tracked=True)
        except Exception as e:
            return self._fail("commit", e)
        self._after_change()
        return True

    def commit_all_updates(self, message: str) -> bool:
        """Commits only when there is something to commit.

        Returns:
            bool: False when the working tree is clean or the commit failed.
        """
        if self._ensure_open() is None or not self.has_uncommitted_changes():
            return False
        return self.commit(message)

    # --- Remotes ---

    def push(self, remote: str | None = None) -> bool:
        """Pushes every local branch to `remote` (default: the configured remote)."""
        repo = self._ensure_open()
        if repo is None:
            return False
        remote = remote or self.config.core.remote_name
        try:
            with self._busy():
                repo.push(remote)
        except Exception as e:
            return self._fail(f"push to {remote}", e)
        logger.info(f"Pushed to {remote}")
        self._after_change()
        return True

    @staticmethod
    def _merge_ref(repo: GitRepo) -> str | None:
        """The branch a pull merges: the upstream's merge ref, else the same name."""
        branch = repo.current_branch()
        if not branch:
            return None
        return repo.get_config(f"branch.{branch}.merge") or f"refs/heads/{branch}"

    def pull(self, remote: str | None = None) -> bool:
        """Pulls the current branch from `remote` (default: the configured remote)."""
        repo = self._ensure_open()
        if repo is None:
            return False
        remote = remote or self.config.core.remote_name
        try:
            with self._busy():
                repo.pull(remote, self._merge_ref(repo))
        except Exception as e:
            return self._fail(f"pull from {remote}", e)
        logger.info(f"Pulled from {remote}")
        self._after_change()
        return True

    def add_remote(self, name: str, url: str) -> bool:
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            repo.set_config(f"remote.{name}.url", url)
            if repo.get_config(f"remote.{name}.fetch") is None:
                repo.set_config(
                    f"remote.{name}.fetch", f"+refs/heads/*:refs/remotes/{name}/*"
                )
        except Exception as e:
            return self._fail(f"add remote {name}", e)
        self._after_change()
        return True

    def remotes(self) -> dict[str, str]:
        repo = self._ensure_open()
        if repo is None:
            return {}
        try:
            return repo.list_remotes()
        except Exception as e:
            self._fail("list remotes", e)
            return {}

    # --- Tree queries ---

    def has_file(self, path: Path | str) -> bool:
        """Checks whether a file is part of the HEAD commit.

        Walks the whole HEAD tree, so keep it off hot paths.

        Args:
            path (Path | str): Absolute, or relative to the working directory.

        Returns:
            bool: True if the file is tracked at HEAD.
        """
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            if repo.rev_parse("HEAD") is None:
                return False
            target = (self.path / path).resolve()
            for entry in repo.ls_tree("HEAD"):
                if (self.path / entry).resolve() == target:
                    return True
        except Exception as e:
            self._fail(f"look up {path}", e)
        return False

    # --- Branches ---

    def current_branch(self) -> str:
        repo = self._ensure_open()
        if repo is None:
            return ""
        try:
            return repo.current_branch()
        except Exception as e:
            self._fail("read current branch", e)
            return ""

    def branches(self) -> list[str]:
        """Lists local branches as full ref names."""
        repo = self._ensure_open()
        if repo is None:
            return []
        try:
            return repo.list_branches()
        except Exception as e:
            self._fail("list branches", e)
            return []

    def create_branch(self, name: str) -> bool:
        """Creates a branch from HEAD and checks it out."""
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            repo.checkout(name, create=True)
        except Exception as e:
            return self._fail(f"create branch {name}", e)
        logger.info(f"Created branch {name}")
        self._after_change()
        return True

    def _refuse_if_dirty(self) -> bool:
        if self.status().has_uncommitted_changes:
            self.host.show_message(UNCOMMITTED_TITLE, UNCOMMITTED_MESSAGE)
            return True
        return False

    def switch_branch(self, ref: str) -> bool:
        """Checks out `ref` unless the working tree has uncommitted changes."""
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            if self._refuse_if_dirty():
                return False
            with self._busy():
                repo.checkout(branch_name(ref))
        except Exception as e:
            return self._fail(f"switch to {ref}", e)
        self.host.rescan_files()
        self._after_change()
        return True

    def merge_branch(self, ref: str) -> bool:
        """Merges `ref` into HEAD unless the working tree has uncommitted changes."""
        repo = self._ensure_open()
        if repo is None:
            return False
        try:
            if self._refuse_if_dirty():
                return False
            with self._busy():
                repo.merge(ref)
        except Exception as e:
            self._fail(f"merge {ref}", e)
            # A conflicted merge still changes the working tree.
            self.host.rescan_files()
            self._after_change()
            return False
        self.host.rescan_files()
        self._after_change()
        return True
