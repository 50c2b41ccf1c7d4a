import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME, GIT_DIR_NAME

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    This class provides methods to execute the Git operations the editor
    integration needs using `subprocess`, abstracting away the command
    construction and output handling.

    Attributes:
        path (Path): The file system path to the repository root.
        env (dict[str, str]): Extra environment variables for every Git call.
    """

    def __init__(self, path: Path, env: dict[str, str] | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.
            env (dict[str, str] | None, optional): Extra environment variables
                                                   (e.g. a pinned identity).

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        self.env = env or {}
        if not (self.path / GIT_DIR_NAME).exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def init(cls, path: Path, env: dict[str, str] | None = None) -> "GitRepo":
        """Creates a new repository in `path` and returns a wrapper for it.

        Args:
            path (Path): The working directory to initialize.
            env (dict[str, str] | None, optional): Extra environment variables.

        Returns:
            GitRepo: The wrapper bound to the new repository.
        """
        _git(["init"], cwd=path, env=env)
        return cls(path, env=env)

    def _run(self, args: list[str], capture: bool = True, strip: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.
            strip (bool, optional): Whether to strip surrounding whitespace from
                                    the output. Porcelain formats must not be
                                    stripped. Defaults to True.

        Returns:
            str:    The stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        output = _git(args, cwd=self.path, env=self.env, capture=capture)
        return output.strip() if strip else output

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The branch name, or an empty string on a detached HEAD.
        """
        return self._run(["branch", "--show-current"])

    def list_branches(self) -> list[str]:
        """Lists the fully qualified names of all local branches.

        Returns:
            list[str]: Ref names such as 'refs/heads/main'.
        """
        output = self._run(["for-each-ref", "--format=%(refname)", "refs/heads/"])
        return output.splitlines() if output else []

    def status_porcelain(self) -> str:
        """Returns the raw NUL-separated porcelain v1 status.

        Untracked directories are expanded so every file is listed on its own.

        Returns:
            str: The unstripped output of `git status --porcelain=v1 -z`.
        """
        return self._run(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"], strip=False
        )

    def add(self, path: str) -> None:
        """Stages a single path.

        Args:
            path (str): The path to stage, relative to the repository root.
        """
        self._run(["add", "--", path], capture=False)

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "--all"], capture=False)

    def commit(
        self, message: str, all_tracked: bool = False, allow_empty: bool = False
    ) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
            all_tracked (bool, optional): Whether to stage modifications and
                                          deletions of tracked files first
                                          (`--all`). Defaults to False.
            allow_empty (bool, optional): Whether to commit when nothing is
                                          staged. Defaults to False.
        """
        cmd = ["commit", "-m", message]
        if all_tracked:
            cmd.append("--all")
        if allow_empty:
            cmd.append("--allow-empty")
        self._run(cmd, capture=False)

    def push(
        self, remote: str, all_branches: bool = True, set_upstream: bool = True
    ) -> None:
        """Pushes local branches to a remote.

        Args:
            remote (str): The remote name.
            all_branches (bool, optional): Whether to push every local branch
                                           (`--all`). Defaults to True.
            set_upstream (bool, optional): Whether to record the pushed branches
                                           as upstreams so a later pull knows
                                           what to merge. Defaults to True.
        """
        cmd = ["push"]
        if all_branches:
            cmd.append("--all")
        if set_upstream:
            cmd.append("--set-upstream")
        cmd.append(remote)
        self._run(cmd, capture=False)

    def pull(self, remote: str, ref: str | None = None) -> None:
        """Fetches from a remote and merges a branch into HEAD.

        Args:
            remote (str): The remote name.
            ref (str | None, optional): The remote branch to merge. Without it
                                        git only accepts the configured
                                        upstream remote. Defaults to None.
        """
        cmd = ["pull", "--no-edit", remote]
        if ref:
            cmd.append(ref)
        self._run(cmd, capture=False)

    def checkout(self, branch: str, create: bool = False) -> None:
        """Checks out a branch, optionally creating it from HEAD.

        Args:
            branch (str): The target branch name or commit hash.
            create (bool, optional): Whether to create the branch (`-b`).
                                     Defaults to False.
        """
        cmd = ["checkout"]
        if create:
            cmd.append("-b")
        cmd.append(branch)
        self._run(cmd, capture=False)

    def merge(self, ref: str) -> None:
        """Merges a reference into the current HEAD, committing on success.

        Args:
            ref (str): The branch or commit to merge.
        """
        self._run(["merge", "--no-edit", ref], capture=False)

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision (tag, branch, relative ref) to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'master').

        Returns:
            Optional[str]:  The full SHA-1 hash,
                            or None if the revision could not be resolved.
        """
        try:
            return self._run(["rev-parse", "--verify", "--quiet", rev])
        except Exception as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None

    def ls_tree(self, rev: str = "HEAD") -> list[str]:
        """Lists every file path in a commit's tree, recursively.

        Args:
            rev (str, optional): The commit to walk. Defaults to 'HEAD'.

        Returns:
            list[str]: Repository-relative paths.
        """
        output = self._run(["ls-tree", "-r", "-z", "--name-only", rev], strip=False)
        return [p for p in output.split("\0") if p]

    def get_config(self, key: str) -> str | None:
        """Reads a single value from the repository configuration.

        Args:
            key (str): The dotted key (e.g. 'remote.origin.url').

        Returns:
            str | None: The value, or None if the key is unset.
        """
        try:
            return self._run(["config", "--local", "--get", key])
        except RuntimeError:
            return None

    def set_config(self, key: str, value: str) -> None:
        """Writes a single value to the repository configuration.

        Args:
            key (str): The dotted key (e.g. 'remote.origin.url').
            value (str): The value to store.
        """
        self._run(["config", "--local", key, value], capture=False)

    def list_remotes(self) -> dict[str, str]:
        """Lists configured remotes and their URLs, in configuration order.

        Returns:
            dict[str, str]: Mapping of remote name to URL.
        """
        try:
            output = self._run(
                ["config", "--local", "--get-regexp", r"^remote\..*\.url$"]
            )
        except RuntimeError:
            # `git config --get-regexp` exits 1 when nothing matches.
            return {}

        remotes = {}
        for line in output.splitlines():
            key, _, url = line.partition(" ")
            name = key[len("remote.") : -len(".url")]
            remotes[name] = url
        return remotes


def _git(
    args: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    capture: bool = True,
) -> str:
    """Runs `git` in `cwd`, layering `env` over the current environment.

    Stderr is always captured so failures carry git's own message.

    Raises:
        RuntimeError: If the git command returns a non-zero exit code.
    """
    full_env = {**os.environ, **env} if env else None
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE,
            text=True,
            check=True,
            env=full_env,
        )
        return res.stdout if capture else ""
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"Git error: {(e.stderr or '').strip() or e}") from e
