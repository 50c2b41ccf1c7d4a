import argparse
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.status import Status
from rich.table import Table

from .buildvars import PushCommand, VariableContext
from .config import Config
from .constants import APP_NAME, LOG_FILE
from .repository import Repository, branch_name
from .status import ICON_RULE_ORDER, StatusSnapshot

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


class ConsoleHost:
    """A terminal stand-in for the editor, rendering host callbacks with rich.

    Attributes:
        path (Path): The working directory.
    """

    def __init__(self, path: Path):
        self.path = path
        self._status: Status | None = None

    def working_directory(self) -> Path:
        return self.path

    def refresh_tree(self) -> None:
        pass

    def rescan_files(self) -> None:
        pass

    def set_busy(self, busy: bool) -> None:
        if busy and self._status is None:
            self._status = console.status("Working...", spinner="dots")
            self._status.start()
        elif not busy and self._status is not None:
            self._status.stop()
            self._status = None

    def report_error(self, error: BaseException) -> None:
        err_console.print(f"[bold red]ERROR:[/bold red] {error}")

    def show_message(self, title: str, message: str) -> None:
        console.print(Panel(message, title=title, border_style="yellow", expand=False))

    def prompt(self, title: str, message: str, default: str = "") -> str | None:
        console.print(f"[bold]{title}[/bold]")
        return Prompt.ask(message, default=default or None, console=console)

    def load_icon(self, name: str) -> Any:
        return name


def setup_logging(config: Config, verbose: bool = False) -> None:
    """Configures the application logger.

    Warnings go to stderr (everything when verbose); the configured level is
    also written to a rotating log file when the state directory is writable.

    Args:
        config (Config): Supplies the file size limit and level.
        verbose (bool, optional): Whether to echo debug output. Defaults to False.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG if verbose else config.logging.level)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=config.logging.max_log_size,
            backupCount=5,
        )
    except OSError as e:
        logger.warning(f"File logging disabled: {e}")
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def _finish(ok: bool, message: str) -> None:
    if not ok:
        sys.exit(1)
    console.print(f"[bold green]✔ {message}[/bold green]")


def _require_repo(repo: Repository) -> None:
    if not repo.present:
        err_console.print(
            "[bold red]Not a git repository.[/bold red] "
            "Run [bold cyan]gitlink init[/bold cyan] first."
        )
        sys.exit(1)


def _status_labels(snapshot: StatusSnapshot) -> dict[str, str]:
    """Maps each path to its status label, last set winning like the icon table."""
    labels = {}
    for name in ("removed", "conflicting", *ICON_RULE_ORDER):
        for path in getattr(snapshot, name):
            labels[path] = name
    return labels


def show_status(repo: Repository) -> None:
    """Displays the current branch and every path with a status."""
    _require_repo(repo)
    try:
        snapshot = repo.status()
    except RuntimeError as e:
        repo.host.report_error(e)
        sys.exit(1)

    branch = repo.current_branch() or "(detached)"
    console.print(f"On branch [bold cyan]{branch}[/bold cyan]")

    if snapshot.is_clean:
        console.print("[green]Working tree clean.[/green]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Path", style="cyan")
    table.add_column("Status")
    table.add_column("Icon", style="dim")
    for path, label in sorted(_status_labels(snapshot).items()):
        icon = repo.icon_for(repo.path / path)
        table.add_row(path, label, str(icon) if icon else "")
    console.print(table)


def list_branches(repo: Repository) -> None:
    _require_repo(repo)
    current = repo.current_branch()
    for ref in repo.branches():
        name = branch_name(ref)
        if name == current:
            console.print(f"* [bold green]{name}[/bold green]")
        else:
            console.print(f"  {name}")


def list_remotes(repo: Repository) -> None:
    _require_repo(repo)
    remotes = repo.remotes()
    if not remotes:
        console.print("[yellow]No remotes configured.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Remote", style="cyan")
    table.add_column("URL")
    for name, url in remotes.items():
        table.add_row(name, url)
    console.print(table)


def push_variable(store: Path, args: list[str]) -> None:
    """Runs the accumulator against a JSON file of build variables."""
    variables = json.loads(store.read_text()) if store.exists() else {}
    ctx = VariableContext(variables)
    if not PushCommand().run(ctx, args):
        for message in ctx.errors:
            err_console.print(f"[bold red]{message}[/bold red]")
        sys.exit(1)
    store.write_text(json.dumps(ctx.variables, indent=2) + "\n")
    console.print(f"{args[0]} = [cyan]{ctx.variables[args[0]]}[/cyan]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Git integration for editor project trees."
    )
    parser.add_argument(
        "-C",
        dest="directory",
        type=Path,
        default=None,
        help="Run as if started in this directory",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("status", help="Show changed files and their status")
    subparsers.add_parser("init", help="Create a repository with an initial commit")

    add_parser = subparsers.add_parser("add", help="Stage a file")
    add_parser.add_argument("path", type=Path, help="File to stage")

    commit_parser = subparsers.add_parser("commit", help="Commit all tracked changes")
    commit_parser.add_argument("-m", "--message", required=True, help="Commit message")

    push_parser = subparsers.add_parser("push", help="Push all branches to a remote")
    push_parser.add_argument("remote", nargs="?", help="Remote name (default: origin)")
    pull_parser = subparsers.add_parser("pull", help="Pull from a remote")
    pull_parser.add_argument("remote", nargs="?", help="Remote name (default: origin)")

    branch_parser = subparsers.add_parser("branch", help="Create and switch to a branch")
    branch_parser.add_argument("name", help="New branch name")
    switch_parser = subparsers.add_parser("switch", help="Switch to a branch")
    switch_parser.add_argument("ref", help="Branch name or ref")
    merge_parser = subparsers.add_parser("merge", help="Merge a branch into HEAD")
    merge_parser.add_argument("ref", help="Branch name or ref")
    subparsers.add_parser("branches", help="List local branches")

    remote_parser = subparsers.add_parser("remote", help="Manage remotes")
    remote_sub = remote_parser.add_subparsers(dest="remote_command", required=True)
    remote_add = remote_sub.add_parser("add", help="Add or update a remote")
    remote_add.add_argument("name", help="Remote name")
    remote_add.add_argument("url", help="Remote URL")
    subparsers.add_parser("remotes", help="List remotes")

    tracked_parser = subparsers.add_parser(
        "tracked", help="Check whether a file is in the HEAD commit"
    )
    tracked_parser.add_argument("path", type=Path, help="File to look up")

    var_parser = subparsers.add_parser(
        "push-var", help="Append a value to a '::'-separated build variable"
    )
    var_parser.add_argument("args", nargs="*", help="VARIABLE VALUE")
    var_parser.add_argument(
        "--store",
        type=Path,
        default=Path("build-vars.json"),
        help="JSON file holding the variables (default: build-vars.json)",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the GitLink CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    cwd = (args.directory or Path.cwd()).absolute()
    config = Config.load(cwd)
    setup_logging(config, verbose=args.verbose)

    if args.command == "push-var":
        push_variable(args.store, args.args)
        return

    repo = Repository(ConsoleHost(cwd), config=config)

    if args.command == "status":
        show_status(repo)
    elif args.command == "init":
        if repo.present:
            console.print("[yellow]Repository already exists.[/yellow]")
            return
        _finish(repo.create(), f"Created repository in {cwd}")
    elif args.command == "add":
        _require_repo(repo)
        _finish(repo.add_file(cwd / args.path), f"Staged {args.path}")
    elif args.command == "commit":
        _require_repo(repo)
        _finish(repo.commit(args.message), "Committed.")
    elif args.command == "push":
        _require_repo(repo)
        remote = args.remote or config.core.remote_name
        _finish(repo.push(remote), f"Pushed to {remote}.")
    elif args.command == "pull":
        _require_repo(repo)
        remote = args.remote or config.core.remote_name
        _finish(repo.pull(remote), f"Pulled from {remote}.")
    elif args.command == "branch":
        _require_repo(repo)
        _finish(repo.create_branch(args.name), f"Switched to new branch {args.name}")
    elif args.command == "switch":
        _require_repo(repo)
        _finish(repo.switch_branch(args.ref), f"Switched to {branch_name(args.ref)}")
    elif args.command == "merge":
        _require_repo(repo)
        _finish(repo.merge_branch(args.ref), f"Merged {args.ref}")
    elif args.command == "branches":
        list_branches(repo)
    elif args.command == "remote":
        _require_repo(repo)
        _finish(
            repo.add_remote(args.name, args.url), f"Remote {args.name} -> {args.url}"
        )
    elif args.command == "remotes":
        list_remotes(repo)
    elif args.command == "tracked":
        _require_repo(repo)
        if repo.has_file(cwd / args.path):
            console.print(f"[green]{args.path} is tracked at HEAD.[/green]")
        else:
            console.print(f"[yellow]{args.path} is not in HEAD.[/yellow]")
            sys.exit(1)


if __name__ == "__main__":
    main()
