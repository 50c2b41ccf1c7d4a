"""GitLink: Git integration for editor project trees.

This package provides the repository command facade, the working-tree status
and icon cache, the editor plugin adapter, a command-line front end, and the
build-variable accumulator used by the editor's build system.
"""

from . import (
    buildvars,
    cli,
    config,
    constants,
    git_wrapper,
    host,
    plugin,
    repository,
    status,
)

__all__ = [
    "buildvars",
    "cli",
    "config",
    "constants",
    "git_wrapper",
    "host",
    "plugin",
    "repository",
    "status",
]
