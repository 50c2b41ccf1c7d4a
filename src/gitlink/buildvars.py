"""Builtin commands for the build-variable system.

Build scripts call these as `__builtin_<name>::arg1::arg2`. Each command
receives a variable context and the already-split argument list.
"""

import logging
from typing import Protocol

from .constants import APP_NAME, BUILTIN_PREFIX, VARIABLE_DELIMITER

logger = logging.getLogger(APP_NAME)


class Context(Protocol):
    """The key-value store a builtin reads and writes."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...

    def error(self, message: str) -> None: ...


class BuiltinCommand(Protocol):
    def run(self, ctx: Context, args: list[str]) -> bool: ...


class VariableContext:
    """A dictionary-backed context that logs and records errors.

    Attributes:
        variables (dict[str, str]): The stored values.
        errors (list[str]): Every message passed to `error`, in order.
    """

    def __init__(self, variables: dict[str, str] | None = None):
        self.variables: dict[str, str] = dict(variables or {})
        self.errors: list[str] = []

    def get(self, name: str) -> str | None:
        return self.variables.get(name)

    def set(self, name: str, value: str) -> None:
        self.variables[name] = value

    def error(self, message: str) -> None:
        logger.error(message)
        self.errors.append(message)


class PushCommand:
    """Appends a value to a `::`-separated list stored in a variable."""

    usage = "Usage: __builtin_push::variable::value"

    def run(self, ctx: Context, args: list[str]) -> bool:
        """Appends `args[1]` to the variable named `args[0]`.

        Args:
            ctx (Context): The variable store.
            args (list[str]): Exactly [variable, value].

        Returns:
            bool: False (with a usage error reported) on a wrong argument count.
        """
        if len(args) != 2:
            ctx.error(self.usage)
            return False

        name, value = args
        current = ctx.get(name) or ""
        if current:
            current += VARIABLE_DELIMITER
        ctx.set(name, current + value)
        return True


BUILTINS: dict[str, BuiltinCommand] = {
    "push": PushCommand(),
}


def run_builtin(ctx: Context, invocation: str) -> bool:
    """Runs a builtin from its script form, e.g. `__builtin_push::FLAGS::-O2`.

    Args:
        ctx (Context): The variable store passed to the command.
        invocation (str): The builtin token, with or without the prefix.

    Returns:
        bool: The command's result; False for unknown commands.
    """
    name, *args = invocation.split(VARIABLE_DELIMITER)
    if name.startswith(BUILTIN_PREFIX):
        name = name[len(BUILTIN_PREFIX) :]

    command = BUILTINS.get(name)
    if command is None:
        ctx.error(f"Unknown builtin command: {name}")
        return False
    return command.run(ctx, args)
