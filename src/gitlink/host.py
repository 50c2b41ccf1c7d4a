"""The collaborator interface GitLink expects from its host editor."""

import logging
from pathlib import Path
from typing import Any, Protocol

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class HostBridge(Protocol):
    """Services the host editor provides to the repository facade and plugin."""

    def working_directory(self) -> Path: ...

    def refresh_tree(self) -> None: ...

    def rescan_files(self) -> None: ...

    def set_busy(self, busy: bool) -> None: ...

    def report_error(self, error: BaseException) -> None: ...

    def show_message(self, title: str, message: str) -> None: ...

    def prompt(self, title: str, message: str, default: str = "") -> str | None: ...

    def load_icon(self, name: str) -> Any: ...


class NullHost:
    """A headless host that only logs. Prompts are always cancelled.

    Attributes:
        path (Path): The working directory reported to the facade.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def working_directory(self) -> Path:
        return self.path

    def refresh_tree(self) -> None:
        pass

    def rescan_files(self) -> None:
        pass

    def set_busy(self, busy: bool) -> None:
        pass

    def report_error(self, error: BaseException) -> None:
        logger.debug(f"Host notified of error: {error}")

    def show_message(self, title: str, message: str) -> None:
        logger.warning(f"{title}: {message}")

    def prompt(self, title: str, message: str, default: str = "") -> str | None:
        return None

    def load_icon(self, name: str) -> Any:
        return name
