from __future__ import annotations

import logging
from typing import Protocol

import typer

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class ConsoleNotifier:
    """Prints mutation outcomes: successes to stdout, failures to stderr."""

    def success(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.GREEN)

    def error(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.RED, err=True)


class LogNotifier:
    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)
