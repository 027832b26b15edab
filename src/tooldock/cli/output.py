"""Output utilities for CLI commands with clear intent.

user_output is for messages meant for a person (stderr); machine_output is
for results another program may consume (stdout).
"""

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)


def user_output(message: str = "") -> None:
    click.echo(message, err=True)


def machine_output(message: str = "") -> None:
    click.echo(message)


class DownloadProgress:
    """Renders streamed download chunks as a rich progress bar on stderr."""

    def __init__(self, description: str, *, enabled: bool = True) -> None:
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=Console(stderr=True),
            disable=not enabled,
            transient=True,
        )
        self._task = self._progress.add_task(description, total=None)

    def __enter__(self) -> "DownloadProgress":
        self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def advance(self, chunk: bytes) -> None:
        self._progress.update(self._task, advance=len(chunk))

    def stage(self, name: str) -> None:
        self._progress.update(self._task, description=name)
