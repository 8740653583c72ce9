# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/ui.py

from __future__ import annotations

import logging

import typer

log = logging.getLogger("seedling")


class UI:
    """
    Operator-facing output.

    Streamed remote output goes to stdout and everything else to stderr.
    Every message is mirrored into the run log at debug level.
    """

    def __init__(self, *, color: bool = True):
        self.color = color

    def _style(self, text: str, **kw) -> str:
        return typer.style(text, **kw) if self.color else text

    def bold(self, text: str) -> str:
        return self._style(text, bold=True)

    def info(self, message: str) -> None:
        log.debug("[ui] %s", message)
        typer.echo(message, err=True)

    def msg(self, message: str) -> None:
        log.debug("[ui] %s", message)
        typer.echo(message)

    def warn(self, message: str) -> None:
        log.debug("[ui] WARNING: %s", message)
        typer.echo(f"{self._style('WARNING:', fg=typer.colors.YELLOW)} {message}", err=True)

    def error(self, message: str) -> None:
        log.debug("[ui] ERROR: %s", message)
        typer.echo(f"{self._style('ERROR:', fg=typer.colors.RED)} {message}", err=True)

    def ask(self, question: str, *, secret: bool = False) -> str:
        return typer.prompt(question, hide_input=secret)
