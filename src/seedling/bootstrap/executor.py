# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Callable, List

from seedling.errors import RemoteExecutionFailure
from seedling.transport.interface import CommandResult, TargetHost
from seedling.ui import UI

log = logging.getLogger("seedling")


class LineBuffer:
    """
    Reassembles streamed output chunks into whole lines.

    Chunks arrive as the transport delivers them and may split a line
    anywhere; emit() is called once per complete line.
    """

    def __init__(self, emit: Callable[[str], None]):
        self.emit = emit
        self._pending = ""

    def feed(self, chunk: str) -> None:
        data = (self._pending + chunk).replace("\r\n", "\n")
        lines: List[str] = data.split("\n")
        self._pending = lines.pop()
        for line in lines:
            self.emit(line)

    def flush(self) -> None:
        if self._pending:
            self.emit(self._pending)
            self._pending = ""


class BootstrapExecutor:
    def __init__(self, target: TargetHost, ui: UI):
        self.target = target
        self.ui = ui

    @property
    def windows(self) -> bool:
        return self.target.base_os() == "windows"

    def script_name(self) -> str:
        return "bootstrap.bat" if self.windows else "bootstrap.sh"

    def upload(self, content: str) -> str:
        remote_path = self.target.normalize_path(f"{self.target.temp_dir()}/{self.script_name()}")
        log.debug("Uploading bootstrap script to %s:%s", self.target.hostname, remote_path)
        self.target.save_as_remote_file(content, remote_path)
        return remote_path

    def bootstrap_command(self, remote_path: str) -> str:
        if self.windows:
            return f"cmd.exe /C {remote_path}"
        return f"sh {remote_path}"

    def perform(self, remote_path: str) -> CommandResult:
        hostname = self.target.hostname
        self.ui.info(f"Bootstrapping {self.ui.bold(hostname)}")
        cmd = self.bootstrap_command(remote_path)

        prefix = f" [{hostname}]"
        lines = LineBuffer(lambda line: self.ui.msg(f"{prefix} {line}"))
        result = self.target.run_command(cmd, lines.feed)
        lines.flush()

        if result.exit_status != 0:
            self.ui.error(f"The following error occurred on {hostname}:")
            self.ui.error(result.stderr or f"exit status {result.exit_status}")
            raise RemoteExecutionFailure(hostname, result.exit_status, result.stderr)
        return result

    def cleanup(self, remote_path: str) -> None:
        log.debug("Removing %s from %s", remote_path, self.target.hostname)
        self.target.del_file(remote_path)
