# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/transport/interface.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

DataHandler = Callable[[str], None]


@dataclass(frozen=True)
class CommandResult:
    exit_status: int
    stdout: str = ""
    stderr: str = ""


class TargetHost(Protocol):
    """
    Contract for a remote host reachable over one transport.

    A TargetHost is used by one bootstrap run at a time; calls must not be
    issued concurrently against the same instance.
    """

    hostname: str
    user: Optional[str]

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def base_os(self) -> str:
        """'windows', 'linux' or 'other'."""
        ...

    def run_command(self, command: str, data_handler: Optional[DataHandler] = None) -> CommandResult:
        """
        Run *command*, passing each stdout chunk to data_handler as it
        arrives. Chunks are not line aligned.
        """
        ...

    def save_as_remote_file(self, content: str, path: str) -> None: ...

    def temp_dir(self) -> str: ...

    def normalize_path(self, path: str) -> str: ...

    def del_file(self, path: str) -> None: ...
