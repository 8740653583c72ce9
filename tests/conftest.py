from pathlib import Path
from typing import List, Optional

import pytest

from seedling.transport.interface import CommandResult

DATA_DIR = Path(__file__).parent / "data"


class FakeUI:
    """Records operator output instead of printing it."""

    def __init__(self, answers=None):
        self.calls = []
        self.answers = list(answers or [])

    def bold(self, text):
        return text

    def info(self, message):
        self.calls.append(("info", message))

    def msg(self, message):
        self.calls.append(("msg", message))

    def warn(self, message):
        self.calls.append(("warn", message))

    def error(self, message):
        self.calls.append(("error", message))

    def ask(self, question, *, secret=False):
        self.calls.append(("ask", question, secret))
        return self.answers.pop(0)

    def of(self, kind) -> List[str]:
        return [c[1] for c in self.calls if c[0] == kind]


class FakeTarget:
    """In-memory TargetHost."""

    def __init__(
        self,
        hostname="node1.example.com",
        os_name="linux",
        chunks=None,
        exit_status=0,
        stderr="",
        temp_dir="/tmp/seedling.abc123",
    ):
        self.hostname = hostname
        self.user = "root"
        self._os = os_name
        self._chunks = list(chunks or [])
        self._exit_status = exit_status
        self._stderr = stderr
        self._temp_dir = temp_dir
        self.files = {}
        self.commands = []
        self.deleted = []
        self.closed = False

    def connect(self):
        pass

    def close(self):
        self.closed = True

    def base_os(self):
        return self._os

    def run_command(self, command, data_handler=None):
        self.commands.append(command)
        for chunk in self._chunks:
            if data_handler:
                data_handler(chunk)
        return CommandResult(self._exit_status, "".join(self._chunks), self._stderr)

    def save_as_remote_file(self, content, path):
        self.files[path] = content

    def temp_dir(self):
        return self._temp_dir

    def normalize_path(self, path):
        if self._os == "windows":
            return path.replace("/", "\\")
        return path

    def del_file(self, path):
        self.deleted.append(path)


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def ui() -> FakeUI:
    return FakeUI()
