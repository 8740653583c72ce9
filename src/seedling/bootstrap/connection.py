# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/connection.py

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import paramiko
from winrm.exceptions import InvalidCredentialsError

from seedling.errors import AuthenticationFailure
from seedling.transport.interface import TargetHost
from seedling.ui import UI
from .connection_opts import ConnectionOptions

log = logging.getLogger("seedling")

AUTH_FAILURE_TYPES = (
    paramiko.AuthenticationException,
    InvalidCredentialsError,
    AuthenticationFailure,
)

Connector = Callable[[ConnectionOptions], TargetHost]


def is_auth_failure(exc: BaseException) -> bool:
    """True when exc, or anything it was raised from, is a credential rejection."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, AUTH_FAILURE_TYPES):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTH_FAILED = "auth_failed"
    REAUTHENTICATING = "reauthenticating"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptResult:
    session: Optional[TargetHost] = None
    error: Optional[BaseException] = None

    @property
    def connected(self) -> bool:
        return self.session is not None

    @property
    def auth_failed(self) -> bool:
        return self.error is not None and is_auth_failure(self.error)


class ConnectionManager:
    """
    Opens the session for one bootstrap run.

    A rejected login is retried exactly once with an interactively prompted
    password, and only when no password was part of the first attempt.
    """

    def __init__(
        self,
        connector: Connector,
        ui: UI,
        server_name: str,
        *,
        on_retry: Optional[Callable[[ConnectionOptions], None]] = None,
    ):
        self.connector = connector
        self.ui = ui
        self.server_name = server_name
        self.on_retry = on_retry
        self.state = ConnectionState.DISCONNECTED
        self.history: List[ConnectionState] = [self.state]
        self.session: Optional[TargetHost] = None

    def _transition(self, state: ConnectionState) -> None:
        log.debug("connection %s: %s -> %s", self.server_name, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _attempt(self, opts: ConnectionOptions) -> AttemptResult:
        self._transition(ConnectionState.CONNECTING)
        try:
            session = self.connector(opts)
        except Exception as exc:
            return AttemptResult(error=exc)
        return AttemptResult(session=session)

    def _fail(self, error: BaseException) -> None:
        self._transition(ConnectionState.FAILED)
        raise error

    def _connected(self, result: AttemptResult) -> TargetHost:
        self._transition(ConnectionState.CONNECTED)
        self.session = result.session
        return result.session

    def prompt_password(self, opts: ConnectionOptions) -> str:
        self.ui.warn(f"Failed to authenticate {opts.user} to {self.server_name} - trying password auth")
        return self.ui.ask(f"Enter password for {opts.user}@{self.server_name}", secret=True)

    def connect(self, opts: ConnectionOptions) -> TargetHost:
        self.ui.info(f"Connecting to {self.ui.bold(self.server_name)} using {opts.protocol}")

        result = self._attempt(opts)
        if result.connected:
            return self._connected(result)
        if not result.auth_failed:
            self._fail(result.error)

        self._transition(ConnectionState.AUTH_FAILED)
        # never resubmit a password that was just rejected
        if opts.password:
            self._fail(result.error)

        self._transition(ConnectionState.REAUTHENTICATING)
        retry_opts = opts.with_password(self.prompt_password(opts))
        if self.on_retry:
            self.on_retry(retry_opts)

        result = self._attempt(retry_opts)
        if result.connected:
            return self._connected(result)
        self._fail(result.error)
