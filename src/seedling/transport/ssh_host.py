# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/transport/ssh_host.py

from __future__ import annotations

import codecs
import getpass
import logging
import posixpath
import shlex
import time
from typing import List, Optional

import paramiko

from seedling.bootstrap.connection_opts import ConnectionOptions
from seedling.errors import AuthenticationFailure, TransportError
from .interface import CommandResult, DataHandler

log = logging.getLogger("seedling")

DEFAULT_SSH_PORT = 22
NO_AUTH_METHODS = "No authentication methods available"


class SshTargetHost:
    """
    paramiko-backed TargetHost.

    Handles bastion traversal (direct-tcpip channel through the gateway),
    sudo wrapping, agent forwarding and SFTP uploads.
    """

    def __init__(
        self,
        hostname: str,
        opts: ConnectionOptions,
        *,
        connect_timeout: float = 30.0,
        poll_interval: float = 0.05,
    ):
        self.hostname = hostname
        self.opts = opts
        self.user = opts.user or getpass.getuser()
        self.port = opts.get("port") or DEFAULT_SSH_PORT
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval

        self._client: Optional[paramiko.SSHClient] = None
        self._gateway: Optional[paramiko.SSHClient] = None
        self._temp_dir: Optional[str] = None
        self._base_os: Optional[str] = None

    # ------------------ connection ------------------

    def _new_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        if self.opts.get("verify_host_key", True):
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def _auth_kwargs(self) -> dict:
        key_files: List[str] = list(self.opts.get("key_files") or [])
        keys_only = bool(self.opts.get("keys_only"))
        return {
            "key_filename": key_files or None,
            "password": self.opts.password,
            "look_for_keys": not keys_only,
            "allow_agent": not keys_only,
            "timeout": self.connect_timeout,
        }

    def _open_gateway_channel(self) -> paramiko.Channel:
        bastion_host = self.opts["bastion_host"]
        bastion_port = self.opts.get("bastion_port") or DEFAULT_SSH_PORT
        bastion_user = self.opts.get("bastion_user") or self.user
        log.debug("Connecting to gateway %s@%s:%s", bastion_user, bastion_host, bastion_port)

        self._gateway = self._new_client()
        self._gateway.connect(
            hostname=bastion_host,
            port=bastion_port,
            username=bastion_user,
            key_filename=list(self.opts.get("key_files") or []) or None,
            timeout=self.connect_timeout,
        )
        return self._gateway.get_transport().open_channel(
            "direct-tcpip",
            (self.hostname, self.port),
            ("127.0.0.1", 0),
        )

    def connect(self) -> None:
        client: Optional[paramiko.SSHClient] = None
        try:
            sock = self._open_gateway_channel() if self.opts.get("bastion_host") else None
            client = self._new_client()
            log.debug("Connecting to %s@%s:%s", self.user, self.hostname, self.port)
            client.connect(
                hostname=self.hostname,
                port=self.port,
                username=self.user,
                sock=sock,
                **self._auth_kwargs(),
            )
        except Exception as exc:
            if client is not None:
                client.close()
            self.close()
            # paramiko gives up with a plain SSHException when it has nothing to offer
            if isinstance(exc, paramiko.SSHException) and str(exc) == NO_AUTH_METHODS:
                raise AuthenticationFailure(
                    f"No usable credentials for {self.user}@{self.hostname}"
                ) from exc
            raise
        self._client = client

    def close(self) -> None:
        try:
            if self._client:
                self._client.close()
        finally:
            self._client = None
            if self._gateway:
                self._gateway.close()
                self._gateway = None

    @property
    def client(self) -> paramiko.SSHClient:
        if self._client is None:
            raise TransportError(f"Not connected to {self.hostname}")
        return self._client

    # ------------------ commands ------------------

    def _wrap(self, command: str) -> str:
        if not self.opts.get("sudo"):
            return command
        parts = ["sudo"]
        if self.opts.get("sudo_options"):
            parts.append(self.opts["sudo_options"])
        # -n fails fast instead of hanging on a password prompt
        parts += ["-S", "-p", "''"] if self.opts.get("sudo_password") else ["-n"]
        return " ".join(parts) + " sh -c " + shlex.quote(command)

    def _exec(
        self,
        command: str,
        data_handler: Optional[DataHandler] = None,
        *,
        stdin: Optional[str] = None,
    ) -> CommandResult:
        chan = self.client.get_transport().open_session()
        if self.opts.get("forward_agent"):
            paramiko.agent.AgentRequestHandler(chan)
        log.debug("exec on %s: %s", self.hostname, command)
        chan.exec_command(command)
        if stdin is not None:
            chan.sendall(stdin)

        out_dec = codecs.getincrementaldecoder("utf-8")(errors="replace")
        err_dec = codecs.getincrementaldecoder("utf-8")(errors="replace")
        out: List[str] = []
        err: List[str] = []

        while True:
            idle = True
            if chan.recv_ready():
                chunk = out_dec.decode(chan.recv(32768))
                idle = False
                if chunk:
                    out.append(chunk)
                    if data_handler:
                        data_handler(chunk)
            if chan.recv_stderr_ready():
                err.append(err_dec.decode(chan.recv_stderr(32768)))
                idle = False
            if idle and chan.exit_status_ready() and not chan.recv_ready() and not chan.recv_stderr_ready():
                break
            if idle:
                time.sleep(self.poll_interval)

        tail = out_dec.decode(b"", final=True)
        if tail:
            out.append(tail)
            if data_handler:
                data_handler(tail)
        err.append(err_dec.decode(b"", final=True))

        rc = chan.recv_exit_status()
        chan.close()
        return CommandResult(exit_status=rc, stdout="".join(out), stderr="".join(err))

    def run_command(self, command: str, data_handler: Optional[DataHandler] = None) -> CommandResult:
        # sudo -S reads the password from stdin
        password = self.opts.get("sudo_password") if self.opts.get("sudo") else None
        return self._exec(
            self._wrap(command),
            data_handler,
            stdin=password + "\n" if password else None,
        )

    # ------------------ files ------------------

    def base_os(self) -> str:
        if self._base_os is None:
            result = self._exec("uname -s")
            if result.exit_status == 0:
                self._base_os = "linux" if result.stdout.strip().lower() == "linux" else "other"
            else:
                # OpenSSH on Windows lands in cmd.exe
                ver = self._exec("cmd.exe /c ver")
                self._base_os = "windows" if "windows" in ver.stdout.lower() else "other"
        return self._base_os

    def temp_dir(self) -> str:
        if self._temp_dir is None:
            result = self._exec("mktemp -d /tmp/seedling.XXXXXX")
            if result.exit_status != 0:
                raise TransportError(f"Could not create a temp dir on {self.hostname}: {result.stderr.strip()}")
            self._temp_dir = result.stdout.strip()
        return self._temp_dir

    def normalize_path(self, path: str) -> str:
        return posixpath.normpath(path)

    def save_as_remote_file(self, content: str, path: str) -> None:
        sftp = self.client.open_sftp()
        try:
            with sftp.open(path, "w") as f:
                f.write(content)
        finally:
            sftp.close()

    def del_file(self, path: str) -> None:
        result = self._exec(f"rm -f {shlex.quote(path)}")
        if result.exit_status != 0:
            raise TransportError(f"Could not delete {path} on {self.hostname}: {result.stderr.strip()}")
