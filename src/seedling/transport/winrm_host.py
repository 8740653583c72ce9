# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/transport/winrm_host.py

from __future__ import annotations

import base64
import codecs
import hashlib
import logging
import ntpath
import ssl
from typing import List, Optional

import winrm
from winrm.exceptions import WinRMOperationTimeoutError

from seedling.bootstrap.connection_opts import ConnectionOptions
from seedling.errors import TransportError
from .interface import CommandResult, DataHandler

log = logging.getLogger("seedling")

HTTP_PORT = 5985
HTTPS_PORT = 5986

# raw bytes per upload round trip; keeps the encoded command under cmd.exe's 8191 limit
UPLOAD_CHUNK = 1800


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def encode_powershell(script: str) -> str:
    encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
    return f"powershell.exe -NoProfile -NonInteractive -EncodedCommand {encoded}"


def normalize_fingerprint(value: str) -> str:
    return value.replace(":", "").replace(" ", "").upper()


class WinrmTargetHost:
    """pywinrm-backed TargetHost."""

    def __init__(self, hostname: str, opts: ConnectionOptions):
        self.hostname = hostname
        self.opts = opts
        self.user = opts.user
        self.ssl = bool(opts.get("ssl"))
        self.port = opts.get("port") or (HTTPS_PORT if self.ssl else HTTP_PORT)

        self._protocol: Optional[winrm.Protocol] = None
        self._shell_id: Optional[str] = None
        self._temp_dir: Optional[str] = None

    @property
    def endpoint(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.hostname}:{self.port}/wsman"

    @property
    def transport(self) -> str:
        if self.opts.get("winrm_basic_auth_only"):
            return "basic"
        return self.opts.get("winrm_transport") or "negotiate"

    def _username(self) -> Optional[str]:
        realm = self.opts.get("kerberos_realm")
        if self.transport == "kerberos" and realm and self.user and "@" not in self.user:
            return f"{self.user}@{realm}"
        return self.user

    def verify_fingerprint(self, expected: str) -> None:
        pem = ssl.get_server_certificate((self.hostname, self.port))
        actual = hashlib.sha1(ssl.PEM_cert_to_DER_cert(pem)).hexdigest().upper()
        if actual != normalize_fingerprint(expected):
            raise TransportError(
                f"SSL peer fingerprint mismatch for {self.hostname}: expected {expected}, got {actual}"
            )

    def connect(self) -> None:
        fingerprint = self.opts.get("ssl_peer_fingerprint")
        if self.ssl and fingerprint:
            self.verify_fingerprint(fingerprint)

        # a pinned fingerprint replaces CA validation
        validate = not (self.opts.get("self_signed") or fingerprint)
        timeout = int(self.opts.get("operation_timeout") or 30)
        kwargs = {
            "endpoint": self.endpoint,
            "transport": self.transport,
            "username": self._username(),
            "password": self.opts.password,
            "server_cert_validation": "validate" if validate else "ignore",
            "operation_timeout_sec": timeout,
            "read_timeout_sec": timeout + 10,
        }
        if self.opts.get("ca_trust_file"):
            kwargs["ca_trust_path"] = self.opts["ca_trust_file"]
        if self.transport == "kerberos":
            kwargs["service"] = self.opts.get("kerberos_service") or "HTTP"
            kwargs["realm"] = self.opts.get("kerberos_realm")

        log.debug("Opening WinRM shell on %s via %s", self.endpoint, self.transport)
        protocol = winrm.Protocol(**kwargs)
        # open_shell is the first authenticated request
        self._shell_id = protocol.open_shell()
        self._protocol = protocol

    def close(self) -> None:
        if self._protocol and self._shell_id:
            try:
                self._protocol.close_shell(self._shell_id)
            finally:
                self._protocol = None
                self._shell_id = None

    @property
    def protocol(self) -> winrm.Protocol:
        if self._protocol is None:
            raise TransportError(f"Not connected to {self.hostname}")
        return self._protocol

    def _poll_output(self, command_id: str):
        # pywinrm >= 0.5 exposes the raw poll publicly
        poll = getattr(self.protocol, "get_command_output_raw", None) or self.protocol._raw_get_command_output
        return poll(self._shell_id, command_id)

    def run_command(self, command: str, data_handler: Optional[DataHandler] = None) -> CommandResult:
        log.debug("exec on %s: %s", self.hostname, command[:200])
        command_id = self.protocol.run_command(self._shell_id, command)
        out_dec = codecs.getincrementaldecoder("utf-8")(errors="replace")
        out: List[str] = []
        err: List[bytes] = []
        rc = -1
        try:
            done = False
            while not done:
                try:
                    stdout, stderr, rc, done = self._poll_output(command_id)
                except WinRMOperationTimeoutError:
                    # long running command, nothing new yet
                    continue
                chunk = out_dec.decode(stdout, final=done)
                if chunk:
                    out.append(chunk)
                    if data_handler:
                        data_handler(chunk)
                err.append(stderr)
        finally:
            self.protocol.cleanup_command(self._shell_id, command_id)

        return CommandResult(
            exit_status=rc,
            stdout="".join(out),
            stderr=b"".join(err).decode("utf-8", errors="replace"),
        )

    def run_powershell(self, script: str) -> CommandResult:
        return self.run_command(encode_powershell(script))

    def _checked_powershell(self, script: str, action: str) -> CommandResult:
        result = self.run_powershell(script)
        if result.exit_status != 0:
            raise TransportError(f"Could not {action} on {self.hostname}: {result.stderr.strip()}")
        return result

    def base_os(self) -> str:
        return "windows"

    def temp_dir(self) -> str:
        if self._temp_dir is None:
            result = self._checked_powershell(
                "$d = Join-Path $env:TEMP ('seedling-' + [guid]::NewGuid().ToString('N')); "
                "New-Item -ItemType Directory -Path $d | Out-Null; Write-Output $d",
                "create a temp dir",
            )
            self._temp_dir = result.stdout.strip()
        return self._temp_dir

    def normalize_path(self, path: str) -> str:
        return ntpath.normpath(path.replace("/", "\\"))

    def save_as_remote_file(self, content: str, path: str) -> None:
        data = content.encode("utf-8")
        target = _ps_quote(path)
        self._checked_powershell(
            f"[System.IO.File]::WriteAllBytes({target}, [byte[]]@())",
            f"create {path}",
        )
        for offset in range(0, len(data), UPLOAD_CHUNK):
            chunk = base64.b64encode(data[offset:offset + UPLOAD_CHUNK]).decode("ascii")
            self._checked_powershell(
                f"$b = [System.Convert]::FromBase64String('{chunk}'); "
                f"$f = [System.IO.File]::Open({target}, 'Append'); "
                "$f.Write($b, 0, $b.Length); $f.Close()",
                f"upload {path}",
            )

    def del_file(self, path: str) -> None:
        self._checked_powershell(
            f"Remove-Item -Force -LiteralPath {_ps_quote(path)} -ErrorAction SilentlyContinue; exit 0",
            f"delete {path}",
        )
