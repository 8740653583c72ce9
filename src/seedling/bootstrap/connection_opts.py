# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/connection_opts.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from seedling.config.layered import LayeredConfig
from seedling.errors import InvalidGateway

log = logging.getLogger("seedling")

SSH_ONLY_KEYS = frozenset({
    "key_files",
    "keys_only",
    "verify_host_key",
    "bastion_host",
    "bastion_user",
    "bastion_port",
    "sudo",
    "sudo_password",
    "sudo_options",
    "forward_agent",
})

WINRM_ONLY_KEYS = frozenset({
    "self_signed",
    "winrm_transport",
    "winrm_basic_auth_only",
    "ssl",
    "ssl_peer_fingerprint",
    "ca_trust_file",
    "kerberos_service",
    "kerberos_realm",
    "operation_timeout",
})

_GATEWAY_RE = re.compile(r"^(?:(?P<user>[^@]+)@)?(?P<host>[^:@]+)(?::(?P<port>\d+))?$")


@dataclass(frozen=True)
class ConnectionOptions:
    """
    Option bundle handed to a transport, tagged with the protocol it targets.
    """

    protocol: str
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        foreign = SSH_ONLY_KEYS if self.protocol == "winrm" else WINRM_ONLY_KEYS
        leaked = foreign & set(self.options)
        if leaked:
            raise ValueError(
                f"{self.protocol} options must not carry {', '.join(sorted(leaked))}"
            )

    def __getitem__(self, key: str) -> Any:
        return self.options[key]

    def __contains__(self, key: str) -> bool:
        return key in self.options

    def get(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    @property
    def password(self) -> Optional[str]:
        return self.options.get("password")

    @property
    def user(self) -> Optional[str]:
        return self.options.get("user")

    def with_password(self, password: str) -> "ConnectionOptions":
        return ConnectionOptions(self.protocol, {**self.options, "password": password})


def parse_gateway(value: str) -> Tuple[Optional[str], str, Optional[int]]:
    """
    Split "[user@]host[:port]" into (user, host, port).

    >>> parse_gateway("testuser@gateway:9021")
    ('testuser', 'gateway', 9021)
    >>> parse_gateway("gateway")
    (None, 'gateway', None)
    """
    m = _GATEWAY_RE.match(value.strip())
    if not m:
        raise InvalidGateway(f"Invalid ssh gateway '{value}', expected [user@]host[:port]")
    port = m.group("port")
    return m.group("user"), m.group("host"), int(port) if port else None


def merge_option_groups(*groups: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for group in groups:
        clash = set(merged) & set(group)
        if clash:
            raise ValueError(f"Connection option groups overlap on {', '.join(sorted(clash))}")
        merged.update(group)
    return merged


class ConnectionOptionBuilder:
    """
    Builds the option bundle for one protocol out of a LayeredConfig.

    Every *_opts method is pure and returns only the keys its group owns, so
    the groups merge without overwriting one another.
    """

    def __init__(self, config: LayeredConfig, protocol: str, logger: Optional[logging.Logger] = None):
        self.config = config
        self.protocol = protocol
        self.logger = logger or log

    @property
    def ssh(self) -> bool:
        return self.protocol == "ssh"

    @property
    def winrm(self) -> bool:
        return self.protocol == "winrm"

    def base_opts(self) -> Dict[str, Any]:
        port = self.config.config_value("connection_port", f"{self.protocol}_port")
        user = self.config.config_value("connection_user", f"{self.protocol}_user")
        # None lets the transport pick its own default (22, 5985, current user)
        opts: Dict[str, Any] = {
            "user": user,
            "port": int(port) if port is not None else None,
            "logger": self.logger,
        }
        password = self.config.config_value("password")
        if password:
            opts["password"] = password
        return opts

    def ssh_identity_opts(self) -> Dict[str, Any]:
        if not self.ssh:
            return {}
        identity_file = self.config.config_value("ssh_identity_file")
        gateway_identity = self.config.config_value("ssh_gateway_identity")
        key_files = [k for k in (identity_file, gateway_identity) if k]
        return {
            "key_files": key_files,
            "keys_only": bool(identity_file),
        }

    def host_verify_opts(self) -> Dict[str, Any]:
        if self.winrm:
            return {"self_signed": bool(self.config.config_value("winrm_no_verify_cert", default=False))}
        if self.ssh:
            return {"verify_host_key": bool(self.config.config_value("ssh_verify_host_key", default=True))}
        return {}

    def gateway_opts(self) -> Dict[str, Any]:
        if not self.ssh:
            return {}
        gateway = self.config.config_value("ssh_gateway")
        if not gateway:
            return {}
        user, host, port = parse_gateway(gateway)
        return {
            "bastion_user": user,
            "bastion_host": host,
            "bastion_port": port,
        }

    def sudo_opts(self) -> Dict[str, Any]:
        if not self.ssh:
            return {}
        # use_sudo off means every other sudo setting is ignored
        if not self.config.config_value("use_sudo", default=False):
            return {"sudo": False}

        opts: Dict[str, Any] = {"sudo": True}
        password = self.config.config_value("password")
        if self.config.config_value("use_sudo_password", default=False) and password:
            opts["sudo_password"] = password
        if self.config.config_value("preserve_home", default=False):
            opts["sudo_options"] = "-H"
        return opts

    def ssh_opts(self) -> Dict[str, Any]:
        if not self.ssh:
            return {}
        return {"forward_agent": bool(self.config.config_value("ssh_forward_agent", default=False))}

    def winrm_opts(self) -> Dict[str, Any]:
        if not self.winrm:
            return {}

        auth_method = self.config.config_value("winrm_auth_method")
        opts: Dict[str, Any] = {
            "winrm_transport": auth_method or "negotiate",
            "winrm_basic_auth_only": bool(self.config.config_value("winrm_basic_auth_only", default=False)),
            "ssl": bool(self.config.config_value("winrm_ssl", default=False)),
            "ssl_peer_fingerprint": self.config.config_value("winrm_ssl_peer_fingerprint"),
            "operation_timeout": int(self.config.config_value("session_timeout", default=30)),
        }

        ca_trust_file = self.config.config_value("ca_trust_file")
        if ca_trust_file:
            opts["ca_trust_file"] = ca_trust_file

        if auth_method == "kerberos":
            opts["winrm_transport"] = "kerberos"
            opts["kerberos_service"] = self.config.config_value("kerberos_service")
            opts["kerberos_realm"] = self.config.config_value("kerberos_realm")

        return opts

    def connection_opts(self) -> ConnectionOptions:
        merged = merge_option_groups(
            self.base_opts(),
            self.ssh_identity_opts(),
            self.host_verify_opts(),
            self.gateway_opts(),
            self.sudo_opts(),
            self.ssh_opts(),
            self.winrm_opts(),
        )
        self.logger.debug(
            "connection options for %s: %s",
            self.protocol,
            sorted(k for k in merged if k not in ("password", "sudo_password")),
        )
        return ConnectionOptions(self.protocol, merged)
