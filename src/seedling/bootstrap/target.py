# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/target.py

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from seedling.errors import MissingHostArgument

_SCHEME_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://(?P<rest>.*)$")


@dataclass(frozen=True)
class HostTarget:
    """
    A host argument as given on the command line:

        [protocol://][user@]host[:port]

    IPv6 literals must be bracketed when a port is given ([::1]:22).
    """

    descriptor: str
    host: str
    protocol: Optional[str] = None
    user: Optional[str] = None
    port: Optional[int] = None

    @classmethod
    def parse(cls, descriptor: Optional[str]) -> "HostTarget":
        if not descriptor or not descriptor.strip():
            raise MissingHostArgument("You must pass an FQDN or ip address to bootstrap")
        descriptor = descriptor.strip()

        protocol = None
        rest = descriptor
        m = _SCHEME_RE.match(descriptor)
        if m:
            protocol = m.group("scheme").lower()
            rest = m.group("rest")

        rest = rest.rstrip("/")
        user = None
        if "@" in rest:
            user, rest = rest.rsplit("@", 1)
            user = user or None

        host, port = _split_host_port(rest)
        if not host:
            raise MissingHostArgument(f"No host name found in '{descriptor}'")

        return cls(descriptor=descriptor, host=host, protocol=protocol, user=user, port=port)


def _split_host_port(value: str) -> tuple[str, Optional[int]]:
    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            return value, None
        host = value[1:end]
        tail = value[end + 1:]
        if tail.startswith(":") and tail[1:].isdigit():
            return host, int(tail[1:])
        return host, None

    # bare IPv6 without brackets carries no port
    if value.count(":") == 1:
        host, port = value.split(":", 1)
        if port.isdigit():
            return host, int(port)
    return value, None
