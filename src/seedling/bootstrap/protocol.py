# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Optional

from seedling.errors import ProtocolConflict, UnsupportedProtocol
from .target import HostTarget

log = logging.getLogger("seedling")

SUPPORTED_PROTOCOLS = ("ssh", "winrm")
DEFAULT_PROTOCOL = "ssh"


def resolve_protocol(
    target: HostTarget,
    cli_protocol: Optional[str] = None,
    configured_protocol: Optional[str] = None,
) -> str:
    """
    Protocol precedence, highest first:
      1. scheme embedded in the host argument (winrm://host)
      2. --protocol
      3. connection_protocol from the persisted config
      4. ssh
    """
    for candidate in (target.protocol, cli_protocol, configured_protocol):
        if candidate:
            return candidate.lower()
    return DEFAULT_PROTOCOL


def validate_protocol(
    target: HostTarget,
    cli_protocol: Optional[str],
    resolved: str,
) -> bool:
    if target.protocol and cli_protocol and target.protocol != cli_protocol.lower():
        raise ProtocolConflict(target.descriptor, cli_protocol)

    if resolved not in SUPPORTED_PROTOCOLS:
        raise UnsupportedProtocol(resolved, SUPPORTED_PROTOCOLS)

    log.debug("Using protocol %s for %s", resolved, target.host)
    return True
