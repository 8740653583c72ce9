# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/registration.py

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import paramiko

log = logging.getLogger("seedling")


@dataclass(frozen=True)
class Client:
    name: str
    public_key: str


class ClientBuilder(Protocol):
    """Materializes the node's client identity on the workstation."""

    client: Optional[Client]
    client_path: Optional[str]

    def run(self) -> None: ...


class VaultHandler(Protocol):
    def doing_vault(self) -> bool: ...

    def run(self, client: Optional[Client]) -> None: ...


class LocalKeyClientBuilder:
    """
    Generates an RSA key pair for the node and writes the private half to a
    workstation temp dir; the bootstrap script ships it as client.pem.
    """

    def __init__(self, node_name: Optional[str], *, key_dir: Optional[Path] = None, bits: int = 2048):
        self.node_name = node_name
        self.key_dir = key_dir
        self.bits = bits
        self.client: Optional[Client] = None
        self.client_path: Optional[str] = None

    def run(self) -> None:
        key_dir = self.key_dir or Path(tempfile.mkdtemp(prefix="seedling-"))
        key_dir.mkdir(parents=True, exist_ok=True)
        key_path = key_dir / f"{self.node_name}.pem"

        log.debug("Generating %d bit client key for %s", self.bits, self.node_name)
        key = paramiko.RSAKey.generate(self.bits)
        key.write_private_key_file(str(key_path))

        self.client = Client(name=self.node_name, public_key=f"{key.get_name()} {key.get_base64()}")
        self.client_path = str(key_path)


class NullVaultHandler:
    """Used when no vault items were requested."""

    def __init__(self, items: Optional[Dict[str, List[str]]] = None):
        self.items = items or {}

    def doing_vault(self) -> bool:
        return False

    def run(self, client: Optional[Client]) -> None:
        if self.items:
            log.warning("Vault items %s requested but no vault handler is configured", sorted(self.items))
