# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/config/models.py

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class SeedlingConfig(BaseModel):
    """Persisted workstation configuration (~/.seedling/config.yaml)."""

    # Agent settings rendered into the remote client.conf
    server_url: str = "https://localhost:443"
    validation_client_name: str = "seedling-validator"
    validation_key: Optional[str] = None
    log_level: Optional[str] = None
    log_location: str = "STDOUT"

    # Files shipped to the node
    trusted_certs_dir: Optional[str] = None
    client_d_dir: Optional[str] = None

    fips: bool = False
    node_ssl_verify_mode: Optional[str] = None

    # System config directory searched for bootstrap/<template>.j2
    config_dir: Optional[str] = None

    # Defaults for bootstrap options, keyed like the CLI options
    # (connection_protocol, ssh_user, winrm_port, bootstrap_template, ...)
    bootstrap: Dict[str, Any] = Field(default_factory=dict)
