# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from seedling import __version__
from seedling.bootstrap.orchestrator import Bootstrap
from seedling.bootstrap.registration import NullVaultHandler
from seedling.cli.helper import (
    drop_unset,
    parse_hints,
    parse_json_attributes,
    parse_run_list,
    parse_vault_items,
    read_secret,
)
from seedling.config.layered import LayeredConfig
from seedling.config.loader import load_config
from seedling.errors import SeedlingError
from seedling.logging.log import init_logging
from seedling.observers.dispatcher import EventBus
from seedling.observers.jsonfile import JsonFileObserver
from seedling.observers.logger import LoggerObserver
from seedling.ui import UI


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Seedling remote host provisioner")


def _version_callback(value: bool):
    if value:
        typer.echo(f"seedling {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Print the version and exit"
    ),
):
    """Seedling remote host provisioner."""


# ------------------------------------------------------------------------------
# Bootstrap command
# ------------------------------------------------------------------------------

@app.command()
def bootstrap(
    host: Optional[str] = typer.Argument(None, help="[ssh|winrm://][user@]host[:port]"),
    # connection
    protocol: Optional[str] = typer.Option(None, "--protocol", "-o", help="ssh or winrm"),
    connection_user: Optional[str] = typer.Option(None, "--connection-user", "-U"),
    connection_port: Optional[int] = typer.Option(None, "--connection-port", "-p"),
    connection_password: Optional[str] = typer.Option(None, "--connection-password", "-P"),
    # ssh
    ssh_identity_file: Optional[str] = typer.Option(None, "--ssh-identity-file", "-i"),
    ssh_gateway: Optional[str] = typer.Option(None, "--ssh-gateway", "-G", help="[user@]host[:port]"),
    ssh_gateway_identity: Optional[str] = typer.Option(None, "--ssh-gateway-identity"),
    ssh_forward_agent: Optional[bool] = typer.Option(None, "--ssh-forward-agent/--no-ssh-forward-agent"),
    ssh_verify_host_key: Optional[bool] = typer.Option(None, "--ssh-verify-host-key/--no-ssh-verify-host-key"),
    sudo: Optional[bool] = typer.Option(None, "--sudo/--no-sudo"),
    use_sudo_password: Optional[bool] = typer.Option(None, "--use-sudo-password"),
    preserve_home: Optional[bool] = typer.Option(None, "--sudo-preserve-home"),
    # winrm
    winrm_auth_method: Optional[str] = typer.Option(
        None, "--winrm-auth-method", help="negotiate, ntlm, kerberos, plaintext, credssp"
    ),
    winrm_basic_auth_only: Optional[bool] = typer.Option(None, "--winrm-basic-auth-only"),
    winrm_ssl: Optional[bool] = typer.Option(None, "--winrm-ssl/--no-winrm-ssl"),
    winrm_ssl_peer_fingerprint: Optional[str] = typer.Option(None, "--winrm-ssl-peer-fingerprint"),
    winrm_no_verify_cert: Optional[bool] = typer.Option(None, "--winrm-no-verify-cert"),
    ca_trust_file: Optional[str] = typer.Option(None, "--ca-trust-file"),
    kerberos_service: Optional[str] = typer.Option(None, "--kerberos-service"),
    kerberos_realm: Optional[str] = typer.Option(None, "--kerberos-realm"),
    session_timeout: Optional[int] = typer.Option(None, "--session-timeout", help="winrm operation timeout (s)"),
    # node
    node_name: Optional[str] = typer.Option(None, "--node-name", "-N"),
    environment: Optional[str] = typer.Option(None, "--environment", "-E"),
    run_list: Optional[str] = typer.Option(None, "--run-list", "-r", help="Comma separated run list"),
    policy_name: Optional[str] = typer.Option(None, "--policy-name"),
    policy_group: Optional[str] = typer.Option(None, "--policy-group"),
    json_attributes: Optional[str] = typer.Option(None, "--json-attributes", "-j"),
    json_attribute_file: Optional[str] = typer.Option(None, "--json-attribute-file"),
    hint: Optional[List[str]] = typer.Option(None, "--hint", help="NAME[=VALUE], repeatable"),
    secret: Optional[str] = typer.Option(None, "--secret"),
    secret_file: Optional[Path] = typer.Option(None, "--secret-file"),
    vault_item: Optional[List[str]] = typer.Option(None, "--bootstrap-vault-item", help="VAULT:ITEM, repeatable"),
    # template and install
    bootstrap_template: Optional[str] = typer.Option(None, "--bootstrap-template", "-t"),
    bootstrap_proxy: Optional[str] = typer.Option(None, "--bootstrap-proxy"),
    bootstrap_no_proxy: Optional[str] = typer.Option(None, "--bootstrap-no-proxy"),
    bootstrap_url: Optional[str] = typer.Option(None, "--bootstrap-url"),
    bootstrap_install_command: Optional[str] = typer.Option(None, "--bootstrap-install-command"),
    bootstrap_preinstall_command: Optional[str] = typer.Option(None, "--bootstrap-preinstall-command"),
    bootstrap_version: Optional[str] = typer.Option(None, "--bootstrap-version"),
    node_ssl_verify_mode: Optional[str] = typer.Option(None, "--node-ssl-verify-mode", help="none or peer"),
    node_verify_api_cert: Optional[bool] = typer.Option(
        None, "--node-verify-api-cert/--no-node-verify-api-cert"
    ),
    fips: Optional[bool] = typer.Option(None, "--fips/--no-fips"),
    # workstation
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Seedling config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-V"),
):
    """
    Install and start the seedling agent on HOST.
    """
    logger, run_id, log_path = init_logging(verbose=verbose)
    ui = UI()

    try:
        persisted = load_config(config)
    except FileNotFoundError as exc:
        ui.error(str(exc))
        raise typer.Exit(code=1)

    cli_opts = drop_unset(
        {
            "connection_protocol": protocol,
            "connection_user": connection_user,
            "connection_port": connection_port,
            "password": connection_password,
            "ssh_identity_file": ssh_identity_file,
            "ssh_gateway": ssh_gateway,
            "ssh_gateway_identity": ssh_gateway_identity,
            "ssh_forward_agent": ssh_forward_agent,
            "ssh_verify_host_key": ssh_verify_host_key,
            "use_sudo": sudo,
            "use_sudo_password": use_sudo_password,
            "preserve_home": preserve_home,
            "winrm_auth_method": winrm_auth_method,
            "winrm_basic_auth_only": winrm_basic_auth_only,
            "winrm_ssl": winrm_ssl,
            "winrm_ssl_peer_fingerprint": winrm_ssl_peer_fingerprint,
            "winrm_no_verify_cert": winrm_no_verify_cert,
            "ca_trust_file": ca_trust_file,
            "kerberos_service": kerberos_service,
            "kerberos_realm": kerberos_realm,
            "session_timeout": session_timeout,
            "node_name": node_name,
            "environment": environment,
            "run_list": parse_run_list(run_list),
            "policy_name": policy_name,
            "policy_group": policy_group,
            "first_boot_attributes": parse_json_attributes(json_attributes),
            "json_attribute_file": json_attribute_file,
            "hints": parse_hints(hint),
            "bootstrap_vault_item": parse_vault_items(vault_item),
            "bootstrap_template": bootstrap_template,
            "bootstrap_proxy": bootstrap_proxy,
            "bootstrap_no_proxy": bootstrap_no_proxy,
            "bootstrap_url": bootstrap_url,
            "bootstrap_install_command": bootstrap_install_command,
            "bootstrap_preinstall_command": bootstrap_preinstall_command,
            "bootstrap_version": bootstrap_version,
            "node_ssl_verify_mode": node_ssl_verify_mode,
            "node_verify_api_cert": node_verify_api_cert,
            "fips": fips,
        }
    )
    logger.debug("command line options: %s", sorted(k for k in cli_opts if k != "password"))

    layered = LayeredConfig(cli_opts, persisted)
    bus = EventBus(
        observers=[
            LoggerObserver(logger),
            JsonFileObserver(log_path.parent / f"{run_id}.jsonl"),
        ]
    )

    runner = Bootstrap(
        layered,
        [host] if host else [],
        ui=ui,
        logger=logger,
        bus=bus,
        run_id=run_id,
        vault_handler=NullVaultHandler(layered.config_value("bootstrap_vault_item")),
        secret=read_secret(secret, secret_file),
    )

    try:
        runner.run()
    except SeedlingError as exc:
        logger.debug("bootstrap failed", exc_info=True)
        ui.error(str(exc))
        raise typer.Exit(code=1)

    ui.info(f"Bootstrap of {host} complete. Log: {log_path}")


if __name__ == "__main__":
    app()
