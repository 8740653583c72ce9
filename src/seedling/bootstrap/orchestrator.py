# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/orchestrator.py

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import paramiko
from winrm.exceptions import WinRMError, WinRMTransportError

from seedling.config.layered import LayeredConfig
from seedling.errors import (
    AttributeInputConflict,
    InvalidAttributes,
    MissingHostArgument,
    MissingNodeName,
    PolicyOptionConflict,
    RemoteExecutionFailure,
    SeedlingError,
    WinrmTransportConflict,
)
from seedling.observers.dispatcher import EventBus
from seedling.observers.events import (
    AuthenticationRetried,
    BootstrapFailed,
    BootstrapStarted,
    BootstrapSucceeded,
    ConnectionOpened,
    ScriptUploaded,
    new_ctx,
)
from seedling.transport.factory import apply_descriptor, open_target_host
from seedling.transport.interface import TargetHost
from seedling.ui import UI

from .connection import ConnectionManager
from .connection_opts import ConnectionOptionBuilder, ConnectionOptions
from .context import BootstrapContext, WindowsBootstrapContext
from .executor import BootstrapExecutor
from .protocol import resolve_protocol, validate_protocol
from .registration import ClientBuilder, LocalKeyClientBuilder, NullVaultHandler, VaultHandler
from .renderer import render_template
from .target import HostTarget
from .templates import TemplateLocator, default_template_name

log = logging.getLogger("seedling")

TargetFactory = Callable[[HostTarget, ConnectionOptions], TargetHost]

# transport failures seen while tidying up the remote side
CLEANUP_ERRORS = (SeedlingError, paramiko.SSHException, WinRMError, WinRMTransportError, OSError)


class Bootstrap:
    """
    One bootstrap run against one host.

    run() validates every input before touching the network or registering
    anything, then connects, renders, uploads and executes the script, and
    always removes the uploaded script once it has been created.
    """

    def __init__(
        self,
        config: LayeredConfig,
        host_args: Optional[List[str]],
        *,
        ui: Optional[UI] = None,
        logger: Optional[logging.Logger] = None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        client_builder: Optional[ClientBuilder] = None,
        vault_handler: Optional[VaultHandler] = None,
        target_factory: TargetFactory = open_target_host,
        locator: Optional[TemplateLocator] = None,
        secret: Optional[str] = None,
    ):
        self.config = config
        self.host_args = host_args or []
        self.ui = ui or UI()
        self.logger = logger or log
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.target_factory = target_factory
        self.locator = locator or TemplateLocator(config_dir=config.persisted.config_dir)
        self.secret = secret

        self._client_builder = client_builder
        self._vault_handler = vault_handler
        self._target: Optional[HostTarget] = None
        self._bootstrap_context: Optional[BootstrapContext] = None
        self._first_boot_attributes: Optional[Dict[str, Any]] = None
        self._connection_opts: Optional[ConnectionOptions] = None
        self.connection: Optional[TargetHost] = None

    # ------------------ lookups ------------------

    @property
    def host_descriptor(self) -> Optional[str]:
        return self.host_args[0] if self.host_args else None

    @property
    def target(self) -> HostTarget:
        if self._target is None:
            self._target = HostTarget.parse(self.host_descriptor)
        return self._target

    @property
    def server_name(self) -> str:
        return self.target.host

    @property
    def connection_protocol(self) -> str:
        return resolve_protocol(
            self.target,
            self.config.cli("connection_protocol"),
            self.config.persisted.bootstrap.get("connection_protocol"),
        )

    @property
    def winrm(self) -> bool:
        return self.connection_protocol == "winrm"

    @property
    def client_builder(self) -> ClientBuilder:
        if self._client_builder is None:
            self._client_builder = LocalKeyClientBuilder(self.config.config_value("node_name"))
        return self._client_builder

    @property
    def vault_handler(self) -> VaultHandler:
        if self._vault_handler is None:
            self._vault_handler = NullVaultHandler(self.config.config_value("bootstrap_vault_item"))
        return self._vault_handler

    def _event(self, cls, **fields):
        self.bus.emit(cls(**new_ctx(self.server_name, self.run_id), **fields))

    # ------------------ validation ------------------

    def validate_name_args(self) -> None:
        if not self.host_descriptor:
            raise MissingHostArgument("You must pass an FQDN or ip address to bootstrap")
        self.target

    def validate_protocol(self) -> bool:
        return validate_protocol(
            self.target,
            self.config.cli("connection_protocol"),
            self.connection_protocol,
        )

    def validate_first_boot_attributes(self) -> None:
        if self.config.config_value("first_boot_attributes") and self.config.config_value("json_attribute_file"):
            raise AttributeInputConflict(
                "You cannot pass both --json-attributes and --json-attribute-file."
            )
        self.first_boot_attributes()

    def _validatorless(self) -> bool:
        key = self.config.persisted.validation_key
        return not key or not Path(key).expanduser().is_file()

    def validate_winrm_transport_opts(self) -> bool:
        if not self.winrm:
            return True
        auth_method = self.config.config_value("winrm_auth_method")
        ssl = self.config.config_value("winrm_ssl", default=False)
        if auth_method == "plaintext" and not ssl and self._validatorless():
            raise WinrmTransportConflict(
                "Validatorless bootstrap over unsecure winrm channels could expose your key "
                "to network sniffing. Please use a 'winrm_auth_method' other than 'plaintext', "
                f"or enable ssl on {self.server_name} with --winrm-ssl."
            )
        if auth_method == "kerberos" and not self.config.config_value("kerberos_realm"):
            self.ui.warn("No --kerberos-realm given, the default realm of the workstation will be used")
        return True

    def validate_policy_options(self) -> None:
        policy_name = self.config.config_value("policy_name")
        policy_group = self.config.config_value("policy_group")
        if bool(policy_name) != bool(policy_group):
            raise PolicyOptionConflict("--policy-name and --policy-group must be specified together")
        # a run_list explicitly set to None by an integration is not a run list
        if policy_name and list(self.config.config_value("run_list") or []):
            raise PolicyOptionConflict("Policyfile options and --run-list are exclusive")

    def validate_connection_opts(self) -> ConnectionOptions:
        # gateway and other connection settings are parsed before anything is registered
        return self.connection_opts()

    def warn_no_ssl_verification(self) -> None:
        if not self.winrm or not self.config.config_value("winrm_ssl", default=False):
            return
        if self.config.config_value("winrm_no_verify_cert") and not self.config.config_value(
            "winrm_ssl_peer_fingerprint"
        ) and not self.config.config_value("ca_trust_file"):
            self.ui.warn(
                "SSL validation of HTTPS requests for the WinRM transport is disabled. "
                "Use --winrm-ssl-peer-fingerprint or --ca-trust-file to verify the remote host."
            )

    # ------------------ steps ------------------

    def first_boot_attributes(self) -> Dict[str, Any]:
        if self._first_boot_attributes is None:
            self._first_boot_attributes = self._load_first_boot_attributes()
        return self._first_boot_attributes

    def _load_first_boot_attributes(self) -> Dict[str, Any]:
        inline = self.config.config_value("first_boot_attributes")
        path = self.config.config_value("json_attribute_file")
        if inline:
            source = "--json-attributes"
            try:
                attrs = inline if isinstance(inline, dict) else json.loads(inline)
            except json.JSONDecodeError as exc:
                raise InvalidAttributes(f"First boot attributes are not valid JSON: {exc}") from exc
        elif path:
            source = f"--json-attribute-file {path}"
            try:
                attrs = json.loads(Path(path).expanduser().read_text())
            except OSError as exc:
                raise InvalidAttributes(f"Could not read {source}: {exc.strerror or exc}") from exc
            except json.JSONDecodeError as exc:
                raise InvalidAttributes(f"{source} is not valid JSON: {exc}") from exc
        else:
            return {}
        if not isinstance(attrs, dict):
            raise InvalidAttributes(f"{source} must hold a JSON object")
        return attrs

    @property
    def bootstrap_context(self) -> BootstrapContext:
        if self._bootstrap_context is None:
            windows = self.connection is not None and self.connection.base_os() == "windows"
            cls = WindowsBootstrapContext if windows else BootstrapContext
            self._bootstrap_context = cls(
                self.config,
                first_boot_attributes=self.first_boot_attributes(),
                secret=self.secret,
            )
        return self._bootstrap_context

    def register_client(self) -> None:
        validation_key = self.config.persisted.validation_key
        if self.vault_handler.doing_vault() or self._validatorless():
            if not self.config.config_value("node_name"):
                raise MissingNodeName(
                    "You must pass a node name with -N when bootstrapping with user credentials"
                )
            self.client_builder.run()
            self.vault_handler.run(self.client_builder.client)
        else:
            self.ui.info(f"Doing old-style registration with the validation key at {validation_key}...")
            self.ui.info("Delete your validation key in order to use your user credentials instead")
            self.ui.info("")

    def connection_opts(self) -> ConnectionOptions:
        """Built once per run; user and port from the host argument win."""
        if self._connection_opts is None:
            opts = ConnectionOptionBuilder(self.config, self.connection_protocol, self.logger).connection_opts()
            self._connection_opts = apply_descriptor(self.target, opts)
        return self._connection_opts

    def connect(self) -> TargetHost:
        manager = ConnectionManager(
            lambda opts: self.target_factory(self.target, opts),
            self.ui,
            self.server_name,
            on_retry=lambda opts: self._event(AuthenticationRetried, user=opts.user),
        )
        opts = self.connection_opts()
        self.connection = manager.connect(opts)
        self._event(ConnectionOpened, protocol=opts.protocol, user=opts.user)
        return self.connection

    def bootstrap_template(self) -> str:
        os_name = self.connection.base_os() if self.connection else "linux"
        return self.config.config_value("bootstrap_template") or default_template_name(os_name)

    def render_template(self) -> str:
        path = self.locator.locate(self.bootstrap_template())
        return render_template(path, self.bootstrap_context)

    def upload_bootstrap(self, content: str) -> str:
        path = BootstrapExecutor(self.connection, self.ui).upload(content)
        self._event(ScriptUploaded, path=path, size=len(content))
        return path

    def perform_bootstrap(self, remote_path: str) -> None:
        BootstrapExecutor(self.connection, self.ui).perform(remote_path)

    def cleanup(self, remote_path: Optional[str]) -> None:
        """Best effort: failures are reported, never raised."""
        if not self.connection:
            return
        if remote_path:
            try:
                BootstrapExecutor(self.connection, self.ui).cleanup(remote_path)
            except CLEANUP_ERRORS as exc:
                self.logger.debug("removing %s failed", remote_path, exc_info=True)
                self.ui.warn(f"Could not remove {remote_path} from {self.server_name}: {exc}")
        try:
            self.connection.close()
        except CLEANUP_ERRORS as exc:
            self.logger.debug("closing session to %s failed", self.server_name, exc_info=True)
            self.ui.warn(f"Could not close the session to {self.server_name}: {exc}")

    # ------------------ workflow ------------------

    def run(self) -> None:
        self.validate_name_args()
        self.validate_protocol()
        self.validate_first_boot_attributes()
        self.validate_winrm_transport_opts()
        self.validate_policy_options()
        self.validate_connection_opts()
        self.warn_no_ssl_verification()

        started = time.monotonic()
        self._event(BootstrapStarted, protocol=self.connection_protocol)
        remote_path: Optional[str] = None
        try:
            self.register_client()
            self.connect()
            if self.client_builder.client_path is not None:
                self.bootstrap_context.client_pem = self.client_builder.client_path
            content = self.render_template()
            remote_path = self.upload_bootstrap(content)
            self.perform_bootstrap(remote_path)
        except Exception as exc:
            exit_status = exc.exit_status if isinstance(exc, RemoteExecutionFailure) else None
            self._event(BootstrapFailed, error=str(exc), exit_status=exit_status)
            raise
        finally:
            self.cleanup(remote_path)

        self._event(BootstrapSucceeded, duration_ms=int((time.monotonic() - started) * 1000))
