# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/bootstrap/context.py

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PureWindowsPath
from typing import Any, Dict, List, Optional

from seedling.config.layered import LayeredConfig
from seedling.errors import TemplateRenderError

log = logging.getLogger("seedling")

DEFAULT_INSTALL_URL = "https://packages.seedling.io/install.sh"
DEFAULT_MSI_URL = "https://packages.seedling.io/seedling-agent.msi"

SSL_VERIFY_MODES = {
    "none": ":verify_none",
    "peer": ":verify_peer",
}

CERT_PATTERNS = ("*.crt", "*.pem")


def compact_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"))


def escape_single_quotes(text: str) -> str:
    """Make text safe inside a single-quoted shell string."""
    return text.replace("'", "'\\''")


def heredoc(path: str, content: str) -> str:
    if not content.endswith("\n"):
        content += "\n"
    return f"cat > {path} <<'EOP'\n{content}EOP\n"


class BootstrapContext:
    """
    Everything the bootstrap template needs, computed from the layered config.

    Templates read it lazily as `ctx`, so a value is only computed (and only
    validated) when the template actually uses it.
    """

    base_dir = "/etc/seedling"

    def __init__(
        self,
        config: LayeredConfig,
        *,
        first_boot_attributes: Optional[Dict[str, Any]] = None,
        secret: Optional[str] = None,
    ):
        self.config = config
        self.persisted = config.persisted
        self.first_boot_attributes = dict(first_boot_attributes or {})
        self.secret = secret
        self.client_pem: Optional[str] = None

    # ------------------ paths ------------------

    def path(self, *parts: str) -> str:
        return "/".join((self.base_dir,) + parts)

    def conf_path(self, *parts: str) -> str:
        """A path as written inside client.conf."""
        return self.path(*parts)

    @property
    def config_path(self) -> str:
        return self.path("client.conf")

    @property
    def first_boot_path(self) -> str:
        return self.path("first-boot.json")

    @property
    def secret_path(self) -> str:
        return self.path("encrypted_secret")

    @property
    def trusted_certs_path(self) -> str:
        return self.path("trusted_certs")

    @property
    def client_d_path(self) -> str:
        return self.path("client.d")

    @property
    def hints_path(self) -> str:
        return self.path("ohai", "hints")

    # ------------------ option lookups ------------------

    @property
    def run_list(self) -> List[str]:
        return list(self.config.config_value("run_list") or [])

    @property
    def policy_name(self) -> Optional[str]:
        return self.config.config_value("policy_name")

    @property
    def policy_group(self) -> Optional[str]:
        return self.config.config_value("policy_group")

    @property
    def node_name(self) -> Optional[str]:
        return self.config.config_value("node_name")

    @property
    def environment(self) -> Optional[str]:
        return self.config.config_value("environment")

    @property
    def bootstrap_proxy(self) -> Optional[str]:
        return self.config.config_value("bootstrap_proxy")

    @property
    def bootstrap_no_proxy(self) -> Optional[str]:
        return self.config.config_value("bootstrap_no_proxy")

    @property
    def fips(self) -> bool:
        return bool(self.config.config_value("fips", default=self.persisted.fips))

    @property
    def preinstall_command(self) -> Optional[str]:
        return self.config.config_value("bootstrap_preinstall_command")

    @property
    def bootstrap_version(self) -> Optional[str]:
        return self.config.config_value("bootstrap_version")

    @property
    def ssl_verify_mode(self) -> Optional[str]:
        mode = self.config.config_value("node_ssl_verify_mode", default=self.persisted.node_ssl_verify_mode)
        if mode is None:
            return None
        try:
            return SSL_VERIFY_MODES[mode]
        except KeyError:
            raise TemplateRenderError(
                f"Invalid SSL verify mode '{mode}', expected one of: {', '.join(SSL_VERIFY_MODES)}"
            ) from None

    @property
    def verify_api_cert(self) -> Optional[bool]:
        return self.config.config_value("node_verify_api_cert")

    # ------------------ rendered blocks ------------------

    @property
    def config_content(self) -> str:
        p = self.persisted
        lines = [
            f"log_location   {p.log_location}",
            f'server_url  "{p.server_url}"',
            f'validation_client_name "{p.validation_client_name}"',
        ]
        if p.log_level:
            lines.append(f"log_level   :{p.log_level}")
        if self.node_name:
            lines.append(f'node_name "{self.node_name}"')

        if self.bootstrap_proxy:
            lines.append(f'http_proxy        "{self.bootstrap_proxy}"')
            lines.append(f'https_proxy       "{self.bootstrap_proxy}"')
        if self.bootstrap_no_proxy:
            lines.append(f'no_proxy       "{self.bootstrap_no_proxy}"')

        if self.ssl_verify_mode:
            lines.append(f"ssl_verify_mode {self.ssl_verify_mode}")
        if self.verify_api_cert is not None:
            lines.append(f"verify_api_cert {'true' if self.verify_api_cert else 'false'}")

        if self.secret:
            lines.append(f'encrypted_secret "{self.conf_path("encrypted_secret")}"')
        if self.certificates:
            lines.append(f'trusted_certs_dir "{self.conf_path("trusted_certs")}"')
        if self.fips:
            lines.append("fips true")
        return "\n".join(lines) + "\n"

    @property
    def first_boot(self) -> Dict[str, Any]:
        attributes = dict(self.first_boot_attributes)
        if self.policy_name and self.policy_group:
            attributes.pop("run_list", None)
            attributes["policy_name"] = self.policy_name
            attributes["policy_group"] = self.policy_group
        else:
            attributes["run_list"] = self.run_list
        return attributes

    @property
    def first_boot_json(self) -> str:
        return compact_json(self.first_boot)

    @property
    def encrypted_secret(self) -> Optional[str]:
        return self.secret

    @property
    def hints(self) -> Dict[str, str]:
        """hint name -> compact JSON document"""
        rendered: Dict[str, str] = {}
        for name, value in (self.config.config_value("hints") or {}).items():
            rendered[name] = compact_json(self._load_hint(name, value))
        return rendered

    def _load_hint(self, name: str, value: Optional[str]) -> Any:
        if not value:
            return {}
        path = Path(value).expanduser()
        if path.is_file():
            source = path.read_text()
        else:
            source = value
        try:
            return json.loads(source)
        except json.JSONDecodeError as exc:
            raise TemplateRenderError(
                f"Hint '{name}' must be inline JSON or a path to a JSON file: {exc}"
            ) from exc

    @property
    def certificates(self) -> List[Path]:
        certs_dir = self.persisted.trusted_certs_dir
        if not certs_dir:
            return []
        root = Path(certs_dir).expanduser()
        found = {p for pattern in CERT_PATTERNS for p in root.glob(pattern) if p.is_file()}
        return sorted(found)

    @property
    def trusted_certs(self) -> str:
        certs = self.certificates
        if not certs:
            return ""
        content = f"mkdir -p {self.trusted_certs_path}\n"
        for cert in certs:
            log.debug("Embedding trusted certificate %s", cert)
            content += heredoc(
                self.path("trusted_certs", cert.name),
                escape_single_quotes(cert.read_text()),
            )
        return content

    @property
    def client_d_files(self) -> List[Path]:
        client_d_dir = self.persisted.client_d_dir
        if not client_d_dir:
            return []
        root = Path(client_d_dir).expanduser()
        if not root.is_dir():
            return []
        return sorted(p.relative_to(root) for p in root.rglob("*") if p.is_file())

    @property
    def client_d(self) -> str:
        if not self.persisted.client_d_dir or not Path(self.persisted.client_d_dir).expanduser().is_dir():
            return ""
        root = Path(self.persisted.client_d_dir).expanduser()
        content = f"mkdir -p {self.client_d_path}\n"
        made = set()
        for rel in self.client_d_files:
            parent = rel.parent.as_posix()
            if parent != "." and parent not in made:
                content += f"mkdir -p {self.path('client.d', parent)}\n"
                made.add(parent)
            content += heredoc(
                self.path("client.d", rel.as_posix()),
                escape_single_quotes((root / rel).read_text()),
            )
        return content

    @property
    def validation_key(self) -> Optional[str]:
        key = self.persisted.validation_key
        if not key:
            return None
        path = Path(key).expanduser()
        return path.read_text() if path.is_file() else None

    @property
    def client_key(self) -> Optional[str]:
        if not self.client_pem:
            return None
        path = Path(self.client_pem)
        if not path.is_file():
            raise TemplateRenderError(f"Client key {self.client_pem} does not exist")
        return path.read_text()

    @property
    def install_command(self) -> Optional[str]:
        return self.config.config_value("bootstrap_install_command")

    @property
    def install_url(self) -> str:
        return self.config.config_value("bootstrap_url", default=DEFAULT_INSTALL_URL)

    @property
    def start_command(self) -> str:
        cmd = f"seedling-agent -c {self.config_path} -j {self.first_boot_path}"
        if self.environment:
            cmd += f" -E {self.environment}"
        return cmd


_BATCH_SPECIALS = re.compile(r"([(<|>)^&])")


def escape_and_echo(text: str) -> str:
    """Turn file contents into batch `echo.` lines with metacharacters escaped."""
    lines = text.rstrip("\n").split("\n")
    return "\n".join("echo." + _BATCH_SPECIALS.sub(r"^\1", line) for line in lines)


class WindowsBootstrapContext(BootstrapContext):
    """Same data as BootstrapContext, rendered for a cmd.exe batch file."""

    base_dir = "C:\\seedling"

    def path(self, *parts: str) -> str:
        return str(PureWindowsPath(self.base_dir, *parts))

    @property
    def config_content(self) -> str:
        return escape_and_echo(super().config_content)

    def conf_path(self, *parts: str) -> str:
        # forward slashes inside quoted config values
        return "/".join((self.base_dir.replace("\\", "/"),) + parts)

    @property
    def first_boot_json(self) -> str:
        return escape_and_echo(super().first_boot_json)

    @property
    def hints(self) -> Dict[str, str]:
        return {name: escape_and_echo(value) for name, value in super().hints.items()}

    def _file_block(self, path: str, content: str) -> str:
        return f"> {path} (\n{escape_and_echo(content)}\n)\n"

    @property
    def trusted_certs(self) -> str:
        certs = self.certificates
        if not certs:
            return ""
        content = f"mkdir {self.trusted_certs_path}\n"
        for cert in certs:
            content += self._file_block(self.path("trusted_certs", cert.name), cert.read_text())
        return content

    @property
    def client_d(self) -> str:
        if not self.persisted.client_d_dir or not Path(self.persisted.client_d_dir).expanduser().is_dir():
            return ""
        root = Path(self.persisted.client_d_dir).expanduser()
        content = f"mkdir {self.client_d_path}\n"
        made = set()
        for rel in self.client_d_files:
            if rel.parent != Path(".") and rel.parent not in made:
                content += f"mkdir {self.path('client.d', *rel.parent.parts)}\n"
                made.add(rel.parent)
            content += self._file_block(self.path("client.d", *rel.parts), (root / rel).read_text())
        return content

    @property
    def validation_key(self) -> Optional[str]:
        key = super().validation_key
        return escape_and_echo(key) if key else None

    @property
    def client_key(self) -> Optional[str]:
        key = super().client_key
        return escape_and_echo(key) if key else None

    @property
    def encrypted_secret(self) -> Optional[str]:
        return escape_and_echo(self.secret) if self.secret else None

    @property
    def install_url(self) -> str:
        return self.config.config_value("bootstrap_url", default=DEFAULT_MSI_URL)

