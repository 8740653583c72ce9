# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/errors.py

from __future__ import annotations

from typing import Iterable, Optional


class SeedlingError(RuntimeError):
    """Base class for bootstrap failures surfaced to the operator."""


class TemplateNotFound(SeedlingError):
    """Raised when no candidate location holds the requested template."""

    def __init__(self, name: str, searched: Iterable[str] = ()):
        self.name = name
        self.searched = list(searched)
        msg = f"Bootstrap template not found: {name}"
        if self.searched:
            msg += "\nSearched:\n  " + "\n  ".join(self.searched)
        super().__init__(msg)


class TemplateRenderError(SeedlingError):
    """Raised when the bootstrap context cannot produce a valid script."""


class ProtocolError(SeedlingError):
    pass


class ProtocolConflict(ProtocolError):
    def __init__(self, from_url: str, from_cli: str):
        self.from_url = from_url
        self.from_cli = from_cli
        super().__init__(
            f"The URL '{from_url}' and the --protocol '{from_cli}' "
            "options are in conflict. Use only one of them."
        )


class UnsupportedProtocol(ProtocolError):
    def __init__(self, protocol: str, supported: Iterable[str]):
        self.protocol = protocol
        super().__init__(
            f"Unsupported protocol '{protocol}'. "
            f"Supported protocols are: {' '.join(supported)}"
        )


class BootstrapInputError(SeedlingError):
    """Invalid or conflicting command line input."""


class MissingHostArgument(BootstrapInputError):
    pass


class AttributeInputConflict(BootstrapInputError):
    pass


class InvalidAttributes(BootstrapInputError):
    """First boot attributes that cannot be read or are not a JSON object."""


class InvalidGateway(BootstrapInputError):
    pass


class PolicyOptionConflict(BootstrapInputError):
    pass


class WinrmTransportConflict(BootstrapInputError):
    pass


class MissingNodeName(BootstrapInputError):
    pass


class AuthenticationFailure(SeedlingError):
    """Credentials were rejected by the remote host."""


class TransportError(SeedlingError):
    """A transport-level failure not caused by bad credentials."""


class RemoteExecutionFailure(SeedlingError):
    def __init__(self, host: str, exit_status: int, stderr: Optional[str] = None):
        self.host = host
        self.exit_status = exit_status
        self.stderr = stderr or ""
        super().__init__(
            f"Bootstrap script on {host} exited with status {exit_status}"
        )
