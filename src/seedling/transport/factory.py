# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import replace

from seedling.bootstrap.connection_opts import ConnectionOptions
from seedling.bootstrap.target import HostTarget
from .interface import TargetHost


def apply_descriptor(target: HostTarget, opts: ConnectionOptions) -> ConnectionOptions:
    """user/port given in the host argument win over configured values."""
    overrides = {}
    if target.user:
        overrides["user"] = target.user
    if target.port:
        overrides["port"] = target.port
    if not overrides:
        return opts
    return replace(opts, options={**opts.options, **overrides})


def build_target_host(target: HostTarget, opts: ConnectionOptions) -> TargetHost:
    opts = apply_descriptor(target, opts)
    if opts.protocol == "winrm":
        from .winrm_host import WinrmTargetHost
        return WinrmTargetHost(target.host, opts)
    from .ssh_host import SshTargetHost
    return SshTargetHost(target.host, opts)


def open_target_host(target: HostTarget, opts: ConnectionOptions) -> TargetHost:
    host = build_target_host(target, opts)
    host.connect()
    return host
