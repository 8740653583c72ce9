# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .models import SeedlingConfig


class LayeredConfig:
    """
    Explicit option lookup for one bootstrap run.

    Lookup order for config_value():
      1. command line value, when the option was given (even if set to None)
      2. persisted config `bootstrap` defaults, under alt_key or key
      3. the caller's default
    """

    def __init__(
        self,
        cli: Optional[Mapping[str, Any]] = None,
        persisted: Optional[SeedlingConfig] = None,
    ):
        self._cli: Dict[str, Any] = dict(cli or {})
        self.persisted = persisted or SeedlingConfig()

    def has_cli(self, key: str) -> bool:
        return key in self._cli

    def cli(self, key: str, default: Any = None) -> Any:
        return self._cli.get(key, default)

    def set_cli(self, key: str, value: Any) -> None:
        self._cli[key] = value

    def config_value(self, key: str, alt_key: Optional[str] = None, default: Any = None) -> Any:
        if key in self._cli:
            return self._cli[key]
        lookup = alt_key or key
        if lookup in self.persisted.bootstrap:
            return self.persisted.bootstrap[lookup]
        return default
