# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/cli/helper.py

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer


def parse_run_list(value: Optional[str]) -> Optional[List[str]]:
    """'role[base],recipe[ntp]' -> ['role[base]', 'recipe[ntp]']"""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_hints(values: Optional[List[str]]) -> Optional[Dict[str, Optional[str]]]:
    """
    Each --hint is NAME or NAME=VALUE, where VALUE is inline JSON or a path
    to a JSON file.
    """
    if not values:
        return None
    hints: Dict[str, Optional[str]] = {}
    for raw in values:
        name, sep, value = raw.partition("=")
        name = name.strip()
        if not name:
            raise typer.BadParameter(f"Invalid hint '{raw}', expected NAME[=VALUE]")
        hints[name] = value if sep else None
    return hints


def parse_vault_items(values: Optional[List[str]]) -> Optional[Dict[str, List[str]]]:
    """
    Accepts repeated or comma separated VAULT:ITEM pairs.

    'vault1:item1,vault1:item2,vault2:item1' -> {'vault1': ['item1', 'item2'], 'vault2': ['item1']}
    """
    if not values:
        return None
    items: Dict[str, List[str]] = {}
    for value in values:
        for pair in value.split(","):
            pair = pair.strip()
            if not pair:
                continue
            vault, sep, item = pair.partition(":")
            if not sep or not vault or not item:
                raise typer.BadParameter(f"Invalid vault item '{pair}', expected VAULT:ITEM")
            items.setdefault(vault, []).append(item)
    return items


def parse_json_attributes(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"--json-attributes is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise typer.BadParameter("--json-attributes must be a JSON object")
    return data


def read_secret(secret: Optional[str], secret_file: Optional[Path]) -> Optional[str]:
    if secret and secret_file:
        raise typer.BadParameter("Use either --secret or --secret-file, not both")
    if secret_file:
        return secret_file.expanduser().read_text().strip()
    return secret


def drop_unset(options: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only options the operator actually gave so persisted defaults still apply."""
    return {k: v for k, v in options.items() if v is not None}
