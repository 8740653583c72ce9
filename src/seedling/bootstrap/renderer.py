# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from pathlib import Path

from jinja2 import Environment, StrictUndefined, TemplateError

from seedling.errors import TemplateRenderError
from .context import BootstrapContext

log = logging.getLogger("seedling")


def _environment() -> Environment:
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_template(path: str | Path, context: BootstrapContext) -> str:
    """
    Render the bootstrap template at *path* against *context*.

    The template is read once; it sees the context as `ctx`.
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    try:
        template = _environment().from_string(source)
        rendered = template.render(ctx=context)
    except TemplateError as exc:
        raise TemplateRenderError(f"Failed to render {path}: {exc}") from exc
    log.debug("Rendered %s (%d bytes)", path, len(rendered))
    return rendered
