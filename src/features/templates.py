"""Jinja2 rendering of the TypeScript fragments written by feature modules.

Templates live under ``src/features/templates/`` and mirror the destination
layout of the generated app (``navigation/AppNavigator.tsx.j2`` and so on).
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from src.utils import write_text

FRAGMENTS_DIR = Path(__file__).parent / "templates"


def js_string(value: Any) -> str:
    """Render *value* as a double-quoted JavaScript string literal."""
    return json.dumps(str(value), ensure_ascii=False)


def create_environment(root: Path) -> Environment:
    """Jinja2 environment for source fragments.

    Blocks are trimmed so ``{% if %}`` lines leave no blank lines behind, and
    undefined variables raise, so a fragment is never half-filled.
    """
    env = Environment(
        loader=FileSystemLoader(str(root)),
        autoescape=select_autoescape([]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    env.filters["js_string"] = js_string
    return env


class TemplateRenderer:
    """Renders feature fragments with a per-project context."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir or FRAGMENTS_DIR)
        self.env = create_environment(self.template_dir)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render the fragment at *template_path* (relative, e.g. ``"navigation/types.ts.j2"``)."""
        return self.env.get_template(template_path).render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a fragment and write it to *output_path*, creating parents."""
        return await asyncio.to_thread(
            write_text, output_path, self.render(template_path, context)
        )

    async def render_many(
        self,
        pairs: list[tuple[str, str | Path]],
        context: dict[str, Any],
    ) -> list[Path]:
        """Render several ``(template, output)`` pairs concurrently."""
        return list(
            await asyncio.gather(
                *(self.render_to_file(t, out, context) for t, out in pairs)
            )
        )

    def list_templates(self, prefix: str = "") -> list[str]:
        """Sorted ``.j2`` fragment paths, optionally only those under *prefix*."""
        names = self.env.list_templates(extensions=["j2"])
        if not prefix:
            return names
        folder = prefix.rstrip("/") + "/"
        return [name for name in names if name.startswith(folder)]
