"""Feature module base class and shared file-editing helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from src.config import ProjectConfig
from src.features.templates import TemplateRenderer
from src.utils import edit_text, load_json, update_package_json


class Feature:
    """One optional, independently toggleable slice of the generated app.

    Subclasses set ``name``, override ``enabled`` when the feature is not
    always run, and implement ``materialize``.  Per-file failures are
    returned as warnings; only programming errors propagate.
    """

    name: str = ""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def enabled(self, config: ProjectConfig) -> bool:
        return True

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        raise NotImplementedError

    # -- Helpers -------------------------------------------------------------

    async def edit(
        self,
        dest: Path,
        rel: str,
        transform: Callable[[str], str],
        warnings: list[str],
    ) -> bool:
        """Apply *transform* to ``dest/rel``; a missing file is a silent no-op."""
        try:
            return await asyncio.to_thread(edit_text, dest / rel, transform)
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"[{self.name}] Could not update {rel}: {exc}")
            return False

    async def update_package(self, dest: Path, warnings: list[str], **changes) -> bool:
        """Forward *changes* to :func:`src.utils.update_package_json`."""
        try:
            return await asyncio.to_thread(update_package_json, dest, **changes)
        except (OSError, ValueError) as exc:
            warnings.append(f"[{self.name}] Could not update package.json: {exc}")
            return False

    async def missing_dependencies(self, dest: Path, wanted: dict[str, str]) -> dict[str, str]:
        """Return the entries of *wanted* not yet declared in ``package.json``."""
        path = dest / "package.json"
        if not path.is_file():
            return {}
        try:
            data = await asyncio.to_thread(load_json, path)
        except (OSError, ValueError):
            return {}
        declared = data.get("dependencies") or {}
        return {name: version for name, version in wanted.items() if name not in declared}

    def template_pairs(
        self, prefix: str, out_dir: Path, skip: tuple[str, ...] = ()
    ) -> list[tuple[str, Path]]:
        """Map every template under *prefix* onto *out_dir*, dropping ``.j2``.

        Templates whose path relative to *prefix* is listed in *skip* are left out.
        """
        pairs = []
        for template in self.renderer.list_templates(prefix):
            rel = template[len(prefix):].lstrip("/")
            if rel in skip:
                continue
            pairs.append((template, out_dir / rel.removesuffix(".j2")))
        return pairs

    async def render(
        self,
        pairs: list[tuple[str, Path]],
        context: dict,
        warnings: list[str],
    ) -> list[Path]:
        """Render ``(template, output)`` pairs, turning write failures into warnings."""
        try:
            return await self.renderer.render_many(pairs, context)
        except OSError as exc:
            warnings.append(f"[{self.name}] Could not write generated files: {exc}")
            return []
