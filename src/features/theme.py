"""Light/dark theme module."""

from __future__ import annotations

from pathlib import Path

from src.config import ProjectConfig
from src.features.base import Feature

THEME_DIR = "src/lib/theme"
STORE_DEPENDENCIES = {"zustand": "^5.0.8"}


class ThemeFeature(Feature):
    """Writes ``src/lib/theme``; the selected theme is persisted when storage is on."""

    name = "theme"

    def enabled(self, config: ProjectConfig) -> bool:
        return config.theme.enabled

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        out_dir = dest / THEME_DIR
        persisted = config.persisted("theme")

        pairs = self.template_pairs("theme", out_dir, skip=("store.ts.j2",))
        pairs.append(("theme/store.ts.j2", out_dir / "store/index.ts"))
        await self.render(pairs, {"persisted": persisted}, warnings)

        if persisted:
            missing = await self.missing_dependencies(dest, STORE_DEPENDENCIES)
            if missing:
                await self.update_package(dest, warnings, add_dependencies=missing)
        return warnings
