"""Regenerates ``App.tsx`` so the root component mounts the enabled providers."""

from __future__ import annotations

from pathlib import Path

from src.config import NavigationMode, ProjectConfig
from src.features.base import Feature

APP_FILE = "App.tsx"


def root_navigator(mode: NavigationMode) -> str | None:
    if mode == NavigationMode.WITH_AUTH:
        return "RootNavigator"
    if mode == NavigationMode.APP_ONLY:
        return "AppNavigator"
    return None


class AppRootFeature(Feature):
    name = "app_root"

    def enabled(self, config: ProjectConfig) -> bool:
        return (
            config.navigation.mode != NavigationMode.NONE
            or config.localization.enabled
            or config.theme.enabled
        )

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        target = dest / APP_FILE
        if not target.is_file():
            return [f"[{self.name}] {APP_FILE} not found, root component not updated"]
        context = {
            "navigator": root_navigator(config.navigation.mode),
            "localization": config.localization.enabled,
            "theme": config.theme.enabled,
        }
        await self.render([("app/App.tsx.j2", target)], context, warnings)
        return warnings
