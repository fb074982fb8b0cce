"""React Navigation scaffold, with or without the authentication flow."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from src.config import NavigationMode, ProjectConfig
from src.features.base import Feature

NAVIGATION_DIR = "src/ui/navigation"
AUTH_DIR = "src/auth"

NAVIGATION_DEPENDENCIES = {
    "@react-navigation/native": "^7.1.17",
    "@react-navigation/native-stack": "^7.3.26",
    "react-native-screens": "^4.16.0",
    "react-native-safe-area-context": "^5.6.1",
}
STORE_DEPENDENCIES = {"zustand": "^5.0.8"}

AUTH_ONLY_FILES = ("RootNavigator.tsx", "AuthNavigator.tsx")


def remove_paths(paths: list[Path]) -> list[Path]:
    """Delete files and directory trees that exist; return what was removed."""
    removed = []
    for path in paths:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            continue
        removed.append(path)
    return removed


class NavigationFeature(Feature):
    """Writes ``src/ui/navigation`` and, for ``with-auth``, the ``src/auth`` store.

    Always runs: with mode ``none`` it removes navigation and auth
    directories left over from the template or a previous run.
    """

    name = "navigation"

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        mode = config.navigation.mode
        nav_dir = dest / NAVIGATION_DIR
        auth_dir = dest / AUTH_DIR

        stale: list[Path] = []
        if mode == NavigationMode.NONE:
            stale = [nav_dir, auth_dir]
        elif mode == NavigationMode.APP_ONLY:
            stale = [*(nav_dir / name for name in AUTH_ONLY_FILES), auth_dir]
        try:
            await asyncio.to_thread(remove_paths, stale)
        except OSError as exc:
            warnings.append(f"[{self.name}] Could not remove stale navigation files: {exc}")
        if mode == NavigationMode.NONE:
            return warnings

        with_auth = mode == NavigationMode.WITH_AUTH
        pairs = [
            ("navigation/AppNavigator.tsx.j2", nav_dir / "AppNavigator.tsx"),
            ("navigation/types.ts.j2", nav_dir / "types.ts"),
            ("navigation/index.ts.j2", nav_dir / "index.ts"),
        ]
        wanted = dict(NAVIGATION_DEPENDENCIES)
        if with_auth:
            pairs += [
                ("navigation/AuthNavigator.tsx.j2", nav_dir / "AuthNavigator.tsx"),
                ("navigation/RootNavigator.tsx.j2", nav_dir / "RootNavigator.tsx"),
                ("auth/store.ts.j2", auth_dir / "store/index.ts"),
                ("auth/types.ts.j2", auth_dir / "types.ts"),
                ("auth/index.ts.j2", auth_dir / "index.ts"),
            ]
            wanted.update(STORE_DEPENDENCIES)
        context = {"with_auth": with_auth, "persisted": config.persisted("auth")}
        await self.render(pairs, context, warnings)

        missing = await self.missing_dependencies(dest, wanted)
        if missing:
            await self.update_package(dest, warnings, add_dependencies=missing)
        return warnings
