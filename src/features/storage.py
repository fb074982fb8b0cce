"""Persisted key-value storage layer backing the zustand stores."""

from __future__ import annotations

from pathlib import Path

from src.config import ProjectConfig
from src.features.base import Feature
from src.utils import print_warning

STORAGE_FILE = "src/lib/storage.ts"
STORAGE_DEPENDENCIES = {"react-native-mmkv": "^4.0.0", "zustand": "^5.0.8"}


class StorageFeature(Feature):
    """Writes ``src/lib/storage.ts`` (MMKV behind a zustand ``StateStorage``).

    Enabled by an explicit opt-in, or implicitly by a dependent feature whose
    persistence follow-up was accepted.  An existing file is left alone.
    """

    name = "storage"

    def enabled(self, config: ProjectConfig) -> bool:
        return config.storage_enabled

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        reasons = config.storage_required_by
        if reasons:
            print_warning(f"  Storage layer enabled because it is required by: {', '.join(reasons)}")

        if not (dest / STORAGE_FILE).exists():
            await self.render([("storage/storage.ts.j2", dest / STORAGE_FILE)], {}, warnings)

        missing = await self.missing_dependencies(dest, STORAGE_DEPENDENCIES)
        if missing:
            await self.update_package(dest, warnings, add_dependencies=missing)
        return warnings
