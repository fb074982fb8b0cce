"""i18next-based localization module."""

from __future__ import annotations

import asyncio
from pathlib import Path

from src.config import FirebaseModule, ProjectConfig
from src.features.base import Feature
from src.utils import save_json

LOCALIZATION_DIR = "src/lib/localization"

LOCALIZATION_DEPENDENCIES = {
    "i18next": "^25.7.3",
    "i18next-icu": "^2.4.1",
    "react-i18next": "^16.5.0",
    "react-native-localize": "^3.5.2",
}
STORE_DEPENDENCIES = {"zustand": "^5.0.8"}


def default_translations(language: str) -> dict:
    greeting = "Привет" if language.lower().startswith("ru") else "Hello"
    return {"global": {"hello": greeting}}


def write_language_file(directory: Path, language: str) -> Path:
    """Write ``languages/<language>.json``; a preset ``ru.json`` is dropped for other languages."""
    languages = directory / "languages"
    path = save_json(default_translations(language), languages / f"{language}.json")
    preset = languages / "ru.json"
    if language != "ru" and preset.exists():
        preset.unlink()
    return path


class LocalizationFeature(Feature):
    """Writes ``src/lib/localization`` for the configured default language.

    Remote Config overrides are only wired in when the Firebase Remote Config
    module is materialized too; otherwise a warning is returned instead.
    """

    name = "localization"

    def enabled(self, config: ProjectConfig) -> bool:
        return config.localization.enabled

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        settings = config.localization
        out_dir = dest / LOCALIZATION_DIR

        with_remote_config = settings.with_remote_config
        if with_remote_config and not config.firebase.has_module(FirebaseModule.REMOTE_CONFIG):
            warnings.append(
                f"[{self.name}] Remote Config localization needs the Firebase "
                "remote-config module; generated provider uses bundled translations only"
            )
            with_remote_config = False

        persisted = config.persisted("localization")
        pairs = self.template_pairs("localization", out_dir, skip=("store.ts.j2",))
        pairs.append(("localization/store.ts.j2", out_dir / "store/index.ts"))
        context = {
            "persisted": persisted,
            "language": settings.default_language,
            "with_remote_config": with_remote_config,
        }
        await self.render(pairs, context, warnings)
        try:
            await asyncio.to_thread(write_language_file, out_dir, settings.default_language)
        except OSError as exc:
            warnings.append(f"[{self.name}] Could not write language file: {exc}")

        wanted = dict(LOCALIZATION_DEPENDENCIES)
        if persisted:
            wanted.update(STORE_DEPENDENCIES)
        missing = await self.missing_dependencies(dest, wanted)
        if missing:
            await self.update_package(dest, warnings, add_dependencies=missing)
        return warnings
