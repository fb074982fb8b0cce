"""Custom font projection and native linking.

Fonts are copied into the shared ``assets/fonts`` directory and the Android
assets directory, then linked the way ``react-native-asset`` links them: a
``link-assets-manifest.json`` per platform, a ``UIAppFonts`` entry in
Info.plist and a bundle-resource entry in the Xcode project.
"""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path

from src.config import ProjectConfig
from src.materializer.pbxproj import RESOURCES_GROUP_ID, add_resource_file
from src.materializer.placeholders import upsert_plist_array
from src.utils import edit_text, print_warning, save_json

FONT_EXTENSIONS = (".ttf", ".otf", ".ttc", ".woff", ".woff2")
FONTS_ASSET_DIR = "assets/fonts"
ANDROID_FONTS_DIR = "android/app/src/main/assets/fonts"
LINK_MANIFESTS = ("android/link-assets-manifest.json", "ios/link-assets-manifest.json")
RN_CONFIG_ASSETS_LINE = 'assets: ["./assets/fonts"],'


def find_fonts(directory: Path) -> list[Path]:
    """Font files directly inside *directory*, sorted by name."""
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in FONT_EXTENSIONS),
        key=lambda p: p.name,
    )


def file_sha1(path: Path) -> str:
    return hashlib.sha1(path.read_bytes()).hexdigest()


def build_link_manifest(project_root: Path, font_names: list[str]) -> dict:
    """Build the ``{"migIndex": 1, "data": [...]}`` link manifest for copied fonts."""
    data = []
    for name in font_names:
        font = project_root / FONTS_ASSET_DIR / name
        if font.is_file():
            data.append({"path": f"{FONTS_ASSET_DIR}/{name}", "sha1": file_sha1(font)})
    return {"migIndex": 1, "data": data}


def add_fonts_to_pbxproj(text: str, font_names: list[str]) -> str:
    """Register every font as a bundle resource; already-registered fonts are skipped."""
    for name in font_names:
        text = add_resource_file(
            text,
            name,
            f"../{FONTS_ASSET_DIR}/{name}",
            group_id=RESOURCES_GROUP_ID,
            extra="explicitFileType = undefined; fileEncoding = 9; includeInIndex = 0; ",
        )
    return text


def add_assets_to_rn_config(text: str) -> str:
    """Add the fonts ``assets`` entry before the closing brace of ``module.exports``."""
    if RN_CONFIG_ASSETS_LINE in text:
        return text
    lines = text.split("\n")
    for index in range(len(lines) - 1, 0, -1):
        if lines[index].strip() in ("}", "};"):
            previous = lines[index - 1]
            indent = previous[: len(previous) - len(previous.lstrip())] or "  "
            lines.insert(index, f"{indent}{RN_CONFIG_ASSETS_LINE}")
            return "\n".join(lines)
    return text


class FontProjector:
    """Copies fonts from ``config.fonts_dir`` and links them on both platforms."""

    def project(self, dest: Path, config: ProjectConfig) -> list[str]:
        if config.fonts_dir is None:
            return []
        source = Path(config.fonts_dir)
        if not source.is_dir():
            return self._warn([f"Fonts directory {source} does not exist, skipping"])

        fonts = find_fonts(source)
        if not fonts:
            return self._warn([f"No font files found in {source}, skipping"])

        warnings: list[str] = []
        copied: list[str] = []
        for font in fonts:
            try:
                for target_dir in (dest / FONTS_ASSET_DIR, dest / ANDROID_FONTS_DIR):
                    target_dir.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(font, target_dir / font.name)
            except OSError as exc:
                warnings.append(f"Could not copy font {font.name}: {exc}")
                continue
            copied.append(font.name)

        if copied:
            warnings.extend(self.link(dest, config, copied))
        return self._warn(warnings)

    def link(self, dest: Path, config: ProjectConfig, font_names: list[str]) -> list[str]:
        """Write link manifests and register *font_names* in the iOS project."""
        warnings: list[str] = []
        manifest = build_link_manifest(dest, font_names)
        for rel in LINK_MANIFESTS:
            if not (dest / rel).parent.is_dir():
                continue
            try:
                save_json(manifest, dest / rel)
            except OSError as exc:
                warnings.append(f"Could not write {rel}: {exc}")

        name = config.project_name
        edits = [
            (
                f"ios/{name}/Info.plist",
                lambda t: upsert_plist_array(
                    t, "UIAppFonts", font_names,
                    after_key="UIViewControllerBasedStatusBarAppearance",
                ),
            ),
            (f"ios/{name}.xcodeproj/project.pbxproj", lambda t: add_fonts_to_pbxproj(t, font_names)),
            ("react-native.config.js", add_assets_to_rn_config),
        ]
        for rel, transform in edits:
            try:
                edit_text(dest / rel, transform)
            except (OSError, UnicodeDecodeError) as exc:
                warnings.append(f"Could not update {rel}: {exc}")
        return warnings

    @staticmethod
    def _warn(warnings: list[str]) -> list[str]:
        for warning in warnings:
            print_warning(f"  Warning: {warning}")
        return warnings
