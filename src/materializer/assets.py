"""Projection of splash screens and app icons onto platform asset slots.

Splash screens are resolved in this order:

1. no source directory: a fixed 1x1 PNG goes into every iOS scale slot and
   every Android drawable bucket;
2. a source with ``ios/`` and/or ``android/`` subdirectories (structured form);
3. a source with loose image files only (flat form);
4. a source that does not exist: warning, template assets kept.

App icons are only projected from a structured source directory.  Every
per-file failure becomes a warning; nothing here aborts the run.
"""

from __future__ import annotations

import base64
import re
import shutil
import struct
from pathlib import Path

from src.config import ProjectConfig
from src.utils import edit_text, print_warning

PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/xcAAn8B9qX+hwAAAABJRU5ErkJggg=="
)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")

IOS_SPLASH_SLOTS = {
    "1x": "SplashScreen.png",
    "2x": "SplashScreen@2x.png",
    "3x": "SplashScreen@3x.png",
}

DENSITIES = ("hdpi", "mdpi", "xhdpi", "xxhdpi", "xxxhdpi")
SPLASH_DENSITY_BUCKETS = tuple(f"drawable-{d}" for d in DENSITIES)
PLACEHOLDER_SPLASH_BUCKETS = ("drawable", *SPLASH_DENSITY_BUCKETS)
ICON_DENSITY_BUCKETS = tuple(f"mipmap-{d}" for d in DENSITIES)
ICON_FILES = ("ic_launcher.png", "ic_launcher_round.png")

DEFAULT_SPLASH_SIZE = (375, 812)

_SCALE_3X_RE = re.compile(r"@3x|3x", re.IGNORECASE)
_SCALE_2X_RE = re.compile(r"@2x|2x", re.IGNORECASE)
_FLAT_1X_RE = re.compile(r"@1x|^splash", re.IGNORECASE)
_FLAT_EXACT_1X_RE = re.compile(r"splash(@1x)?\.(png|jpe?g)", re.IGNORECASE)
_STORYBOARD_IMAGE_RE = re.compile(
    r'(<image name="SplashScreen")\s+width="[\d.]+"\s+height="[\d.]+"(\s*/>)'
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def list_images(directory: Path) -> list[Path]:
    """Image files directly inside *directory*, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted((p for p in directory.iterdir() if is_image(p)), key=lambda p: p.name)


def png_dimensions(data: bytes) -> tuple[int, int] | None:
    """Read width and height from a PNG's IHDR chunk (bytes 16..24)."""
    if len(data) < 24:
        return None
    return struct.unpack(">II", data[16:24])


def set_storyboard_splash_size(text: str, width: int, height: int) -> str:
    """Rewrite the ``SplashScreen`` image resource size in a storyboard."""
    return _STORYBOARD_IMAGE_RE.sub(
        lambda m: f'{m.group(1)} width="{width}" height="{height}"{m.group(2)}', text, count=1
    )


def classify_scales(files: list[Path], flat: bool = False) -> dict[str, Path | None]:
    """Assign image files to the iOS ``1x``/``2x``/``3x`` slots by filename.

    Files marked ``@3x``/``3x`` or ``@2x``/``2x`` go to those slots.  In the
    structured form any other file is a 1x candidate; in the flat form only
    ``@1x`` files or names starting with ``splash`` are.  A single image
    fills every slot.  The flat form backfills 2x and 3x from 1x.  An
    unresolved 1x slot reuses 2x, else 3x; if still unresolved it stays
    ``None`` and the caller writes the placeholder.
    """
    slots: dict[str, Path | None] = {"1x": None, "2x": None, "3x": None}
    if len(files) == 1:
        return {"1x": files[0], "2x": files[0], "3x": files[0]}

    for file in files:
        if _SCALE_3X_RE.search(file.name):
            slots["3x"] = slots["3x"] or file
        elif _SCALE_2X_RE.search(file.name):
            slots["2x"] = slots["2x"] or file
        elif slots["1x"] is None and (not flat or _FLAT_1X_RE.search(file.name)):
            slots["1x"] = file

    if flat:
        exact = [f for f in files if _FLAT_EXACT_1X_RE.fullmatch(f.name)]
        if exact:
            slots["1x"] = exact[0]
    if flat and slots["1x"] is not None:
        slots["2x"] = slots["2x"] or slots["1x"]
        slots["3x"] = slots["3x"] or slots["1x"]
    if slots["1x"] is None:
        slots["1x"] = slots["2x"] or slots["3x"]
    return slots


def _flat_android_sources(files: list[Path]) -> dict[str, Path]:
    """Map density buckets to ``splash-<density>.png``, falling back to ``splash.png``."""
    if len(files) == 1:
        return {bucket: files[0] for bucket in SPLASH_DENSITY_BUCKETS}
    by_name = {p.name.lower(): p for p in files}
    base = by_name.get("splash.png")
    sources: dict[str, Path] = {}
    for density, bucket in zip(DENSITIES, SPLASH_DENSITY_BUCKETS):
        source = by_name.get(f"splash-{density}.png") or base
        if source is not None:
            sources[bucket] = source
    return sources


# ---------------------------------------------------------------------------
# AssetProjector
# ---------------------------------------------------------------------------


class AssetProjector:
    """Copies user-supplied splash screens and app icons into the destination tree."""

    def project(self, dest: Path, config: ProjectConfig) -> list[str]:
        """Project splash screens, then app icons.

        Returns:
            Warnings produced along the way.
        """
        warnings = self.project_splash(dest, config)
        warnings.extend(self.project_icons(dest, config))
        for warning in warnings:
            print_warning(f"  Warning: {warning}")
        return warnings

    # -- Splash screens ------------------------------------------------------

    def project_splash(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        ios_root = dest / "ios" / config.project_name
        res_root = dest / "android/app/src/main/res"
        imageset = ios_root / "Images.xcassets/SplashScreen.imageset"

        source = config.splash_screen_dir
        if source is None:
            if ios_root.is_dir():
                for filename in IOS_SPLASH_SLOTS.values():
                    self._write(PLACEHOLDER_PNG, imageset / filename, warnings)
                self._update_storyboard(ios_root, imageset, warnings)
            if res_root.is_dir():
                for bucket in PLACEHOLDER_SPLASH_BUCKETS:
                    self._write(PLACEHOLDER_PNG, res_root / bucket / "splash.png", warnings)
            return warnings

        source = Path(source)
        if not source.is_dir():
            return [f"Splash screen directory {source} does not exist, skipping"]

        ios_source = source / "ios"
        android_source = source / "android"
        if ios_source.is_dir() or android_source.is_dir():
            if ios_source.is_dir() and ios_root.is_dir():
                slots = classify_scales(list_images(ios_source))
                self._write_ios_slots(slots, imageset, warnings)
                self._update_storyboard(ios_root, imageset, warnings)
            if android_source.is_dir() and res_root.is_dir():
                self._project_structured_android(android_source, res_root, warnings)
            return warnings

        images = list_images(source)
        if not images:
            return [f"No image files found in splash screen directory {source}, skipping"]
        if ios_root.is_dir():
            self._write_ios_slots(classify_scales(images, flat=True), imageset, warnings)
            self._update_storyboard(ios_root, imageset, warnings)
        if res_root.is_dir():
            for bucket, image in _flat_android_sources(images).items():
                self._copy(image, res_root / bucket / "splash.png", warnings)
        return warnings

    def _write_ios_slots(
        self, slots: dict[str, Path | None], imageset: Path, warnings: list[str]
    ) -> None:
        for scale, filename in IOS_SPLASH_SLOTS.items():
            image = slots.get(scale)
            if image is not None:
                self._copy(image, imageset / filename, warnings)
            elif scale == "1x":
                self._write(PLACEHOLDER_PNG, imageset / filename, warnings)

    def _project_structured_android(
        self, android_source: Path, res_root: Path, warnings: list[str]
    ) -> None:
        loose = list_images(android_source)
        if loose:
            for bucket in SPLASH_DENSITY_BUCKETS:
                self._copy(loose[0], res_root / bucket / "splash.png", warnings)
        for bucket_dir in sorted(android_source.glob("drawable-*")):
            if not bucket_dir.is_dir():
                continue
            images = list_images(bucket_dir)
            if images:
                self._copy(images[0], res_root / bucket_dir.name / "splash.png", warnings)

    def _update_storyboard(self, ios_root: Path, imageset: Path, warnings: list[str]) -> None:
        """Size the storyboard's SplashScreen image after the 1x PNG."""
        storyboard = ios_root / "BootSplash.storyboard"
        if not storyboard.is_file():
            return
        width, height = DEFAULT_SPLASH_SIZE
        try:
            dimensions = png_dimensions((imageset / IOS_SPLASH_SLOTS["1x"]).read_bytes())
        except OSError:
            dimensions = None
        if dimensions is not None:
            width, height = dimensions
        try:
            edit_text(storyboard, lambda t: set_storyboard_splash_size(t, width, height))
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"Could not update {storyboard.name}: {exc}")

    # -- App icons -----------------------------------------------------------

    def project_icons(self, dest: Path, config: ProjectConfig) -> list[str]:
        if config.app_icon_dir is None:
            return []
        source = Path(config.app_icon_dir)
        if not source.is_dir():
            return [f"App icon directory {source} does not exist, skipping"]

        warnings: list[str] = []
        android_source = source / "android"
        ios_source = source / "Assets.xcassets/AppIcon.appiconset"

        res_root = dest / "android/app/src/main/res"
        if android_source.is_dir() and res_root.is_dir():
            for bucket in ICON_DENSITY_BUCKETS:
                for name in ICON_FILES:
                    icon = android_source / bucket / name
                    if icon.is_file():
                        self._copy(icon, res_root / bucket / name, warnings)

        catalog = dest / "ios" / config.project_name / "Images.xcassets"
        if ios_source.is_dir() and catalog.is_dir():
            target = catalog / "AppIcon.appiconset"
            for icon in sorted(ios_source.iterdir()):
                if icon.is_file() and (icon.suffix.lower() == ".png" or icon.name == "Contents.json"):
                    self._copy(icon, target / icon.name, warnings)

        if not android_source.is_dir() and not ios_source.is_dir():
            if any(p.suffix.lower() == ".png" for p in source.iterdir() if p.is_file()):
                warnings.append(
                    "Found icon files but expected android/ and "
                    "Assets.xcassets/AppIcon.appiconset/ structure, skipping"
                )
            else:
                warnings.append(f"No app icons found in {source}, skipping")
        return warnings

    # -- File helpers --------------------------------------------------------

    @staticmethod
    def _copy(src: Path, dst: Path, warnings: list[str]) -> None:
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as exc:
            warnings.append(f"Could not copy {src.name} to {dst}: {exc}")

    @staticmethod
    def _write(data: bytes, dst: Path, warnings: list[str]) -> None:
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            dst.write_bytes(data)
        except OSError as exc:
            warnings.append(f"Could not write {dst}: {exc}")
