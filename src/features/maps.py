"""Map provider wiring.

The template ships ``react-native-maps`` with the Google provider wired in
on both platforms.  Depending on the configuration this feature keeps and
completes that wiring, strips it, or swaps in Mapbox.  It always runs, since
a disabled maps feature still has to remove the template's Google blocks.
"""

from __future__ import annotations

import re
from pathlib import Path

from src.config import MapsProvider, ProjectConfig
from src.features.base import Feature
from src.features.firebase import DID_FINISH_LAUNCHING_RE

RN_MAPS_PACKAGES = ["react-native-maps", "react-native-maps-directions"]
RN_MAPS_DEPENDENCIES = {"react-native-maps": "^1.26.0"}
MAPBOX_DEPENDENCIES = {"@rnmapbox/maps": "^10.1.45"}
MAP_VIEW_FILE = "src/ui/components/MapView.tsx"
API_KEY_PLACEHOLDER = "<GOOGLE_MAPS_API_KEY>"

_PODFILE_GOOGLE_RE = re.compile(
    r"\s*# Google Maps[^\n]*\n"
    r"\s*rn_maps_path = '\.\./node_modules/react-native-maps'\s*\n"
    r"\s*pod 'react-native-maps/Google', :path => rn_maps_path\s*\n?"
)
_POST_INSTALL_RE = re.compile(r"(\s*\))\s*\n?\s*post_install\s+do")
_GOOGLE_MAPS_IMPORT_RE = re.compile(r"import GoogleMaps\n")
_GMS_INIT_RE = re.compile(
    r'\s*// Initialize Google Maps\s*\n\s*GMSServices\.provideAPIKey\("[^"]*"\)\s*\n\s*'
)
_IMPORT_BLOCK_RE = re.compile(r"(?:^import\s+\w+\n)+", re.MULTILINE)
_MANIFEST_KEY_RE = re.compile(
    r'(\s*)<!-- Google Maps API Key -->\s*\n(\s*)<meta-data[\s\S]*?'
    r'android:name="com\.google\.android\.geo\.API_KEY"[\s\S]*?/>'
)
_MANIFEST_COMMENTED_KEY_RE = re.compile(
    r'(\s*)<!-- Google Maps API Key -->\s*\n(\s*)<!-- <meta-data[\s\S]*?'
    r'android:name="com\.google\.android\.geo\.API_KEY"[\s\S]*?/> -->'
)


# ---------------------------------------------------------------------------
# Pure edits
# ---------------------------------------------------------------------------


def strip_google_maps_pod(text: str) -> str:
    text = _PODFILE_GOOGLE_RE.sub("\n", text, count=1)
    return _POST_INSTALL_RE.sub(lambda m: f"{m.group(1)}\n\n  post_install do", text, count=1)


def strip_google_maps_init(text: str) -> str:
    text = _GOOGLE_MAPS_IMPORT_RE.sub("", text, count=1)
    return _GMS_INIT_RE.sub("\n    ", text, count=1)


def ensure_google_maps_init(text: str, api_key: str | None = None) -> str:
    """Import GoogleMaps and initialise it with *api_key* (or the placeholder)."""
    if "import GoogleMaps" not in text:
        imports = _IMPORT_BLOCK_RE.search(text)
        if imports is not None:
            text = f"{text[: imports.end()]}import GoogleMaps\n{text[imports.end():]}"
    if "GMSServices.provideAPIKey" not in text:
        launch = DID_FINISH_LAUNCHING_RE.search(text)
        if launch is not None:
            init = (
                "\n    // Initialize Google Maps\n"
                f'    GMSServices.provideAPIKey("{API_KEY_PLACEHOLDER}")'
            )
            text = f"{text[: launch.end()]}{init}{text[launch.end():]}"
    if api_key:
        text = text.replace(
            f'GMSServices.provideAPIKey("{API_KEY_PLACEHOLDER}")',
            f'GMSServices.provideAPIKey("{api_key}")',
        )
    return text


def comment_manifest_api_key(text: str) -> str:
    """Comment out the Maps API key meta-data; an already commented element is kept."""
    return _MANIFEST_KEY_RE.sub(
        lambda m: (
            f"{m.group(1)}<!-- Google Maps API Key -->\n"
            f"{m.group(2)}<!-- <meta-data\n"
            f'{m.group(2)}    android:name="com.google.android.geo.API_KEY"\n'
            f'{m.group(2)}    android:value="${{GOOGLE_MAPS_API_KEY}}" /> -->'
        ),
        text,
        count=1,
    )


def set_manifest_api_key(text: str, api_key: str) -> str:
    """Uncomment the Maps API key meta-data and set its value to *api_key*."""

    def _replace(m: re.Match[str]) -> str:
        return (
            f"{m.group(1)}<!-- Google Maps API Key -->\n"
            f"{m.group(2)}<meta-data\n"
            f'{m.group(2)}    android:name="com.google.android.geo.API_KEY"\n'
            f'{m.group(2)}    android:value="{api_key}" />'
        )

    for pattern in (_MANIFEST_COMMENTED_KEY_RE, _MANIFEST_KEY_RE):
        if pattern.search(text):
            return pattern.sub(_replace, text, count=1)
    return text


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------


class MapsFeature(Feature):
    name = "maps"

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        maps = config.maps
        name = config.project_name
        podfile = "ios/Podfile"
        app_delegate = f"ios/{name}/AppDelegate.swift"
        manifest = "android/app/src/main/AndroidManifest.xml"

        if maps.uses_google:
            await self.edit(
                dest, app_delegate, lambda t: ensure_google_maps_init(t, maps.api_key), warnings
            )
            if maps.api_key:
                await self.edit(
                    dest, manifest, lambda t: set_manifest_api_key(t, maps.api_key), warnings
                )
            else:
                await self.edit(dest, manifest, comment_manifest_api_key, warnings)
        else:
            await self.edit(dest, podfile, strip_google_maps_pod, warnings)
            await self.edit(dest, app_delegate, strip_google_maps_init, warnings)
            await self.edit(dest, manifest, comment_manifest_api_key, warnings)

        if not maps.enabled:
            await self.update_package(dest, warnings, remove_dependencies=RN_MAPS_PACKAGES)
            return warnings

        if maps.provider == MapsProvider.MAPBOX:
            await self.update_package(
                dest,
                warnings,
                remove_dependencies=RN_MAPS_PACKAGES,
                add_dependencies=MAPBOX_DEPENDENCIES,
            )
        else:
            missing = await self.missing_dependencies(dest, RN_MAPS_DEPENDENCIES)
            if missing:
                await self.update_package(dest, warnings, add_dependencies=missing)

        template = f"maps/MapView.{maps.provider.value}.tsx.j2"
        await self.render(
            [(template, dest / MAP_VIEW_FILE)], {"google_maps": maps.uses_google}, warnings
        )
        return warnings
