"""Integration tests for full materialization runs.

These tests run the real Materializer (every stage plus the skipped external
steps) against the miniature template tree and inspect the generated
project on disk.

No external tools (package managers, CocoaPods, git) are required.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.pipeline import Materializer


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read(dest: Path, rel: str) -> str:
    return (dest / rel).read_text(encoding="utf-8")


def _dependencies(dest: Path) -> dict[str, str]:
    return json.loads(_read(dest, "package.json"))["dependencies"]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestBareProject:
    @pytest.mark.integration
    async def test_no_optional_features(self, make_config):
        config = make_config()
        report = await Materializer(config).run()
        dest = config.project_path

        assert report.warning_count == 0
        deps = _dependencies(dest)
        assert not any(name.startswith("@react-native-firebase/") for name in deps)
        assert "react-native-maps" not in deps
        assert "@rnmapbox/maps" not in deps
        assert not (dest / "src/ui/navigation").exists()
        assert not (dest / "src/auth").exists()
        assert not (dest / "src/lib/storage.ts").exists()
        assert 'package="com.acme.myapp"' in _read(dest, "android/app/src/main/AndroidManifest.xml")

        app_json = json.loads(_read(dest, "app.json"))
        assert app_json == {"name": "MyApp", "displayName": "My App"}
        assert _read(dest, "App.tsx").startswith('import { View } from "react-native";')


class TestLocalizationProject:
    @pytest.mark.integration
    async def test_arabic_with_persistence(self, make_config):
        config = make_config(localization={"enabled": True, "default_language": "ar"})
        await Materializer(config).run()
        dest = config.project_path
        loc = "src/lib/localization"

        assert 'language: "ar",' in _read(dest, f"{loc}/store/index.ts")
        assert json.loads(_read(dest, f"{loc}/languages/ar.json")) == {"global": {"hello": "Hello"}}
        assert (dest / "src/lib/storage.ts").is_file()
        assert 'import translations from "./languages/ar.json";' in _read(dest, f"{loc}/provider.tsx")
        assert "<LocalizationProvider>" in _read(dest, "App.tsx")


class TestThemeProject:
    @pytest.mark.integration
    async def test_theme_without_persistence(self, make_config):
        config = make_config(theme={"enabled": True, "persist": False})
        await Materializer(config).run()
        dest = config.project_path

        assert (dest / "src/lib/theme/index.ts").is_file()
        assert not (dest / "src/lib/storage.ts").exists()
        store = _read(dest, "src/lib/theme/store/index.ts")
        assert "persist(" not in store
        assert "zustandStorage" not in store
        assert "<ThemeProvider>" in _read(dest, "App.tsx")


class TestFullProject:
    @pytest.fixture
    def google_files(self, tmp_path):
        root = tmp_path / "google"
        for env in ("staging", "production"):
            (root / env).mkdir(parents=True)
            (root / env / "google-services.json").write_text(f'{{"env": "{env}"}}', encoding="utf-8")
            (root / env / "GoogleService-Info.plist").write_text("<plist/>", encoding="utf-8")
        return root

    @pytest.fixture
    def full_config(self, make_config, google_files, font_dir):
        return make_config(
            environments=["staging"],
            firebase={
                "enabled": True,
                "modules": ["analytics", "remote-config"],
                "google_files_dir": google_files,
                "environments": ["staging", "production"],
            },
            maps={"enabled": True, "google_maps": True, "api_key": "AIza-test"},
            navigation={"mode": "with-auth"},
            localization={"enabled": True, "default_language": "en", "with_remote_config": True},
            theme={"enabled": True},
            fonts_dir=font_dir,
        )

    @pytest.mark.integration
    async def test_every_feature(self, full_config):
        report = await Materializer(full_config).run()
        dest = full_config.project_path

        assert report.stage("features").details == [
            "environments",
            "firebase",
            "storage",
            "navigation",
            "localization",
            "theme",
            "app_root",
            "maps",
        ]
        assert report.warning_count == 0

        deps = _dependencies(dest)
        assert "@react-native-firebase/remote-config" in deps
        assert "react-native-maps" in deps
        assert "zustand" in deps

        assert (dest / ".env.staging").is_file()
        assert (dest / "ios/MyApp.xcodeproj/xcshareddata/xcschemes/MyAppStaging.xcscheme").is_file()
        assert _read(dest, "android/app/src/staging/google-services.json") == '{"env": "staging"}'

        delegate = _read(dest, "ios/MyApp/AppDelegate.swift")
        assert 'GMSServices.provideAPIKey("AIza-test")' in delegate
        assert "FirebaseApp.configure()" in delegate

        app = _read(dest, "App.tsx")
        assert "<RootNavigator />" in app
        assert app.index("<ThemeProvider>") < app.index("<LocalizationProvider>")
        assert "useRemoteConfig" in _read(dest, "src/lib/localization/provider.tsx")

        assert (dest / "assets/fonts/Inter-Regular.ttf").is_file()
        assert "<key>UIAppFonts</key>" in _read(dest, "ios/MyApp/Info.plist")
        staging_plist = _read(dest, "ios/MyApp/Info-staging.plist")
        assert "<key>UIAppFonts</key>" in staging_plist
        assert "<string>My App Staging</string>" in staging_plist
        pbxproj = _read(dest, "ios/MyApp.xcodeproj/project.pbxproj")
        assert "PRODUCT_BUNDLE_IDENTIFIER = com.acme.myapp.staging;" in pbxproj
        assert "name = ReleaseStaging;" in pbxproj
        assert "'DebugStaging' => :debug" in _read(dest, "ios/Podfile")

        assert not list(dest.rglob("*.j2"))

    @pytest.mark.integration
    async def test_overwrite_rerun_is_identical(self, full_config):
        await Materializer(full_config).run()
        dest = full_config.project_path
        first = {
            p.relative_to(dest).as_posix(): p.read_bytes()
            for p in sorted(dest.rglob("*"))
            if p.is_file()
        }

        config = full_config.model_copy(update={"overwrite": True})
        await Materializer(config).run()
        second = {
            p.relative_to(dest).as_posix(): p.read_bytes()
            for p in sorted(dest.rglob("*"))
            if p.is_file()
        }

        assert second == first
