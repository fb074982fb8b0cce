"""Firebase wiring: npm packages, native build files, config files and JS modules."""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path

from src.config import PRODUCTION_ENV, FirebaseModule, GoogleFiles, ProjectConfig
from src.features.base import Feature
from src.features.environments import info_plist_paths
from src.materializer.pbxproj import (
    APP_GROUP_ID,
    add_resource_file,
    add_synchronized_root_group,
    find_group_id,
)
from src.materializer.placeholders import upsert_plist_array
from src.utils import edit_text

FIREBASE_VERSION = "^23.5.0"
GOOGLE_SERVICES_CLASSPATH = 'classpath("com.google.gms:google-services:4.4.2")'
GOOGLE_SERVICES_PLUGIN = "apply plugin: 'com.google.gms.google-services'"
POST_NOTIFICATIONS = '<uses-permission android:name="android.permission.POST_NOTIFICATIONS" />'

MODULE_PACKAGES = {
    FirebaseModule.ANALYTICS: "@react-native-firebase/analytics",
    FirebaseModule.REMOTE_CONFIG: "@react-native-firebase/remote-config",
    FirebaseModule.MESSAGING: "@react-native-firebase/messaging",
}

_KOTLIN_CLASSPATH_RE = re.compile(r'classpath\("org\.jetbrains\.kotlin:kotlin-gradle-plugin"\)\n')
_GOOGLE_PLUGIN_RE = re.compile(r"apply plugin:\s*['\"]com\.google\.gms\.google-services['\"]")
_REACT_PLUGIN_RE = re.compile(r'apply plugin:\s*"com\.facebook\.react"\n')
_USE_REACT_NATIVE_RE = re.compile(r"use_react_native!\([\s\S]*?\)\n")
_IMPORT_BLOCK_RE = re.compile(r"(?:^import\s+\w+\n)+", re.MULTILINE)
_GOOGLE_MAPS_IMPORT_RE = re.compile(r"import GoogleMaps\n")
_GMS_LINE_RE = re.compile(r'GMSServices\.provideAPIKey\("[^"]*"\)\n\s+')
DID_FINISH_LAUNCHING_RE = re.compile(r"didFinishLaunchingWithOptions[\s\S]*?->\s*Bool\s*\{")
_APPLICATION_TAG_RE = re.compile(r"([ \t]*)<application\b")


# ---------------------------------------------------------------------------
# Pure edits
# ---------------------------------------------------------------------------


def add_google_services_classpath(text: str) -> str:
    if "com.google.gms:google-services" in text:
        return text
    return _KOTLIN_CLASSPATH_RE.sub(
        lambda m: f"{m.group(0)}        {GOOGLE_SERVICES_CLASSPATH}\n", text, count=1
    )


def apply_google_services_plugin(text: str) -> str:
    if _GOOGLE_PLUGIN_RE.search(text):
        return text
    return _REACT_PLUGIN_RE.sub(lambda m: f"{m.group(0)}{GOOGLE_SERVICES_PLUGIN}\n", text, count=1)


def firebase_pod_lines(modules: list[FirebaseModule]) -> list[str]:
    lines = [
        "  pod 'FirebaseCore', :modular_headers => true",
        "  pod 'GoogleUtilities', :modular_headers => true",
    ]
    if FirebaseModule.ANALYTICS in modules:
        lines.append("  $RNFirebaseAnalyticsWithoutAdIdSupport = true")
    if FirebaseModule.REMOTE_CONFIG in modules:
        lines.extend(
            f"  pod '{pod}', :modular_headers => true"
            for pod in ("FirebaseRemoteConfig", "FirebaseABTesting", "FirebaseInstallations")
        )
    return lines


def add_firebase_pods(text: str, modules: list[FirebaseModule]) -> str:
    if "FirebaseCore" in text:
        return text
    block = "\n".join(firebase_pod_lines(modules))
    return _USE_REACT_NATIVE_RE.sub(lambda m: f"{m.group(0)}{block}\n", text, count=1)


def add_firebase_to_app_delegate(text: str) -> str:
    """Import Firebase and call ``FirebaseApp.configure()`` at launch."""
    if "import Firebase" not in text:
        anchor = _GOOGLE_MAPS_IMPORT_RE.search(text) or _IMPORT_BLOCK_RE.search(text)
        if anchor is not None:
            text = f"{text[: anchor.end()]}import Firebase\n{text[anchor.end():]}"
    if "FirebaseApp.configure()" not in text:
        gms = _GMS_LINE_RE.search(text)
        if gms is not None:
            text = f"{text[: gms.end()]}FirebaseApp.configure()\n    {text[gms.end():]}"
        else:
            launch = DID_FINISH_LAUNCHING_RE.search(text)
            if launch is not None:
                text = f"{text[: launch.end()]}\n    FirebaseApp.configure(){text[launch.end():]}"
    return text


def register_google_plist(text: str, project_name: str, multi_env: bool) -> str:
    """Reference the copied ``GoogleService-Info.plist`` file(s) from the Xcode project."""
    if multi_env:
        return add_synchronized_root_group(text, "GoogleServices", "GoogleServices")
    return add_resource_file(
        text,
        "GoogleService-Info.plist",
        f"{project_name}/GoogleService-Info.plist",
        group_id=find_group_id(text, project_name) or APP_GROUP_ID,
        file_type="text.plist.xml",
        extra="fileEncoding = 4; ",
    )


def add_notifications_permission(text: str) -> str:
    if "android.permission.POST_NOTIFICATIONS" in text:
        return text
    return _APPLICATION_TAG_RE.sub(
        lambda m: f"{m.group(1)}{POST_NOTIFICATIONS}\n\n{m.group(1)}<application", text, count=1
    )


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------


class FirebaseFeature(Feature):
    """Adds ``@react-native-firebase`` and the selected submodules.

    The Google config files were validated by the pipeline preflight, so a
    copy failure here is a filesystem problem and becomes a warning.
    """

    name = "firebase"

    def enabled(self, config: ProjectConfig) -> bool:
        return config.firebase.enabled

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        firebase = config.firebase
        name = config.project_name

        await self.update_package(
            dest,
            warnings,
            add_dependencies=self.dependencies(config),
            scripts=self.scripts(config),
            keep_existing_scripts=True,
        )
        await self.edit(dest, "android/build.gradle", add_google_services_classpath, warnings)
        await self.edit(dest, "android/app/build.gradle", apply_google_services_plugin, warnings)
        await self.edit(dest, "ios/Podfile", lambda t: add_firebase_pods(t, firebase.modules), warnings)
        await self.edit(dest, f"ios/{name}/AppDelegate.swift", add_firebase_to_app_delegate, warnings)

        files = firebase.files_by_env()
        if files:
            await asyncio.to_thread(self.copy_google_files, dest, config, files, warnings)
        else:
            warnings.append(f"[{self.name}] No Google config files given; add them before building")

        pairs: list[tuple[str, Path]] = []
        if firebase.has_module(FirebaseModule.ANALYTICS):
            pairs += self.template_pairs("firebase/analytics", dest / "src/lib/analytics")
        if firebase.has_module(FirebaseModule.REMOTE_CONFIG):
            pairs += self.template_pairs("firebase/remote-config", dest / "src/lib/remote-config")
        if firebase.has_module(FirebaseModule.MESSAGING):
            pairs += self.template_pairs("notifications", dest / "src/notifications")
            await self.edit(
                dest, "android/app/src/main/AndroidManifest.xml", add_notifications_permission, warnings
            )
            for plist in info_plist_paths(name, config.environments):
                await self.edit(
                    dest,
                    plist,
                    lambda t: upsert_plist_array(t, "UIBackgroundModes", ["remote-notification"]),
                    warnings,
                )
        context = {"analytics": firebase.has_module(FirebaseModule.ANALYTICS)}
        await self.render(pairs, context, warnings)
        return warnings

    @staticmethod
    def dependencies(config: ProjectConfig) -> dict[str, str]:
        deps = {"@react-native-firebase/app": FIREBASE_VERSION}
        for module in config.firebase.modules:
            deps[MODULE_PACKAGES[module]] = FIREBASE_VERSION
        return deps

    @staticmethod
    def scripts(config: ProjectConfig) -> dict[str, str]:
        if not config.firebase.has_module(FirebaseModule.ANALYTICS):
            return {}
        return {
            "android:debug": (
                "react-native run-android && cd android && adb shell setprop "
                f"debug.firebase.analytics.app {config.bundle_identifier} && cd .."
            )
        }

    def copy_google_files(
        self,
        dest: Path,
        config: ProjectConfig,
        files: dict[str, GoogleFiles],
        warnings: list[str],
    ) -> None:
        """Copy each environment's Google files and register the iOS ones."""
        multi_env = config.firebase.multi_env
        name = config.project_name
        for env, pair in files.items():
            if env == PRODUCTION_ENV or not multi_env:
                android_target = dest / "android/app/google-services.json"
            else:
                android_target = dest / f"android/app/src/{env}/google-services.json"
            if multi_env:
                ios_target = dest / f"ios/GoogleServices/{env}/GoogleService-Info.plist"
            else:
                ios_target = dest / f"ios/{name}/GoogleService-Info.plist"
            for source, target, platform in (
                (pair.android_json, android_target, "android"),
                (pair.ios_plist, ios_target, "ios"),
            ):
                if not (dest / platform).is_dir():
                    continue
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(source, target)
                except OSError as exc:
                    warnings.append(f"[{self.name}] Could not copy {source.name} for {env}: {exc}")

        pbxproj = dest / f"ios/{name}.xcodeproj/project.pbxproj"
        try:
            edit_text(pbxproj, lambda t: register_google_plist(t, name, multi_env))
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"[{self.name}] Could not update {pbxproj.name}: {exc}")
