"""Build environments (staging, development, ...) on both platforms.

For every selected environment the generated project gets a ``.env.<env>``
file, an Android product flavor with its own source set and application id,
and a set of ``package.json`` run/build scripts.  On iOS each environment gets
``Debug<Env>``/``Release<Env>`` build configurations with its own bundle id and
Info plist, an Xcode scheme that builds with them and copies the matching
``.env`` file first, and a Podfile mapping for CocoaPods.  ``production`` is
always present and maps onto the base Android flavor, the base Xcode
configurations and the base scheme.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path

from src.config import PRODUCTION_ENV, ProjectConfig
from src.features.base import Feature
from src.materializer.pbxproj import add_build_configuration
from src.materializer.placeholders import upsert_plist_string, upsert_string_resource
from src.utils import capitalize, edit_text, read_text, write_text

ANDROID_MAIN = "android/app/src/main"
BUILD_GRADLE = "android/app/build.gradle"

APP_NAME_SUFFIXES = {"staging": "Staging", "development": "Dev", "local": "Local"}
APPLICATION_ID_SUFFIXES = {"staging": "staging", "development": "dev", "local": "local"}

BASE_CONFIGURATIONS = ("Debug", "Release")

SCHEME_HEADER = '<Scheme LastUpgradeVersion = "1610" version = "1.7">'

_ENV_CONFIG_RE = re.compile(r"project\.ext\.envConfigFiles\s*=\s*\[[\s\S]*?\]")
_RN_CONFIG_DOTENV_RE = re.compile(
    r"(apply from: project\(':react-native-config'\)\.projectDir\.getPath\(\) \+ \"/dotenv\.gradle\")"
)
_ANY_DOTENV_RE = re.compile(r"(apply from: .*dotenv\.gradle)")
_APPLY_PLUGIN_RE = re.compile(r"(apply plugin:.*\n)")
_FLAVORS_START_RE = re.compile(r"[ \t]*flavorDimensions[^\n]*\n\s*productFlavors\s*\{")
_DEFAULT_CONFIG_RE = re.compile(r"android\s*\{[\s\S]*?defaultConfig\s*\{")
_ANDROID_OPEN_RE = re.compile(r"android\s*\{")
_DEBUG_SIGNING_RE = re.compile(
    r"(buildTypes\s*\{[\s\S]*?debug\s*\{[\s\S]*?signingConfig\s+signingConfigs\.debug)"
)
_SCHEME_OPEN_RE = re.compile(r"<Scheme[^>]*>")
_BUILDABLE_REF_RE = re.compile(r"<BuildableReference[\s\S]*?</BuildableReference>")
_PRE_ACTIONS_RE = re.compile(r"\n?[ \t]*<PreActions>[\s\S]*?</PreActions>")
_SCHEME_CONFIGURATION_RE = re.compile(r'buildConfiguration = "(Debug|Release)[^"]*"')
_PODFILE_PROJECT_RE = re.compile(r"^project '[^']*'.*\n", re.MULTILINE)
_PODFILE_PREPARE_RE = re.compile(r"^prepare_react_native_project!\n", re.MULTILINE)
_PODFILE_TARGET_RE = re.compile(r"^target '", re.MULTILINE)


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def split_envs(environments: list[str]) -> tuple[list[str], list[str]]:
    """Return ``(non_production, all_with_production_last)``."""
    others = [env for env in environments if env != PRODUCTION_ENV]
    return others, [*others, PRODUCTION_ENV]


def env_app_name(display_name: str, env: str) -> str:
    """``"My App"`` + ``development`` -> ``"My App Dev"``."""
    return f"{display_name} {APP_NAME_SUFFIXES.get(env, capitalize(env))}"


def env_application_id(bundle_identifier: str, env: str) -> str:
    if env == PRODUCTION_ENV:
        return bundle_identifier
    return f"{bundle_identifier}.{APPLICATION_ID_SUFFIXES.get(env, env)}"


def scheme_name(project_name: str, env: str) -> str:
    if env == PRODUCTION_ENV:
        return project_name
    return f"{project_name}{capitalize(env)}"


def env_configuration_name(base: str, env: str) -> str:
    """``Debug`` + ``staging`` -> ``DebugStaging``; production keeps *base*."""
    if env == PRODUCTION_ENV:
        return base
    return f"{base}{capitalize(env)}"


def env_info_plist(env: str) -> str:
    if env == PRODUCTION_ENV:
        return "Info.plist"
    return f"Info-{env}.plist"


def info_plist_paths(project_name: str, environments: list[str]) -> list[str]:
    """Destination-relative paths of every app Info plist, base first."""
    others, _ = split_envs(environments)
    return [f"ios/{project_name}/{env_info_plist(env)}" for env in [PRODUCTION_ENV, *others]]


def _block_end(text: str, open_brace: int) -> int:
    """Index just past the brace matching ``text[open_brace]``, or -1."""
    depth = 0
    for index in range(open_brace, len(text)):
        if text[index] == "{":
            depth += 1
        elif text[index] == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return -1


# ---------------------------------------------------------------------------
# build.gradle
# ---------------------------------------------------------------------------


def build_env_config_files_block(envs: list[str]) -> str:
    lines: list[str] = []
    for env in envs:
        lines.append(f'    {env}debug: ".env.{env}"')
        lines.append(f'    {env}release: ".env.{env}"')
    return "project.ext.envConfigFiles = [\n" + ",\n".join(lines) + "\n]"


def set_env_config_files(text: str, envs: list[str]) -> str:
    """Replace the ``envConfigFiles`` map, or insert it after the dotenv apply line."""
    block = build_env_config_files_block(envs)
    if _ENV_CONFIG_RE.search(text):
        return _ENV_CONFIG_RE.sub(lambda m: block, text, count=1)
    for pattern in (_RN_CONFIG_DOTENV_RE, _ANY_DOTENV_RE):
        if pattern.search(text):
            return pattern.sub(lambda m: f"{m.group(1)}\n{block}", text, count=1)
    if _APPLY_PLUGIN_RE.search(text):
        return _APPLY_PLUGIN_RE.sub(lambda m: f"{m.group(1)}{block}\n", text, count=1)
    return f"{block}\n{text}"


def build_product_flavors_block(envs: list[str], bundle_identifier: str) -> str:
    flavors = "\n".join(
        f"        {env} {{\n"
        "            minSdkVersion rootProject.ext.minSdkVersion\n"
        f'            applicationId "{env_application_id(bundle_identifier, env)}"\n'
        "            targetSdkVersion rootProject.ext.targetSdkVersion\n"
        f'            resValue "string", "build_config_package", "{bundle_identifier}"\n'
        "        }"
        for env in envs
    )
    return f'    flavorDimensions "default"\n    productFlavors {{\n{flavors}\n    }}'


def set_product_flavors(text: str, envs: list[str], bundle_identifier: str) -> str:
    """Replace the ``productFlavors`` block, or add it after ``defaultConfig``.

    The existing block is located by brace matching, so flavors with nested
    braces are replaced whole.
    """
    block = build_product_flavors_block(envs, bundle_identifier)
    existing = _FLAVORS_START_RE.search(text)
    if existing:
        end = _block_end(text, existing.end() - 1)
        if end != -1:
            return text[: existing.start()] + block + text[end:]

    default_config = _DEFAULT_CONFIG_RE.search(text)
    if default_config:
        end = _block_end(text, default_config.end() - 1)
        if end != -1:
            return f"{text[:end]}\n{block}\n{text[end:]}"
    android = _ANDROID_OPEN_RE.search(text)
    if android:
        return f"{text[: android.end()]}\n{block}\n{text[android.end():]}"
    return text


def ensure_matching_fallbacks(text: str) -> str:
    """Let every flavor fall back to the plain debug/release build types."""
    if "matchingFallbacks" in text:
        return text
    return _DEBUG_SIGNING_RE.sub(
        lambda m: f"{m.group(1)}\n            matchingFallbacks = ['debug', 'release']",
        text,
        count=1,
    )


def patch_gradle_for_envs(text: str, envs: list[str], bundle_identifier: str) -> str:
    text = set_env_config_files(text, envs)
    text = set_product_flavors(text, envs, bundle_identifier)
    return ensure_matching_fallbacks(text)


# ---------------------------------------------------------------------------
# Xcode schemes
# ---------------------------------------------------------------------------


def build_pre_action(buildable_reference: str, env: str) -> str:
    """Scheme pre-action that copies ``.env.<env>`` over ``.env`` before building."""
    return (
        "      <PreActions>\n"
        "         <ExecutionAction\n"
        '            ActionType = "Xcode.IDEStandardExecutionActionsCore.ExecutionActionType.ShellScriptAction">\n'
        "            <ActionContent\n"
        '               title = "Run Script"\n'
        f'               scriptText = "cp &quot;${{PROJECT_DIR}}/../.env.{env}&quot; '
        '&quot;${PROJECT_DIR}/../.env&quot;&#10;">\n'
        "               <EnvironmentBuildable>\n"
        f"{buildable_reference}\n"
        "               </EnvironmentBuildable>\n"
        "            </ActionContent>\n"
        "         </ExecutionAction>\n"
        "      </PreActions>\n"
    )


def inject_pre_action(content: str, tag: str, pre_action: str) -> str:
    """Replace the pre-actions of the ``<tag>`` section with *pre_action*."""
    section_re = re.compile(rf"<{tag}[^>]*>[\s\S]*?</{tag}>")
    match = section_re.search(content)
    if match is None:
        return content
    section = _PRE_ACTIONS_RE.sub("", match.group(0))
    section = re.sub(rf"(<{tag}[^>]*>)", lambda m: f"{m.group(1)}\n{pre_action.rstrip()}", section, count=1)
    return content[: match.start()] + section + content[match.end():]


def set_scheme_configurations(content: str, env: str) -> str:
    """Point every scheme action at the build configuration of *env*."""
    return _SCHEME_CONFIGURATION_RE.sub(
        lambda m: f'buildConfiguration = "{env_configuration_name(m.group(1), env)}"', content
    )


def build_env_scheme(base: str, buildable_reference: str, env: str) -> str:
    """Derive the scheme for *env* from the base scheme content."""
    content = _SCHEME_OPEN_RE.sub(lambda m: SCHEME_HEADER, base, count=1)
    content = set_scheme_configurations(content, env)
    pre_action = build_pre_action(buildable_reference, env)
    content = inject_pre_action(content, "BuildAction", pre_action)
    return inject_pre_action(content, "LaunchAction", pre_action)


def base_buildable_reference(scheme: str) -> str | None:
    match = _BUILDABLE_REF_RE.search(scheme)
    return match.group(0) if match else None


# ---------------------------------------------------------------------------
# Xcode configurations and Podfile
# ---------------------------------------------------------------------------


def add_env_build_configurations(
    text: str, project_name: str, bundle_identifier: str, envs: list[str]
) -> str:
    """Add ``Debug<Env>``/``Release<Env>`` to the pbxproj for each non-production env.

    The app target's clones get the env application id and Info plist.
    """
    for env in envs:
        overrides = {
            "PRODUCT_BUNDLE_IDENTIFIER": env_application_id(bundle_identifier, env),
            "INFOPLIST_FILE": f"{project_name}/{env_info_plist(env)}",
        }
        for base in BASE_CONFIGURATIONS:
            text = add_build_configuration(
                text,
                base,
                env_configuration_name(base, env),
                target=project_name,
                overrides=overrides,
            )
    return text


def build_podfile_project_line(project_name: str, envs: list[str]) -> str:
    mappings = ", ".join(
        f"'{env_configuration_name(base, env)}' => :{base.lower()}"
        for env in envs
        for base in BASE_CONFIGURATIONS
    )
    return f"project '{project_name}', {mappings}\n"


def set_podfile_configurations(text: str, project_name: str, envs: list[str]) -> str:
    """Tell CocoaPods whether each env configuration is a debug or release build.

    Without the mapping CocoaPods builds unknown configurations as release.
    """
    if not envs:
        return text
    line = build_podfile_project_line(project_name, envs)
    if _PODFILE_PROJECT_RE.search(text):
        return _PODFILE_PROJECT_RE.sub(lambda m: line, text, count=1)
    prepare = _PODFILE_PREPARE_RE.search(text)
    if prepare:
        return f"{text[: prepare.end()]}{line}{text[prepare.end():]}"
    target = _PODFILE_TARGET_RE.search(text)
    if target:
        return f"{text[: target.start()]}{line}\n{text[target.start():]}"
    return f"{line}{text}"


# ---------------------------------------------------------------------------
# package.json scripts
# ---------------------------------------------------------------------------


def env_scripts(environments: list[str], project_name: str, bundle_identifier: str) -> dict[str, str]:
    others, _ = split_envs(environments)
    scripts: dict[str, str] = {}
    for env in others:
        scripts[f"android:{env}"] = (
            f"react-native run-android --mode={env}debug --appId={env_application_id(bundle_identifier, env)}"
        )
        scripts[f"android:{env}-release"] = f"react-native run-android --mode={env}release"
        scripts[f"android:build-{env}"] = (
            f"cd android && ./gradlew app:assemble{capitalize(env)}Release && cd .."
        )
    scripts["android:prod"] = (
        f"react-native run-android --mode=productiondebug --appId={bundle_identifier}"
    )
    scripts["android:prod-release"] = "react-native run-android --mode=productionrelease"
    scripts["android:build-prod"] = "cd android && ./gradlew app:assembleProductionRelease && cd .."
    scripts["android:bundle"] = (
        "cd android && ./gradlew clean && ./gradlew bundleProductionRelease && cd .."
    )
    if "development" in others:
        scripts["android:build"] = "cd android && ./gradlew app:assembleDevelopmentRelease && cd .."
    for env in others:
        scripts[f"ios:{env}"] = f"react-native run-ios --scheme '{scheme_name(project_name, env)}'"
    scripts["ios:prod"] = f"react-native run-ios --scheme '{project_name}'"
    return scripts


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------


class EnvironmentsFeature(Feature):
    """Multi-environment builds for Android flavors and iOS schemes."""

    name = "environments"

    def enabled(self, config: ProjectConfig) -> bool:
        return bool(config.environments)

    async def materialize(self, dest: Path, config: ProjectConfig) -> list[str]:
        warnings: list[str] = []
        others, envs = split_envs(config.environments)

        await asyncio.to_thread(self.write_env_files, dest, envs, warnings)
        if (dest / ANDROID_MAIN).is_dir():
            await asyncio.to_thread(self.copy_android_sources, dest, config, others, warnings)
        if not (dest / BUILD_GRADLE).is_file() and (dest / "android").is_dir():
            warnings.append(f"[{self.name}] {BUILD_GRADLE} does not exist, flavors not added")
        await self.edit(
            dest,
            BUILD_GRADLE,
            lambda t: patch_gradle_for_envs(t, envs, config.bundle_identifier),
            warnings,
        )
        await asyncio.to_thread(self.write_schemes, dest, config, others, warnings)
        if others and (dest / "ios").is_dir():
            name = config.project_name
            await asyncio.to_thread(self.write_info_plists, dest, config, others, warnings)
            await self.edit(
                dest,
                f"ios/{name}.xcodeproj/project.pbxproj",
                lambda t: add_env_build_configurations(t, name, config.bundle_identifier, others),
                warnings,
            )
            await self.edit(
                dest, "ios/Podfile", lambda t: set_podfile_configurations(t, name, others), warnings
            )
        await self.update_package(
            dest,
            warnings,
            scripts=env_scripts(config.environments, config.project_name, config.bundle_identifier),
        )
        return warnings

    def write_env_files(self, dest: Path, envs: list[str], warnings: list[str]) -> None:
        for env in envs:
            path = dest / f".env.{env}"
            if path.exists():
                continue
            try:
                write_text(path, f"# {env.upper()} environment variables\n")
            except OSError as exc:
                warnings.append(f"[{self.name}] Could not write {path.name}: {exc}")

    def copy_android_sources(
        self, dest: Path, config: ProjectConfig, envs: list[str], warnings: list[str]
    ) -> None:
        """Give each environment its own source set, minus the Kotlin sources."""
        main = dest / ANDROID_MAIN
        ignore = shutil.ignore_patterns("java", "*.kt")
        for env in envs:
            env_dir = main.parent / env
            try:
                shutil.copytree(main, env_dir, ignore=ignore, dirs_exist_ok=True)
                edit_text(
                    env_dir / "res/values/strings.xml",
                    lambda t, env=env: upsert_string_resource(
                        t, "app_name", env_app_name(config.display_name, env)
                    ),
                )
            except (OSError, UnicodeDecodeError) as exc:
                warnings.append(f"[{self.name}] Could not create source set for {env}: {exc}")

    def write_schemes(
        self, dest: Path, config: ProjectConfig, envs: list[str], warnings: list[str]
    ) -> None:
        schemes_dir = dest / f"ios/{config.project_name}.xcodeproj/xcshareddata/xcschemes"
        base_path = schemes_dir / f"{config.project_name}.xcscheme"
        if not base_path.is_file():
            return
        try:
            base = read_text(base_path)
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"[{self.name}] Could not read {base_path.name}: {exc}")
            return
        reference = base_buildable_reference(base)
        if reference is None:
            warnings.append(f"[{self.name}] No BuildableReference in {base_path.name}, schemes skipped")
            return

        targets = {PRODUCTION_ENV: base_path}
        for env in envs:
            targets[env] = schemes_dir / f"{scheme_name(config.project_name, env)}.xcscheme"
        for env, path in targets.items():
            try:
                write_text(path, build_env_scheme(base, reference, env))
            except OSError as exc:
                warnings.append(f"[{self.name}] Could not write {path.name}: {exc}")

    def write_info_plists(
        self, dest: Path, config: ProjectConfig, envs: list[str], warnings: list[str]
    ) -> None:
        """Copy the base Info plist once per env with the env display name."""
        base_path = dest / f"ios/{config.project_name}/Info.plist"
        if not base_path.is_file():
            return
        try:
            base = read_text(base_path)
        except (OSError, UnicodeDecodeError) as exc:
            warnings.append(f"[{self.name}] Could not read {base_path.name}: {exc}")
            return
        for env in envs:
            path = base_path.with_name(env_info_plist(env))
            content = upsert_plist_string(
                base, "CFBundleDisplayName", env_app_name(config.display_name, env)
            )
            try:
                write_text(path, content)
            except OSError as exc:
                warnings.append(f"[{self.name}] Could not write {path.name}: {exc}")
