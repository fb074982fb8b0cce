"""Placeholder substitution and format-aware corrective passes.

Blanket token substitution is not enough for structured files: a display name
that contains the template token, or a template that already carries a
slightly different value, would leave JSON, XML and plist files subtly wrong.
The pure ``str -> str`` helpers below fix each format exactly.  Every helper
is idempotent: applying it twice yields the same text as applying it once.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape

from src.config import ProjectConfig
from src.materializer.manifest import TemplateManifest
from src.materializer.replacer import TextReplacer
from src.utils import dump_json, edit_text, print_warning

_PLIST_TAIL_RE = re.compile(r"</dict>\s*</plist>")
_RESOURCES_TAIL_RE = re.compile(r"</resources>")
_MANIFEST_PACKAGE_RE = re.compile(r'(<manifest\b[^>]*?\s)package="[^"]*"')
_MANIFEST_OPEN_RE = re.compile(r"<manifest\b([^>]*?)(\s*/?>)")
_BUNDLE_ID_RE = re.compile(r"(PRODUCT_BUNDLE_IDENTIFIER\s*=\s*)[^;]*;")
_NAMESPACE_RE = re.compile(r'namespace\s+"[^"]+"')
_DEFAULT_CONFIG_RE = re.compile(r"(defaultConfig\s*\{)([\s\S]*?)(\})")
_APPLICATION_ID_RE = re.compile(r'applicationId\s+"[^"]+"')
_PACKAGE_DECL_RE = re.compile(r"^package\s+[^\s;]+", re.MULTILINE)
_MAIN_COMPONENT_RE = re.compile(r'(getMainComponentName\(\):\s*String\s*=\s*)"[^"]*"')


# ---------------------------------------------------------------------------
# Pure corrective helpers
# ---------------------------------------------------------------------------


def _map_strings(value: Any, replace: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return replace(value)
    if isinstance(value, list):
        return [_map_strings(item, replace) for item in value]
    if isinstance(value, dict):
        return {key: _map_strings(item, replace) for key, item in value.items()}
    return value


def set_json_display_name(
    text: str,
    display_name: str,
    replace: Callable[[str], str] | None = None,
) -> str:
    """Rewrite an ``app.json`` document as data rather than text.

    *replace* is applied to every string value, then the top-level
    ``displayName`` is set, so quotes or backslashes in a substituted value
    cannot break the document.  It is re-serialised with 2-space indentation
    only when something changed; otherwise *text* is returned untouched.

    Raises:
        ValueError: If *text* is not a JSON object.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("app.json root is not an object")
    updated = _map_strings(data, replace) if replace else dict(data)
    updated["displayName"] = display_name
    if updated == data:
        return text
    return dump_json(updated)


def ensure_manifest_package(text: str, bundle_identifier: str) -> str:
    """Make the root ``<manifest>`` element carry ``package="<bundle id>"``."""
    attribute = f'package="{escape(bundle_identifier)}"'
    if _MANIFEST_PACKAGE_RE.search(text):
        return _MANIFEST_PACKAGE_RE.sub(lambda m: m.group(1) + attribute, text, count=1)
    return _MANIFEST_OPEN_RE.sub(
        lambda m: f"<manifest{m.group(1)} {attribute}{m.group(2)}", text, count=1
    )


def upsert_plist_string(text: str, key: str, value: str) -> str:
    """Replace or insert a ``<key>``/``<string>`` pair in a plist dict."""
    replacement = f"<key>{key}</key>\n\t<string>{escape(value)}</string>"
    pattern = re.compile(rf"<key>{re.escape(key)}</key>\s*<string>[^<]*</string>")
    if pattern.search(text):
        return pattern.sub(lambda m: replacement, text, count=1)
    return _PLIST_TAIL_RE.sub(
        lambda m: f"\t{replacement}\n</dict>\n</plist>", text, count=1
    )


def upsert_plist_array(text: str, key: str, values: list[str], after_key: str | None = None) -> str:
    """Make the plist array under *key* contain every entry of *values*.

    A missing array is inserted after the entry for *after_key* when that
    entry exists, otherwise before the closing ``</dict>``.  Existing arrays
    only gain the entries they lack.
    """
    key_tag = f"<key>{key}</key>"
    start = text.find(key_tag)
    if start != -1:
        array_open = text.find("<array>", start)
        array_close = text.find("</array>", start)
        if array_open == -1 or array_close == -1:
            return text
        existing = re.findall(r"<string>([^<]*)</string>", text[array_open:array_close])
        existing = [e.strip() for e in existing]
        missing = [v for v in values if escape(v) not in existing]
        if not missing:
            return text
        lines = "\n".join(f"\t\t<string>{escape(v)}</string>" for v in missing)
        return f"{text[:array_close].rstrip()}\n{lines}\n\t{text[array_close:]}"

    items = "\n".join(f"\t\t<string>{escape(v)}</string>" for v in values)
    section = f"\t{key_tag}\n\t<array>\n{items}\n\t</array>"
    if after_key:
        after_re = re.compile(
            rf"(\t?<key>{re.escape(after_key)}</key>\s*(?:<true/>|<false/>|<string>[^<]*</string>))"
        )
        if after_re.search(text):
            return after_re.sub(lambda m: f"{m.group(1)}\n{section}", text, count=1)
    return _PLIST_TAIL_RE.sub(lambda m: f"{section}\n</dict>\n</plist>", text, count=1)


def set_bundle_identifier(text: str, bundle_identifier: str) -> str:
    """Rewrite every ``PRODUCT_BUNDLE_IDENTIFIER = ...;`` assignment."""
    return _BUNDLE_ID_RE.sub(lambda m: f"{m.group(1)}{bundle_identifier};", text)


def android_string_escape(value: str) -> str:
    """Escape *value* for an Android ``<string>`` resource.

    aapt2 treats backslashes and quotes as markup inside string resources, so
    they are backslash-escaped on top of the XML entity escaping.
    """
    value = value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')
    return escape(value)


def upsert_string_resource(text: str, name: str, value: str) -> str:
    """Replace or insert ``<string name="...">`` in an Android resources file."""
    replacement = f'<string name="{name}">{android_string_escape(value)}</string>'
    pattern = re.compile(rf'<string name="{re.escape(name)}">[^<]*</string>')
    if pattern.search(text):
        return pattern.sub(lambda m: replacement, text, count=1)
    return _RESOURCES_TAIL_RE.sub(
        lambda m: f"    {replacement}\n</resources>", text, count=1
    )


def patch_build_gradle(text: str, bundle_identifier: str) -> str:
    """Force the Android ``namespace`` and ``defaultConfig.applicationId``."""
    text = _NAMESPACE_RE.sub(lambda m: f'namespace "{bundle_identifier}"', text)

    def _default_config(match: re.Match[str]) -> str:
        body = _APPLICATION_ID_RE.sub(
            lambda m: f'applicationId "{bundle_identifier}"', match.group(2), count=1
        )
        return f"{match.group(1)}{body}{match.group(3)}"

    return _DEFAULT_CONFIG_RE.sub(_default_config, text, count=1)


def set_package_declaration(text: str, package: str) -> str:
    """Rewrite the first ``package ...`` line of a Kotlin/Java source."""
    return _PACKAGE_DECL_RE.sub(lambda m: f"package {package}", text, count=1)


def set_main_component_name(text: str, component: str) -> str:
    """Rewrite the literal returned by ``getMainComponentName()``."""
    return _MAIN_COMPONENT_RE.sub(lambda m: f'{m.group(1)}"{component}"', text, count=1)


# ---------------------------------------------------------------------------
# PlaceholderEngine
# ---------------------------------------------------------------------------


class PlaceholderEngine:
    """Rewrites the manifest's text files for one project.

    Runs on the freshly copied destination tree, before any path renaming,
    so every path it touches still carries the template's project token.
    """

    def __init__(self, manifest: TemplateManifest | None = None) -> None:
        self.manifest = manifest or TemplateManifest()

    def build_replacer(self, config: ProjectConfig) -> TextReplacer:
        m = self.manifest
        return TextReplacer(
            [
                (m.project_token, config.project_name),
                (m.project_token_lower, config.project_name_lower),
                (m.bundle_token, config.bundle_identifier),
                (m.display_token, config.display_name),
            ]
        )

    def apply(self, dest: Path, config: ProjectConfig) -> list[str]:
        """Run blanket substitution, then the structural corrective passes.

        ``app.json`` is never substituted as plain text; its string values
        go through the same tokens after the document is parsed.

        Returns:
            Human-readable warnings for files that could not be processed.
        """
        warnings: list[str] = []
        replacer = self.build_replacer(config)
        m = self.manifest

        for rel in [*m.rewrite_targets(), m.build_gradle]:
            if rel == m.app_json:
                continue
            try:
                replacer.replace_in_file(dest / rel)
            except (OSError, UnicodeDecodeError) as exc:
                warnings.append(f"Could not rewrite {rel}: {exc}")

        plist = f"ios/{m.project_token}/Info.plist"
        pbxproj = f"ios/{m.project_token}.xcodeproj/project.pbxproj"
        passes = [
            (m.build_gradle, lambda t: patch_build_gradle(t, config.bundle_identifier)),
            (m.android_manifest, lambda t: ensure_manifest_package(t, config.bundle_identifier)),
            (
                plist,
                lambda t: upsert_plist_string(
                    upsert_plist_string(t, "CFBundleDisplayName", config.display_name),
                    "CFBundleName",
                    config.display_name,
                ),
            ),
            (pbxproj, lambda t: set_bundle_identifier(t, config.bundle_identifier)),
            (m.strings_xml, lambda t: upsert_string_resource(t, "app_name", config.display_name)),
        ]
        for rel, transform in passes:
            try:
                edit_text(dest / rel, transform)
            except (OSError, UnicodeDecodeError) as exc:
                warnings.append(f"Could not update {rel}: {exc}")

        warnings.extend(self._rewrite_app_json(dest, config, replacer))
        for warning in warnings:
            print_warning(f"  Warning: {warning}")
        return warnings

    def _rewrite_app_json(
        self, dest: Path, config: ProjectConfig, replacer: TextReplacer
    ) -> list[str]:
        rel = self.manifest.app_json
        try:
            edit_text(
                dest / rel,
                lambda t: set_json_display_name(t, config.display_name, replacer.replace_text),
            )
        except OSError as exc:
            return [f"Could not update {rel}: {exc}"]
        except ValueError as exc:
            # Undecodable bytes or invalid JSON; the file is left as copied.
            return [f"Could not parse {rel}: {exc}"]
        return []
