"""Template manifest: which files get rewritten and which paths get renamed.

The manifest is reference data tied to a template version.  A template may
ship its own ``template-manifest.json`` at its root; otherwise the default
manifest for the stock ``HelloWorld`` template is used.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

MANIFEST_FILENAME = "template-manifest.json"


class RenameRule(BaseModel):
    """Destination-relative rename; ``{project}`` expands to the project name."""

    source: str
    target: str

    def resolve(self, project_name: str) -> tuple[str, str]:
        return (self.source, self.target.format(project=project_name))


_DEFAULT_TEXT_FILES = [
    "package.json",
    "app.json",
    "index.js",
    "android/settings.gradle",
    "android/app/src/main/AndroidManifest.xml",
    "ios/Podfile",
    "ios/{template}/Info.plist",
    "ios/{template}/AppDelegate.swift",
    "ios/{template}.xcodeproj/project.pbxproj",
    "ios/{template}.xcworkspace/contents.xcworkspacedata",
]


class TemplateManifest(BaseModel):
    """Placeholder tokens, rewrite targets and rename rules for a template."""

    project_token: str = Field(default="HelloWorld")
    project_token_lower: str = Field(default="helloworld")
    bundle_token: str = Field(default="com.helloworld")
    display_token: str = Field(default="Hello World")

    text_files: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_TEXT_FILES),
        description="Paths rewritten by blanket token substitution; "
        "``{template}`` expands to the project token",
    )
    build_gradle: str = Field(default="android/app/build.gradle")
    root_build_gradle: str = Field(default="android/build.gradle")
    android_manifest: str = Field(default="android/app/src/main/AndroidManifest.xml")
    strings_xml: str = Field(default="android/app/src/main/res/values/strings.xml")
    app_json: str = Field(default="app.json")

    java_root: str = Field(default="android/app/src/main/java")
    kotlin_sources: list[str] = Field(
        default_factory=lambda: ["MainActivity.kt", "MainApplication.kt"]
    )

    renames: list[RenameRule] = Field(
        default_factory=lambda: [
            RenameRule(source="ios/HelloWorld", target="ios/{project}"),
            RenameRule(source="ios/HelloWorld.xcodeproj", target="ios/{project}.xcodeproj"),
            RenameRule(source="ios/HelloWorld.xcworkspace", target="ios/{project}.xcworkspace"),
        ]
    )

    def rewrite_targets(self) -> list[str]:
        """Text files subject to blanket substitution, with tokens expanded."""
        return [f.format(template=self.project_token) for f in self.text_files]

    @property
    def java_package_dir(self) -> str:
        """Package directory of the template's bundle token (``com/helloworld``)."""
        return "/".join(self.bundle_token.split("."))

    @classmethod
    def for_template(cls, template_dir: str | Path) -> "TemplateManifest":
        """Load the manifest shipped with *template_dir*, or the default one."""
        path = Path(template_dir) / MANIFEST_FILENAME
        if path.is_file():
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        return cls()
