"""React Native project materialization configuration.

Centralised, typed configuration for a single materialization run. All
settings use Pydantic v2 models so they can be validated at construction time
(before anything touches the filesystem) and serialised to/from JSON or
environment variables without boiler-plate.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator


PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
BUNDLE_ID_PATTERN = re.compile(r"^[a-z][a-z0-9]*(\.[a-z][a-z0-9]*)+$")

PRODUCTION_ENV = "production"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class PackageManager(str, Enum):
    """Package manager used for dependency installation."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class NavigationMode(str, Enum):
    """Which navigation scaffold is materialized."""

    NONE = "none"
    APP_ONLY = "app-only"
    WITH_AUTH = "with-auth"


class MapsProvider(str, Enum):
    """Map rendering library wired into the project."""

    REACT_NATIVE_MAPS = "react-native-maps"
    MAPBOX = "mapbox"


class FirebaseModule(str, Enum):
    """Optional Firebase submodules."""

    ANALYTICS = "analytics"
    REMOTE_CONFIG = "remote-config"
    MESSAGING = "messaging"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FirebaseSetupError(Exception):
    """Raised when the Google config files for Firebase are incomplete."""

    def __init__(self, message: str, missing: list[Path] | None = None) -> None:
        self.missing = missing or []
        super().__init__(message)


# ---------------------------------------------------------------------------
# Feature configuration
# ---------------------------------------------------------------------------


def _normalise_envs(values: list[str]) -> list[str]:
    """Lower-case, strip and de-duplicate environment names, keeping order."""
    seen: list[str] = []
    for raw in values:
        env = str(raw).strip().lower()
        if env and env not in seen:
            seen.append(env)
    return seen


class GoogleFiles(BaseModel):
    """The pair of Google service config files for one environment."""

    android_json: Path
    ios_plist: Path

    def missing(self) -> list[Path]:
        """Return the files of the pair that do not exist on disk."""
        return [p for p in (self.android_json, self.ios_plist) if not p.is_file()]


class FirebaseConfig(BaseModel):
    """Firebase enablement, submodules, and per-environment config sources."""

    enabled: bool = Field(default=False)
    modules: list[FirebaseModule] = Field(default_factory=list)
    google_files_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding google-services.json / GoogleService-Info.plist, "
        "or one subdirectory per environment",
    )
    environments: list[str] = Field(default_factory=list)

    @field_validator("environments")
    @classmethod
    def _environments(cls, value: list[str]) -> list[str]:
        envs = _normalise_envs(value)
        if len(envs) > 1 and PRODUCTION_ENV not in envs:
            envs.append(PRODUCTION_ENV)
        return envs

    @property
    def multi_env(self) -> bool:
        return len(self.environments) > 1

    def has_module(self, module: FirebaseModule) -> bool:
        return self.enabled and module in self.modules

    def files_by_env(self) -> dict[str, GoogleFiles]:
        """Resolve the Google config files for every Firebase environment.

        A single environment (or none listed) reads both files straight from
        ``google_files_dir``; multiple environments read them from
        ``google_files_dir/<env>/``.
        """
        if self.google_files_dir is None:
            return {}
        base = Path(self.google_files_dir)
        if not self.multi_env:
            env = self.environments[0] if self.environments else PRODUCTION_ENV
            return {
                env: GoogleFiles(
                    android_json=base / "google-services.json",
                    ios_plist=base / "GoogleService-Info.plist",
                )
            }
        return {
            env: GoogleFiles(
                android_json=base / env / "google-services.json",
                ios_plist=base / env / "GoogleService-Info.plist",
            )
            for env in self.environments
        }

    def validate_google_files(self) -> dict[str, GoogleFiles]:
        """Check that every environment has both platform config files.

        Raises:
            FirebaseSetupError: If any file is missing.  Nothing is copied
                until this check passes.
        """
        files = self.files_by_env()
        missing: list[Path] = []
        for pair in files.values():
            missing.extend(pair.missing())
        if missing:
            listing = ", ".join(str(p) for p in missing)
            raise FirebaseSetupError(
                f"Firebase config files not found: {listing}", missing=missing
            )
        return files


class MapsConfig(BaseModel):
    """Maps enablement, provider, and Google Maps API key."""

    enabled: bool = Field(default=False)
    provider: MapsProvider = Field(default=MapsProvider.REACT_NATIVE_MAPS)
    google_maps: bool = Field(
        default=False, description="Use the Google provider for react-native-maps"
    )
    api_key: Optional[str] = Field(default=None)

    @property
    def uses_google(self) -> bool:
        return (
            self.enabled
            and self.provider == MapsProvider.REACT_NATIVE_MAPS
            and self.google_maps
        )


class StorageConfig(BaseModel):
    """Explicit opt-in for the persisted key-value storage layer."""

    enabled: bool = Field(default=False)


class NavigationConfig(BaseModel):
    """Navigation scaffold selection.

    ``persist`` is the answer to the follow-up asked when ``with-auth`` needs
    the storage layer and the user did not opt into it up front.
    """

    mode: NavigationMode = Field(default=NavigationMode.NONE)
    persist: bool = Field(default=True)


class LocalizationConfig(BaseModel):
    """Localization module settings."""

    enabled: bool = Field(default=False)
    default_language: str = Field(default="ru", min_length=1)
    with_remote_config: bool = Field(default=False)
    persist: bool = Field(default=True)

    @field_validator("default_language")
    @classmethod
    def _language(cls, value: str) -> str:
        lang = value.strip()
        if not re.fullmatch(r"[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})*", lang):
            raise ValueError(f"Invalid language code: {value!r}")
        return lang


class ThemeConfig(BaseModel):
    """Theme module settings."""

    enabled: bool = Field(default=False)
    persist: bool = Field(default=True)


# ---------------------------------------------------------------------------
# Project configuration (the resolved ConfigModel)
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Fully-resolved configuration consumed once by ``Materializer``.

    Instances are created by the CLI entry point (or loaded from JSON) and are
    never mutated during materialization.
    """

    project_name: str = Field(..., description="Project name used for renames and iOS paths")
    bundle_identifier: str = Field(default="", description="Reverse-domain application id")
    display_name: str = Field(default="", description="Human-facing app name")
    package_manager: PackageManager = Field(default=PackageManager.PNPM)

    output_dir: Path = Field(default=Path("."))
    template_dir: Optional[Path] = Field(default=None)

    skip_install: bool = Field(default=False)
    skip_git: bool = Field(default=False)
    skip_pods: bool = Field(default=False)
    auto_yes: bool = Field(default=False)
    overwrite: bool = Field(default=False)

    environments: list[str] = Field(default_factory=list)
    firebase: FirebaseConfig = Field(default_factory=FirebaseConfig)
    maps: MapsConfig = Field(default_factory=MapsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)

    splash_screen_dir: Optional[Path] = Field(default=None)
    app_icon_dir: Optional[Path] = Field(default=None)
    fonts_dir: Optional[Path] = Field(default=None)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("project_name")
    @classmethod
    def _project_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("Project name is required")
        if len(name) > 214 or not PROJECT_NAME_PATTERN.match(name):
            raise ValueError(
                f"Invalid project name {value!r}: must start with a letter and "
                "contain only letters, digits, '-' or '_'"
            )
        return name

    @field_validator("bundle_identifier")
    @classmethod
    def _bundle_identifier(cls, value: str) -> str:
        bundle_id = value.strip()
        if bundle_id and not BUNDLE_ID_PATTERN.match(bundle_id):
            raise ValueError(
                f"Invalid bundle identifier {value!r}: must be in format com.company.app"
            )
        return bundle_id

    @field_validator("environments")
    @classmethod
    def _environments(cls, value: list[str]) -> list[str]:
        return _normalise_envs(value)

    @model_validator(mode="after")
    def _defaults(self) -> "ProjectConfig":
        if not self.bundle_identifier:
            default_id = f"com.{re.sub(r'[^a-z0-9]', '', self.project_name.lower())}"
            if not BUNDLE_ID_PATTERN.match(default_id):
                raise ValueError(
                    f"Cannot derive a bundle identifier from {self.project_name!r}; "
                    "pass one explicitly"
                )
            self.bundle_identifier = default_id
        if not self.display_name.strip():
            self.display_name = self.project_name
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def project_path(self) -> Path:
        """Destination tree root."""
        return Path(self.output_dir) / self.project_name

    @property
    def project_name_lower(self) -> str:
        return self.project_name.lower()

    @property
    def bundle_segments(self) -> list[str]:
        return self.bundle_identifier.split(".")

    @computed_field  # type: ignore[misc]
    @property
    def storage_enabled(self) -> bool:
        """Whether the persisted storage layer ends up materialized.

        True when the user opted in explicitly, or when a feature that needs
        persistence is enabled and its follow-up confirmation was accepted.
        """
        if self.storage.enabled:
            return True
        if self.navigation.mode == NavigationMode.WITH_AUTH and self.navigation.persist:
            return True
        if self.localization.enabled and self.localization.persist:
            return True
        if self.theme.enabled and self.theme.persist:
            return True
        return False

    @property
    def storage_required_by(self) -> list[str]:
        """Features that forced the storage layer on without an explicit opt-in."""
        if self.storage.enabled:
            return []
        reasons: list[str] = []
        if self.navigation.mode == NavigationMode.WITH_AUTH and self.navigation.persist:
            reasons.append("auth navigation")
        if self.localization.enabled and self.localization.persist:
            reasons.append("localization")
        if self.theme.enabled and self.theme.persist:
            reasons.append("theme")
        return reasons

    def persisted(self, feature: str) -> bool:
        """Whether *feature* ("auth", "localization", "theme") gets the persisted store.

        Every dependent feature is persisted exactly when the storage layer is
        materialized; the feature name is only validated.
        """
        if feature not in ("auth", "localization", "theme"):
            raise ValueError(f"Unknown persisted feature: {feature!r}")
        return self.storage_enabled

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"storage_enabled"}),
            encoding="utf-8",
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """Load a previously-saved configuration from JSON.

        Args:
            path: The JSON file to read.

        Returns:
            A validated ``ProjectConfig`` instance.
        """
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ProjectConfig":
        """Build a ``ProjectConfig`` from environment variables.

        Recognised variables (all optional except the project name, which may
        also be passed as an override):
            RN_PROJECT_NAME, RN_BUNDLE_ID, RN_DISPLAY_NAME, RN_PACKAGE_MANAGER,
            RN_OUTPUT_DIR, RN_TEMPLATE_DIR, RN_SKIP_INSTALL, RN_SKIP_GIT,
            RN_SKIP_PODS.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("RN_PROJECT_NAME"):
            kwargs["project_name"] = os.environ["RN_PROJECT_NAME"]
        if os.environ.get("RN_BUNDLE_ID"):
            kwargs["bundle_identifier"] = os.environ["RN_BUNDLE_ID"]
        if os.environ.get("RN_DISPLAY_NAME"):
            kwargs["display_name"] = os.environ["RN_DISPLAY_NAME"]
        if os.environ.get("RN_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["RN_PACKAGE_MANAGER"]
        if os.environ.get("RN_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["RN_OUTPUT_DIR"])
        if os.environ.get("RN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["RN_TEMPLATE_DIR"])

        for var, key in (
            ("RN_SKIP_INSTALL", "skip_install"),
            ("RN_SKIP_GIT", "skip_git"),
            ("RN_SKIP_PODS", "skip_pods"),
        ):
            if os.environ.get(var):
                kwargs[key] = os.environ[var].strip().lower() in ("1", "true", "yes")

        kwargs.update(overrides)
        return cls(**kwargs)
