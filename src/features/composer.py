"""Runs the optional feature modules in their fixed order."""

from __future__ import annotations

from pathlib import Path

from src.config import ProjectConfig
from src.features.app_root import AppRootFeature
from src.features.base import Feature
from src.features.environments import EnvironmentsFeature
from src.features.firebase import FirebaseFeature
from src.features.localization import LocalizationFeature
from src.features.maps import MapsFeature
from src.features.navigation import NavigationFeature
from src.features.storage import StorageFeature
from src.features.templates import TemplateRenderer
from src.features.theme import ThemeFeature
from src.utils import print_warning


class FeatureComposer:
    """Applies every enabled feature to a materialized tree.

    The order is fixed: environments, firebase, storage, navigation,
    localization, theme, app_root, maps.  Later features may rewrite files
    earlier ones touched (maps strips Google blocks that firebase anchored
    on), so the order is part of the output contract.
    """

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        renderer = renderer or TemplateRenderer()
        self.features: list[Feature] = [
            EnvironmentsFeature(renderer),
            FirebaseFeature(renderer),
            StorageFeature(renderer),
            NavigationFeature(renderer),
            LocalizationFeature(renderer),
            ThemeFeature(renderer),
            AppRootFeature(renderer),
            MapsFeature(renderer),
        ]

    def active(self, config: ProjectConfig) -> list[Feature]:
        """Features that will run for *config*, in execution order."""
        return [feature for feature in self.features if feature.enabled(config)]

    async def apply(self, dest: Path, config: ProjectConfig) -> list[str]:
        """Run the active features sequentially.

        Returns:
            Warnings from every feature, in execution order.
        """
        warnings: list[str] = []
        for feature in self.active(config):
            feature_warnings = await feature.materialize(dest, config)
            for warning in feature_warnings:
                print_warning(f"  Warning: {warning}")
            warnings.extend(feature_warnings)
        return warnings
