"""Optional feature modules layered onto a materialized project.

Quick usage::

    from src.features import FeatureComposer

    warnings = await FeatureComposer().apply(config.project_path, config)
"""

from src.features.app_root import AppRootFeature
from src.features.base import Feature
from src.features.composer import FeatureComposer
from src.features.environments import EnvironmentsFeature
from src.features.firebase import FirebaseFeature
from src.features.localization import LocalizationFeature
from src.features.maps import MapsFeature
from src.features.navigation import NavigationFeature
from src.features.storage import StorageFeature
from src.features.templates import TemplateRenderer
from src.features.theme import ThemeFeature

__all__ = [
    "AppRootFeature",
    "EnvironmentsFeature",
    "Feature",
    "FeatureComposer",
    "FirebaseFeature",
    "LocalizationFeature",
    "MapsFeature",
    "NavigationFeature",
    "StorageFeature",
    "TemplateRenderer",
    "ThemeFeature",
]
