"""Template materialization core.

Turns the static ``HelloWorld`` template tree into a project-specific tree:
copy, placeholder substitution, path renaming, and asset projection.

Quick usage::

    from src.materializer import TreeCopier, PlaceholderEngine, PathRenamer

    await TreeCopier(template_dir, config.project_path).copy()
    PlaceholderEngine(manifest).apply(config.project_path, config)
    PathRenamer(manifest).apply(config.project_path, config)
"""

from src.materializer.assets import AssetProjector
from src.materializer.copier import TreeCopier, TreeCopyError, default_exclude
from src.materializer.fonts import FontProjector
from src.materializer.manifest import RenameRule, TemplateManifest
from src.materializer.placeholders import PlaceholderEngine
from src.materializer.renamer import PathRenamer
from src.materializer.replacer import TextReplacer
from src.materializer.results import ExternalStepResult, MaterializeReport, StageResult

__all__ = [
    "AssetProjector",
    "ExternalStepResult",
    "FontProjector",
    "MaterializeReport",
    "PathRenamer",
    "PlaceholderEngine",
    "RenameRule",
    "StageResult",
    "TemplateManifest",
    "TextReplacer",
    "TreeCopier",
    "TreeCopyError",
    "default_exclude",
]
