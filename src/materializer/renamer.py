"""Renames template-named directories to their project-specific equivalents."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from src.config import ProjectConfig
from src.materializer.manifest import TemplateManifest
from src.materializer.placeholders import set_main_component_name, set_package_declaration
from src.utils import edit_text, print_warning


def move_path(src: Path, dst: Path, overwrite: bool = False) -> bool:
    """Move *src* to *dst*, creating parents.

    With *overwrite*, directories are merged into an existing *dst* and
    conflicting files are replaced.

    Returns:
        ``False`` when *src* does not exist (nothing to do).
    """
    if not src.exists():
        return False
    if src.resolve() == dst.resolve():
        return True
    dst.parent.mkdir(parents=True, exist_ok=True)
    if dst.exists() and overwrite:
        if src.is_dir() and dst.is_dir():
            for child in list(src.iterdir()):
                move_path(child, dst / child.name, overwrite=True)
            src.rmdir()
            return True
        if dst.is_dir():
            shutil.rmtree(dst)
        else:
            dst.unlink()
    shutil.move(str(src), str(dst))
    return True


def _prune_empty_parents(start: Path, stop: Path) -> None:
    """Remove empty directories from *start* upward, never removing *stop*."""
    current = start
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent


class PathRenamer:
    """Moves template-named paths after placeholder rewriting.

    Every step is gated on its source existing; a missing source means the
    template variant does not ship that platform piece.
    """

    def __init__(self, manifest: TemplateManifest | None = None) -> None:
        self.manifest = manifest or TemplateManifest()

    def apply(self, dest: Path, config: ProjectConfig) -> list[str]:
        """Run every rename step.

        Returns:
            Destination-relative paths that were moved, for reporting.
        """
        moved: list[str] = []
        for rule in self.manifest.renames:
            source, target = rule.resolve(config.project_name)
            if move_path(dest / source, dest / target):
                moved.append(f"{source} -> {target}")

        package_target = self.rename_java_package(dest, config)
        if package_target is not None:
            moved.append(f"{self.manifest.java_package_dir} -> {package_target}")

        scheme = self.rename_scheme(dest, config)
        if scheme is not None:
            moved.append(scheme)
        return moved

    def rename_java_package(self, dest: Path, config: ProjectConfig) -> str | None:
        """Move the template package tree to the bundle identifier's tree.

        ``com/helloworld`` becomes ``com/acme/myapp`` for ``com.acme.myapp``.
        The Kotlin sources get their ``package`` line fixed afterwards.
        """
        java_root = dest / self.manifest.java_root
        old = java_root / self.manifest.java_package_dir
        new = java_root.joinpath(*config.bundle_segments)
        if not old.is_dir():
            return None

        if old.resolve() != new.resolve():
            if new.is_relative_to(old):
                # Target nests inside the old tree (com/helloworld -> com/helloworld/app).
                staging = java_root / f".{config.project_name_lower}-package"
                move_path(old, staging, overwrite=True)
                move_path(staging, new, overwrite=True)
            else:
                move_path(old, new, overwrite=True)
                _prune_empty_parents(old.parent, java_root)

        for name in self.manifest.kotlin_sources:
            source = new / name
            try:
                edit_text(source, lambda t: set_package_declaration(t, config.bundle_identifier))
                if name == "MainActivity.kt":
                    edit_text(source, lambda t: set_main_component_name(t, config.project_name_lower))
            except (OSError, UnicodeDecodeError) as exc:
                print_warning(f"  Warning: could not update {source.name}: {exc}")

        return os.path.relpath(new, java_root).replace(os.sep, "/")

    def rename_scheme(self, dest: Path, config: ProjectConfig) -> str | None:
        """Rename the shared Xcode scheme named after the template project."""
        schemes = dest / f"ios/{config.project_name}.xcodeproj/xcshareddata/xcschemes"
        if not schemes.is_dir():
            return None

        token = self.manifest.project_token
        candidates = sorted(
            p for p in schemes.glob("*.xcscheme") if token.lower() in p.name.lower()
        )
        if not candidates:
            return None

        old = candidates[0]
        new = schemes / f"{config.project_name}.xcscheme"
        move_path(old, new, overwrite=True)
        try:
            edit_text(
                new,
                lambda t: t.replace(token, config.project_name).replace(
                    self.manifest.project_token_lower, config.project_name_lower
                ),
            )
        except (OSError, UnicodeDecodeError) as exc:
            print_warning(f"  Warning: could not update {new.name}: {exc}")
        return f"{old.name} -> {new.name}"
