"""Template tree copying with an exclusion predicate."""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from src.materializer.manifest import MANIFEST_FILENAME

EXCLUDED_DIR_NAMES = frozenset({"node_modules", ".git", "Pods"})
BUILD_DIR_NAME = "build"

ExcludePredicate = Callable[[Path, Path], bool]


class TreeCopyError(Exception):
    """Raised when the template tree cannot be copied.  Fatal for the run."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


def default_exclude(path: Path, root: Path) -> bool:
    """Return ``True`` for entries that never belong in a fresh project.

    Skips VCS metadata, dependency caches, CocoaPods checkouts and ``build``
    output directories.  Files such as ``build.gradle`` are kept.
    """
    rel = path.relative_to(root)
    parts = rel.parts
    if any(part in EXCLUDED_DIR_NAMES for part in parts):
        return True
    if BUILD_DIR_NAME in parts[:-1]:
        return True
    if parts and parts[-1] == BUILD_DIR_NAME and path.is_dir():
        return True
    if len(parts) == 1 and parts[0] == MANIFEST_FILENAME:
        return True
    return False


class TreeCopier:
    """Copies a template tree into a destination root.

    File copies run concurrently in worker threads; directories are created
    up front so no two copies race on the same parent.  Partial copies are
    not rolled back.
    """

    def __init__(
        self,
        source: str | Path,
        destination: str | Path,
        exclude: ExcludePredicate = default_exclude,
        max_workers: int = 16,
    ) -> None:
        self.source = Path(source)
        self.destination = Path(destination)
        self.exclude = exclude
        self._semaphore = asyncio.Semaphore(max_workers)

    # -- Public API --------------------------------------------------------

    async def copy(self) -> int:
        """Copy the tree and rename ``_gitignore`` to ``.gitignore``.

        Returns:
            Number of files copied.

        Raises:
            TreeCopyError: If the source is missing, or any directory or file
                cannot be created.
        """
        if not self.source.is_dir():
            raise TreeCopyError(f"Template directory not found: {self.source}", self.source)

        try:
            files = await asyncio.to_thread(self._prepare)
        except OSError as exc:
            raise TreeCopyError(f"Failed to create destination tree: {exc}", self.destination) from exc

        await asyncio.gather(*(self._copy_file(src, dst) for src, dst in files))

        gitignore = self.destination / "_gitignore"
        if gitignore.exists():
            await asyncio.to_thread(os.replace, gitignore, self.destination / ".gitignore")

        return len(files)

    # -- Internal helpers --------------------------------------------------

    def _prepare(self) -> list[tuple[Path, Path]]:
        """Create destination directories and list the files to copy."""
        self.destination.mkdir(parents=True, exist_ok=True)
        files: list[tuple[Path, Path]] = []

        for current, dirnames, filenames in os.walk(self.source):
            current_path = Path(current)
            # Prune excluded directories so their subtrees are never visited.
            dirnames[:] = sorted(
                d for d in dirnames if not self.exclude(current_path / d, self.source)
            )
            target_dir = self.destination / current_path.relative_to(self.source)
            target_dir.mkdir(parents=True, exist_ok=True)
            for name in sorted(filenames):
                src = current_path / name
                if self.exclude(src, self.source):
                    continue
                files.append((src, target_dir / name))

        return files

    async def _copy_file(self, src: Path, dst: Path) -> None:
        async with self._semaphore:
            try:
                await asyncio.to_thread(shutil.copy2, src, dst)
            except OSError as exc:
                raise TreeCopyError(f"Failed to copy {src}: {exc}", src) from exc
