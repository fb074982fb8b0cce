"""Literal token substitution over text files."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path


class TextReplacer:
    """Replaces literal tokens in a single left-to-right pass.

    Tokens are matched through one alternation regex, longest token first, so
    ``com.helloworld`` wins over ``helloworld`` at the same offset.  The text
    produced for a match is never scanned again, so a replacement value that
    happens to contain another token (``"HelloWorld Pro"`` as a display name)
    stays intact.

    Args:
        replacements: Ordered ``(token, value)`` pairs.  Empty tokens are
            ignored; a duplicated token keeps its first value.
    """

    def __init__(self, replacements: Iterable[tuple[str, str]]) -> None:
        self.replacements: dict[str, str] = {}
        for token, value in replacements:
            if token and token not in self.replacements:
                self.replacements[token] = value

        tokens = sorted(self.replacements, key=len, reverse=True)
        self._pattern = (
            re.compile("|".join(re.escape(t) for t in tokens)) if tokens else None
        )

    def replace_text(self, text: str) -> str:
        """Return *text* with every token replaced."""
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda m: self.replacements[m.group(0)], text)

    def replace_in_file(self, path: str | Path) -> bool:
        """Rewrite *path* in place.

        Returns:
            ``True`` when the file existed and changed.  A missing file is a
            no-op.

        Raises:
            OSError: If the file exists but cannot be read or written.
        """
        file_path = Path(path)
        if not file_path.is_file():
            return False
        original = file_path.read_text(encoding="utf-8")
        updated = self.replace_text(original)
        if updated == original:
            return False
        file_path.write_text(updated, encoding="utf-8")
        return True
