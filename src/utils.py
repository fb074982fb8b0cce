"""Shared utility functions for the materializer.

Provides async command execution, JSON and text I/O, ``package.json`` editing,
and Rich-based console reporting.  Filesystem helpers are synchronous and
meant to be called through ``asyncio.to_thread`` from async code.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 600,
) -> tuple[int, str, str]:
    """Run an external command asynchronously, capturing its output.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A missing executable is
        reported as return code 127 with the error text in *stderr*.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        return (127, "", f"Command not found: {cmd[0]} ({exc})")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Text / JSON I/O
# ---------------------------------------------------------------------------


def read_text(path: str | Path) -> str:
    """Read a UTF-8 text file."""
    return Path(path).read_text(encoding="utf-8")


def write_text(path: str | Path, content: str) -> Path:
    """Write a UTF-8 text file, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")
    return file_path


def edit_text(path: str | Path, transform: Callable[[str], str]) -> bool:
    """Apply *transform* to a text file in place.

    The file is only rewritten when the transform changed its content.

    Returns:
        ``True`` if the file existed and was modified, ``False`` otherwise.
    """
    file_path = Path(path)
    if not file_path.is_file():
        return False
    original = read_text(file_path)
    updated = transform(original)
    if updated == original:
        return False
    file_path.write_text(updated, encoding="utf-8")
    return True


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    data = json.loads(read_text(path))
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def dump_json(data: dict[str, Any] | list[Any]) -> str:
    """Serialise *data* the way npm tooling does: 2-space indent, trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON, creating parent directories."""
    return write_text(path, dump_json(data))


# ---------------------------------------------------------------------------
# package.json editing
# ---------------------------------------------------------------------------


def update_package_json(
    project_root: str | Path,
    *,
    add_dependencies: dict[str, str] | None = None,
    remove_dependencies: list[str] | None = None,
    scripts: dict[str, str] | None = None,
    keep_existing_scripts: bool = False,
) -> bool:
    """Edit the dependency set and scripts of ``<project_root>/package.json``.

    Args:
        project_root: Destination tree root.
        add_dependencies: ``{name: version}`` merged into ``dependencies``.
        remove_dependencies: Names deleted from ``dependencies``.
        scripts: ``{name: command}`` merged into ``scripts``.
        keep_existing_scripts: Do not overwrite scripts that already exist.

    Returns:
        ``True`` if the file existed and was rewritten.
    """
    path = Path(project_root) / "package.json"
    if not path.is_file():
        return False

    data = load_json(path)
    if add_dependencies or remove_dependencies:
        deps = dict(data.get("dependencies") or {})
        for name in remove_dependencies or []:
            deps.pop(name, None)
        deps.update(add_dependencies or {})
        data["dependencies"] = deps
    if scripts:
        current = dict(data.get("scripts") or {})
        for name, command in scripts.items():
            if keep_existing_scripts and name in current:
                continue
            current[name] = command
        data["scripts"] = current

    save_json(data, path)
    return True


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def capitalize(value: str) -> str:
    """Upper-case the first character only (``staging`` -> ``Staging``)."""
    return value[:1].upper() + value[1:]


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(name: str) -> None:
    """Print a full-width rule announcing a materialization stage."""
    console.print(Rule(f"[bold bright_cyan] {name} [/bold bright_cyan]", style="bright_cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def create_progress() -> Progress:
    """Create a Rich progress display for materialization stages.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
    )
