"""Materialization outcome models.

Pydantic v2 models recording what every stage did, how long it took and which
non-fatal warnings it produced, plus the outcome of the external steps that
run after materialization.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, computed_field


# ---------------------------------------------------------------------------
# Per-stage result
# ---------------------------------------------------------------------------

class StageResult(BaseModel):
    """Outcome of one materialization stage (copy, placeholders, ...)."""

    name: str = Field(..., description="Stage name")
    duration_seconds: float = Field(default=0.0, ge=0.0)
    items: int = Field(default=0, ge=0, description="Files copied, paths moved, ...")
    warnings: list[str] = Field(default_factory=list)
    details: list[str] = Field(default_factory=list, description="Human-readable notes")


# ---------------------------------------------------------------------------
# External step result (install, pods, git)
# ---------------------------------------------------------------------------

class ExternalStepResult(BaseModel):
    """Outcome of one external command run after materialization."""

    name: str = Field(..., description="'install', 'pods' or 'git'")
    command: str = Field(default="")
    success: bool = Field(default=False)
    skipped: bool = Field(default=False)
    message: str = Field(default="", description="Error output or skip reason")
    recovery_hint: str = Field(default="", description="Command to run manually on failure")


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------

class MaterializeReport(BaseModel):
    """Complete record of a single materialization run."""

    project_name: str = Field(...)
    project_path: str = Field(...)
    stages: list[StageResult] = Field(default_factory=list)
    external_steps: list[ExternalStepResult] = Field(default_factory=list)
    started_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO-8601 timestamp of when the run started",
    )

    @computed_field  # type: ignore[misc]
    @property
    def warnings(self) -> list[str]:
        """All stage warnings in stage order."""
        return [w for stage in self.stages for w in stage.warnings]

    @computed_field  # type: ignore[misc]
    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @computed_field  # type: ignore[misc]
    @property
    def duration_seconds(self) -> float:
        return round(sum(stage.duration_seconds for stage in self.stages), 3)

    @computed_field  # type: ignore[misc]
    @property
    def external_success(self) -> bool:
        """True when no external step failed (skipped steps count as success)."""
        return all(step.success or step.skipped for step in self.external_steps)

    def stage(self, name: str) -> StageResult | None:
        """Return the recorded result for *name*, if the stage ran."""
        for result in self.stages:
            if result.name == name:
                return result
        return None

    def save(self, path: Path) -> None:
        """Persist the report to a JSON file, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")

    def summary_dict(self) -> dict[str, Any]:
        """Return a condensed summary suitable for the console table."""
        summary: dict[str, Any] = {
            "Project": self.project_name,
            "Location": self.project_path,
        }
        for stage in self.stages:
            summary[f"Stage: {stage.name}"] = (
                f"{stage.items} item(s), {stage.duration_seconds:.2f}s"
                + (f", {len(stage.warnings)} warning(s)" if stage.warnings else "")
            )
        for step in self.external_steps:
            status = "skipped" if step.skipped else ("ok" if step.success else "failed")
            summary[f"Step: {step.name}"] = status
        return summary
