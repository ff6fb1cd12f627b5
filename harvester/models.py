"""Domain models for workflow runs, artifacts and harvest outcomes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkflowRun(BaseModel):
    """One execution of a GitHub Actions workflow.

    Field aliases match the GitHub REST payload so the same model parses API
    responses and serializes manifest entries.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int
    workflow_name: str = Field(alias="name")
    branch: str | None = Field(default=None, alias="head_branch")
    head_sha: str | None = None
    run_number: int | None = None
    event: str | None = None
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Naive and aware datetimes cannot be compared; GitHub reports UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_manifest_entry(self) -> dict:
        """Return the JSON-ready record written to the manifest."""
        return self.model_dump(mode="json", by_alias=True)


class Artifact(BaseModel):
    """A named build output attached to a workflow run."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    size_in_bytes: int | None = None
    expired: bool = False
    archive_download_url: str | None = None
    created_at: datetime | None = None


class HarvestStatus(str, Enum):
    """Terminal state of one branch harvest."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # No artifact with the requested name


@dataclass
class HarvestResult:
    """Outcome of harvesting a single branch."""
    branch: str
    status: HarvestStatus
    run: WorkflowRun | None = None
    artifact: Artifact | None = None
    archive_path: Path | None = None
    extract_dir: Path | None = None
    error: str | None = None
    duration_seconds: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == HarvestStatus.SUCCEEDED

    def to_dict(self) -> dict:
        return {
            "branch": self.branch,
            "status": self.status.value,
            "run_id": self.run.id if self.run else None,
            "artifact": self.artifact.name if self.artifact else None,
            "archive_path": str(self.archive_path) if self.archive_path else None,
            "extract_dir": str(self.extract_dir) if self.extract_dir else None,
            "error": self.error,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class HarvestReport:
    """Aggregate outcome of one invocation, results in dispatch order."""
    owner: str
    repo: str
    workflow_name: str
    artifact_name: str
    runs_found: int
    results: list[HarvestResult] = field(default_factory=list)
    manifest_path: Path | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def harvested_runs(self) -> list[WorkflowRun]:
        return [r.run for r in self.results if r.succeeded and r.run is not None]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.status == HarvestStatus.SUCCEEDED)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if r.status == HarvestStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status == HarvestStatus.SKIPPED)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "workflow_name": self.workflow_name,
            "artifact_name": self.artifact_name,
            "runs_found": self.runs_found,
            "manifest_path": str(self.manifest_path) if self.manifest_path else None,
            "succeeded": self.success_count,
            "failed": self.failure_count,
            "skipped": self.skipped_count,
            "duration_seconds": self.duration_seconds,
            "results": [r.to_dict() for r in self.results],
        }
