"""Interfaces for the external collaborators the harvest core depends on."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from harvester.models import Artifact, WorkflowRun


@runtime_checkable
class ArtifactFetcher(Protocol):
    """Lists runs and artifacts and fetches artifact archives."""

    async def list_runs(self, owner: str, repo: str) -> list[WorkflowRun]: ...

    async def list_artifacts(self, owner: str, repo: str, run_id: int) -> list[Artifact]: ...

    async def resolve_download_url(self, owner: str, repo: str, artifact_id: int) -> str:
        """Return a short-lived URL; callers must use it immediately."""
        ...

    async def download(self, url: str, destination: Path) -> int:
        """Stream *url* into *destination*, returning the number of bytes written.

        The file must be closed when this returns.
        """
        ...


@runtime_checkable
class ArchiveExtractor(Protocol):
    """Expands an archive file into a directory."""

    async def extract(self, archive_path: Path, destination: Path) -> list[str]: ...
