"""Exception hierarchy for branch harvesting.

Branch-scoped errors (API, download, extraction, filesystem) are caught at the
BranchHarvester boundary and turned into failed results. Only errors raised
before fan-out reach the CLI.
"""

from typing import Any


class HarvesterError(Exception):
    """Base exception for harvester errors."""


class ConfigurationError(HarvesterError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []

    def __str__(self) -> str:
        if self.problems:
            return f"{self.args[0]}: " + "; ".join(self.problems)
        return super().__str__()


class GitHubAPIError(HarvesterError):
    """Raised when a GitHub API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.details = details or {}


class ArtifactDownloadError(GitHubAPIError):
    """Raised when an artifact URL cannot be resolved or its bytes fetched."""


class ExtractionError(HarvesterError):
    """Raised when an archive is malformed or unsafe to extract."""

    def __init__(self, message: str, archive_path: str | None = None):
        super().__init__(message)
        self.archive_path = archive_path
