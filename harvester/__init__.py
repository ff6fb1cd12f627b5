"""
Branch Harvest - collect the latest GitHub Actions artifact for every branch.

This package provides:
- Selection of the most recent run of a workflow per branch
- Concurrent per-branch artifact download and extraction
- A JSON manifest of the runs that were harvested
"""

__version__ = "0.1.0"

from harvester.archive import ZipExtractor
from harvester.config import HarvestConfig
from harvester.github.client import GitHubClient
from harvester.harvest.branch import BranchHarvester
from harvester.harvest.coordinator import HarvestCoordinator
from harvester.harvest.selector import select_latest_runs
from harvester.models import Artifact, HarvestReport, HarvestResult, HarvestStatus, WorkflowRun

__all__ = [
    "Artifact",
    "BranchHarvester",
    "GitHubClient",
    "HarvestConfig",
    "HarvestCoordinator",
    "HarvestReport",
    "HarvestResult",
    "HarvestStatus",
    "WorkflowRun",
    "ZipExtractor",
    "select_latest_runs",
    "__version__",
]
