"""Run selection, per-branch harvesting and manifest aggregation."""

from harvester.harvest.branch import BranchHarvester, branch_paths, nested_branches
from harvester.harvest.coordinator import HarvestCoordinator
from harvester.harvest.manifest import read_manifest, write_manifest
from harvester.harvest.selector import select_latest_runs

__all__ = [
    "BranchHarvester",
    "HarvestCoordinator",
    "branch_paths",
    "nested_branches",
    "read_manifest",
    "select_latest_runs",
    "write_manifest",
]
