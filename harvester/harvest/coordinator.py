"""
Fan-out of branch harvests and manifest aggregation.

Provides:
- One concurrent harvest task per selected branch
- Settle-all joining: a failing branch never cancels the others
- Results and manifest entries in dispatch order
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from harvester.archive import ZipExtractor
from harvester.config import DEFAULT_MANIFEST_NAME
from harvester.harvest.branch import BranchHarvester, nested_branches
from harvester.harvest.manifest import write_manifest
from harvester.harvest.selector import select_latest_runs
from harvester.models import HarvestReport, HarvestResult, HarvestStatus
from harvester.protocols import ArchiveExtractor, ArtifactFetcher

logger = logging.getLogger(__name__)


class HarvestCoordinator:
    """
    Harvest the latest artifact of a workflow for every branch of a repository.

    Only the initial run listing may raise; everything after fan-out is
    reported through the returned HarvestReport.
    """

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        extractor: ArchiveExtractor | None = None,
        output_dir: Path | str = "artifacts",
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        await_extraction: bool = True,
    ):
        self.fetcher = fetcher
        self.extractor = extractor or ZipExtractor()
        self.output_dir = Path(output_dir)
        self.manifest_name = manifest_name
        self.await_extraction = await_extraction

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / self.manifest_name

    async def run(
        self,
        owner: str,
        repo: str,
        workflow_name: str,
        artifact_name: str,
    ) -> HarvestReport:
        """
        List runs, harvest every selected branch concurrently, write the manifest.

        Args:
            owner: Repository owner
            repo: Repository name
            workflow_name: Workflow whose runs are harvested
            artifact_name: Artifact to download from each selected run

        Returns:
            HarvestReport with one result per selected branch

        Raises:
            GitHubAPIError: If the run listing fails
            OSError: If the output directory cannot be created
        """
        started_at = datetime.now(timezone.utc)

        runs = await self.fetcher.list_runs(owner, repo)
        logger.info(f"Found {len(runs)} workflow runs")

        selection = select_latest_runs(runs, workflow_name)
        if selection:
            logger.info(
                f"Selected {len(selection)} branches for '{workflow_name}': "
                + ", ".join(f"{branch} (run {run.id})" for branch, run in selection.items())
            )
        else:
            logger.info(f"No runs of workflow '{workflow_name}' found")

        for outer, inner in nested_branches(selection):
            logger.warning(
                f"Branch {inner} is harvested inside the directory of branch {outer}; "
                f"their files share {outer}/"
            )

        self.output_dir.mkdir(parents=True, exist_ok=True)

        harvester = BranchHarvester(
            self.fetcher,
            self.extractor,
            owner,
            repo,
            await_extraction=self.await_extraction,
        )

        branches = list(selection)
        tasks = [
            harvester.harvest(branch, selection[branch], artifact_name, self.output_dir)
            for branch in branches
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Process results (handle any exceptions that weren't caught)
        harvest_results: list[HarvestResult] = []
        for branch, result in zip(branches, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error harvesting branch {branch}: {result!r}")
                harvest_results.append(HarvestResult(
                    branch=branch,
                    status=HarvestStatus.FAILED,
                    run=selection[branch],
                    error=str(result) or type(result).__name__,
                ))
            else:
                harvest_results.append(result)

        failed_extractions = await harvester.drain()
        if failed_extractions:
            logger.warning(
                "Background extraction failed for: " + ", ".join(failed_extractions)
            )

        harvested = [r.run for r in harvest_results if r.succeeded and r.run is not None]
        manifest_path = write_manifest(self.manifest_path, harvested)
        logger.info(f"Branch list written to {manifest_path}")

        return HarvestReport(
            owner=owner,
            repo=repo,
            workflow_name=workflow_name,
            artifact_name=artifact_name,
            runs_found=len(runs),
            results=harvest_results,
            manifest_path=manifest_path,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )
