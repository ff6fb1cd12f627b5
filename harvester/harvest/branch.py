"""
Harvest one branch: find the artifact, download it, extract it.

Every failure is contained here and reported as a failed HarvestResult so a
broken branch never affects its siblings.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from pathlib import Path

from harvester.errors import HarvesterError
from harvester.models import HarvestResult, HarvestStatus, WorkflowRun
from harvester.protocols import ArchiveExtractor, ArtifactFetcher

logger = logging.getLogger(__name__)


def branch_paths(output_root: Path, branch: str) -> tuple[Path, Path]:
    """
    Return ``(archive_path, extract_dir)`` for *branch* under *output_root*.

    Branch names containing ``/`` map to nested paths.

    Raises:
        HarvesterError: If the branch name resolves outside *output_root*
    """
    root = output_root.resolve()
    extract_dir = (root / branch).resolve()
    try:
        extract_dir.relative_to(root)
    except ValueError:
        raise HarvesterError(f"Branch name {branch!r} escapes output directory") from None
    if extract_dir == root:
        raise HarvesterError(f"Branch name {branch!r} does not name a directory")

    archive_path = extract_dir.with_name(f"{extract_dir.name}.zip")
    return archive_path, extract_dir


def nested_branches(branches: Iterable[str]) -> list[tuple[str, str]]:
    """
    Return ``(outer, inner)`` pairs where *inner* is harvested inside *outer*.

    With both ``feature`` and ``feature/login`` selected, ``feature/login.zip``
    and ``feature/login/`` land in ``feature/``'s extraction directory.
    """
    names = sorted(set(branches))
    return [(outer, inner) for outer in names for inner in names if inner.startswith(f"{outer}/")]


class BranchHarvester:
    """
    Drive fetcher and extractor for a single branch's selected run.

    Steps run strictly in order: list artifacts, resolve the download URL,
    stream the archive to ``<root>/<branch>.zip``, extract into
    ``<root>/<branch>/``.

    With ``await_extraction=False`` a branch is reported successful once its
    archive is on disk and extraction continues in the background; call
    :meth:`drain` before exiting to wait for those extractions.
    """

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        extractor: ArchiveExtractor,
        owner: str,
        repo: str,
        await_extraction: bool = True,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.owner = owner
        self.repo = repo
        self.await_extraction = await_extraction
        self._background: list[tuple[str, asyncio.Task]] = []

    async def harvest(
        self,
        branch: str,
        run: WorkflowRun,
        artifact_name: str,
        output_root: Path,
    ) -> HarvestResult:
        """
        Harvest *artifact_name* from *run* into *output_root*.

        Never raises for API, download, extraction or filesystem errors;
        those produce a result with status ``failed``.
        """
        result = HarvestResult(branch=branch, status=HarvestStatus.FAILED, run=run)
        start_time = time.monotonic()

        try:
            await self._harvest(result, artifact_name, output_root)
        except (HarvesterError, OSError) as e:
            result.status = HarvestStatus.FAILED
            result.error = str(e) or type(e).__name__
            logger.error(f"Error harvesting branch {branch} (run {run.id}): {result.error}")
        finally:
            result.duration_seconds = time.monotonic() - start_time

        return result

    async def _harvest(self, result: HarvestResult, artifact_name: str, output_root: Path) -> None:
        branch = result.branch
        run = result.run
        logger.info(f"Downloading artifacts for branch: {branch} (run {run.id})")

        artifacts = await self.fetcher.list_artifacts(self.owner, self.repo, run.id)
        logger.info(f"Found {len(artifacts)} artifacts for run {run.id}")

        matches = [a for a in artifacts if a.name == artifact_name]
        if not matches:
            result.status = HarvestStatus.SKIPPED
            logger.info(f"No artifact named '{artifact_name}' for branch {branch}; skipping")
            return
        if len(matches) > 1:
            ignored = ", ".join(str(a.id) for a in matches[1:])
            logger.warning(
                f"Run {run.id} has {len(matches)} artifacts named '{artifact_name}'; "
                f"using {matches[0].id}, ignoring {ignored}"
            )

        artifact = matches[0]
        result.artifact = artifact
        archive_path, extract_dir = branch_paths(output_root, branch)

        url = await self.fetcher.resolve_download_url(self.owner, self.repo, artifact.id)

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        size = await self.fetcher.download(url, archive_path)
        result.archive_path = archive_path
        logger.info(f"Downloaded: {archive_path.name} ({size} bytes)")

        if self.await_extraction:
            await self._extract(branch, archive_path, extract_dir)
        else:
            task = asyncio.create_task(self._extract_in_background(branch, archive_path, extract_dir))
            self._background.append((branch, task))

        result.extract_dir = extract_dir
        result.status = HarvestStatus.SUCCEEDED

    async def _extract(self, branch: str, archive_path: Path, extract_dir: Path) -> None:
        extract_dir.mkdir(parents=True, exist_ok=True)
        await self.extractor.extract(archive_path, extract_dir)
        logger.info(f"Extracted: {branch}")

    async def _extract_in_background(self, branch: str, archive_path: Path, extract_dir: Path) -> bool:
        try:
            await self._extract(branch, archive_path, extract_dir)
            return True
        except (HarvesterError, OSError) as e:
            logger.error(f"Error extracting {archive_path.name} for branch {branch}: {e}")
            return False

    async def drain(self) -> list[str]:
        """
        Wait for background extractions to finish.

        Every task is settled even when one raises something other than an
        extraction error.

        Returns:
            Branches whose background extraction failed
        """
        if not self._background:
            return []

        pending = self._background
        self._background = []
        outcomes = await asyncio.gather(*(task for _, task in pending), return_exceptions=True)

        failed = []
        for (branch, _), outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Unexpected error extracting branch {branch}: {outcome!r}")
            if outcome is not True:
                failed.append(branch)
        return failed
