"""GitHub Actions REST client.

Implements the ArtifactFetcher interface on top of httpx: listing workflow
runs and artifacts, resolving the short-lived signed URL GitHub hands out for
an artifact archive, and streaming that archive to disk.
"""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from harvester.config import DEFAULT_API_URL, MAX_PER_PAGE
from harvester.errors import ArtifactDownloadError, GitHubAPIError
from harvester.models import Artifact, WorkflowRun

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
USER_AGENT = "branch-harvest"
REDIRECT_CODES = (301, 302, 303, 307, 308)
CHUNK_SIZE = 64 * 1024


class GitHubClient:
    """
    Async client for the GitHub Actions endpoints used by the harvester.

    One instance is created per invocation from the supplied token and passed
    explicitly to the harvest components.

    Example:
        async with GitHubClient(token) as client:
            runs = await client.list_runs("octo", "hello-world")
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        per_page: int = MAX_PER_PAGE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            token: GitHub access token
            api_url: REST API base URL (GitHub Enterprise installs differ)
            per_page: Page size for list endpoints; only the first page is read
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.api_url = api_url.rstrip("/")
        self.per_page = per_page
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._download_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the authenticated API client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers={
                    "Accept": "application/vnd.github+json",
                    "Authorization": f"Bearer {self._token}",
                    "X-GitHub-Api-Version": API_VERSION,
                    "User-Agent": USER_AGENT,
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _get_download_client(self) -> httpx.AsyncClient:
        """Get or create the client for signed archive URLs.

        Signed URLs carry their own credentials; the API token is not sent.
        """
        if self._download_client is None:
            self._download_client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._download_client

    async def close(self) -> None:
        """Close the client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._download_client:
            await self._download_client.aclose()
            self._download_client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict:
        client = await self._get_client()
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"GET {path} failed: {e.response.status_code}",
                status_code=e.response.status_code,
                url=str(e.request.url),
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GET {path} failed: {e}", url=path) from e
        except ValueError as e:
            raise GitHubAPIError(f"GET {path} returned invalid JSON: {e}", url=path) from e

    # =========================================================================
    # LISTING
    # =========================================================================

    async def list_runs(self, owner: str, repo: str) -> list[WorkflowRun]:
        """List workflow runs for a repository (first page only).

        Raises:
            GitHubAPIError: If the request fails or the payload is malformed
        """
        path = f"{self._repo_path(owner, repo)}/actions/runs"
        data = await self._get_json(path, params={"per_page": self.per_page})
        try:
            return [WorkflowRun.model_validate(item) for item in data.get("workflow_runs", [])]
        except ValueError as e:
            raise GitHubAPIError(f"Unexpected workflow run payload: {e}", url=path) from e

    async def list_artifacts(self, owner: str, repo: str, run_id: int) -> list[Artifact]:
        """List artifacts attached to a workflow run (first page only)."""
        path = f"{self._repo_path(owner, repo)}/actions/runs/{run_id}/artifacts"
        data = await self._get_json(path, params={"per_page": self.per_page})
        try:
            return [Artifact.model_validate(item) for item in data.get("artifacts", [])]
        except ValueError as e:
            raise GitHubAPIError(f"Unexpected artifact payload: {e}", url=path) from e

    # =========================================================================
    # DOWNLOAD
    # =========================================================================

    async def resolve_download_url(self, owner: str, repo: str, artifact_id: int) -> str:
        """Resolve the signed URL for an artifact's zip archive.

        GitHub answers with a redirect whose Location expires after about a
        minute, so the result is never cached. Any other response, a 200
        included, is an error: the signed URL is fetched without the token.

        Raises:
            ArtifactDownloadError: If the URL cannot be resolved
        """
        path = f"{self._repo_path(owner, repo)}/actions/artifacts/{artifact_id}/zip"
        client = await self._get_client()
        try:
            response = await client.get(path, follow_redirects=False)
        except httpx.HTTPError as e:
            raise ArtifactDownloadError(
                f"Resolving artifact {artifact_id} failed: {e}", url=path
            ) from e

        if response.status_code in REDIRECT_CODES:
            location = response.headers.get("location")
            if not location:
                raise ArtifactDownloadError(
                    f"Redirect for artifact {artifact_id} has no Location header",
                    status_code=response.status_code,
                    url=path,
                )
            return location

        raise ArtifactDownloadError(
            f"Resolving artifact {artifact_id} failed: {response.status_code}",
            status_code=response.status_code,
            url=path,
        )

    async def download(self, url: str, destination: Path) -> int:
        """Stream *url* into *destination* and return the byte count.

        The file is flushed and closed before this coroutine returns.

        Raises:
            ArtifactDownloadError: On HTTP failures
            OSError: If the file cannot be written
        """
        client = await self._get_download_client()
        written = 0
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(destination, "wb") as fh:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        fh.write(chunk)
                        written += len(chunk)
        except httpx.HTTPStatusError as e:
            raise ArtifactDownloadError(
                f"Downloading archive failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ArtifactDownloadError(f"Downloading archive failed: {e}") from e

        logger.debug(f"Wrote {written} bytes to {destination}")
        return written
