"""Tests for the GitHub Actions client."""

import httpx
import pytest

from harvester.errors import ArtifactDownloadError, GitHubAPIError
from harvester.github.client import GitHubClient

RUNS_PAYLOAD = {
    "total_count": 3,
    "workflow_runs": [
        {
            "id": 11,
            "name": "CI",
            "head_branch": "main",
            "head_sha": "abc123",
            "run_number": 5,
            "event": "push",
            "status": "completed",
            "conclusion": "success",
            "created_at": "2024-03-01T10:00:00Z",
            "updated_at": "2024-03-01T10:05:00Z",
            "repository": {"id": 1},
        },
        {
            "id": 12,
            "name": "Lint",
            "head_branch": "dev",
            "created_at": "2024-03-01T09:00:00Z",
        },
        {
            "id": 13,
            "name": "CI",
            "head_branch": None,
            "created_at": "2024-03-01T08:00:00Z",
        },
    ],
}

ARTIFACTS_PAYLOAD = {
    "total_count": 2,
    "artifacts": [
        {"id": 100, "name": "logs", "size_in_bytes": 10, "expired": False},
        {"id": 101, "name": "test-results", "size_in_bytes": 2048, "expired": False},
    ],
}


def _client(handler, **kwargs) -> GitHubClient:
    return GitHubClient("ghp_secret", transport=httpx.MockTransport(handler), **kwargs)


class TestListing:
    """Run and artifact listing."""

    async def test_list_runs_parses_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=RUNS_PAYLOAD)

        async with _client(handler, per_page=50) as client:
            runs = await client.list_runs("octo", "hello")

        assert [r.id for r in runs] == [11, 12, 13]
        assert runs[0].workflow_name == "CI"
        assert runs[0].branch == "main"
        assert runs[0].created_at.tzinfo is not None
        assert runs[2].branch is None

        request = seen[0]
        assert request.url.path == "/repos/octo/hello/actions/runs"
        assert request.url.params["per_page"] == "50"
        assert request.headers["Authorization"] == "Bearer ghp_secret"
        assert request.headers["Accept"] == "application/vnd.github+json"

    async def test_list_artifacts(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/hello/actions/runs/11/artifacts"
            return httpx.Response(200, json=ARTIFACTS_PAYLOAD)

        async with _client(handler) as client:
            artifacts = await client.list_artifacts("octo", "hello", 11)

        assert [(a.id, a.name) for a in artifacts] == [(100, "logs"), (101, "test-results")]

    async def test_empty_listing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"total_count": 0, "workflow_runs": []})

        async with _client(handler) as client:
            assert await client.list_runs("octo", "hello") == []

    async def test_http_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        async with _client(handler) as client:
            with pytest.raises(GitHubAPIError) as exc_info:
                await client.list_runs("octo", "hello")

        assert exc_info.value.status_code == 401

    async def test_transport_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(GitHubAPIError):
                await client.list_artifacts("octo", "hello", 1)

    async def test_malformed_run_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"workflow_runs": [{"id": "not-an-int"}]})

        async with _client(handler) as client:
            with pytest.raises(GitHubAPIError):
                await client.list_runs("octo", "hello")

    async def test_custom_api_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "ghe.example.test"
            assert request.url.path == "/api/v3/repos/octo/hello/actions/runs"
            return httpx.Response(200, json=RUNS_PAYLOAD)

        async with _client(handler, api_url="https://ghe.example.test/api/v3/") as client:
            assert len(await client.list_runs("octo", "hello")) == 3


class TestDownload:
    """Signed URL resolution and archive streaming."""

    async def test_resolve_reads_redirect_location(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/hello/actions/artifacts/101/zip"
            return httpx.Response(
                302, headers={"Location": "https://blob.example.test/a.zip?sig=1"}
            )

        async with _client(handler) as client:
            url = await client.resolve_download_url("octo", "hello", 101)

        assert url == "https://blob.example.test/a.zip?sig=1"

    async def test_resolve_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(410, json={"message": "Artifact has expired"})

        async with _client(handler) as client:
            with pytest.raises(ArtifactDownloadError) as exc_info:
                await client.resolve_download_url("octo", "hello", 101)

        assert exc_info.value.status_code == 410

    async def test_resolve_redirect_without_location(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302)

        async with _client(handler) as client:
            with pytest.raises(ArtifactDownloadError):
                await client.resolve_download_url("octo", "hello", 101)

    async def test_resolve_without_redirect_is_an_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"PK")

        async with _client(handler) as client:
            with pytest.raises(ArtifactDownloadError) as exc_info:
                await client.resolve_download_url("octo", "hello", 101)

        assert exc_info.value.status_code == 200

    async def test_download_streams_to_file_without_token(self, tmp_path):
        payload = b"PK" + b"x" * 200_000
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=payload)

        destination = tmp_path / "main.zip"
        async with _client(handler) as client:
            written = await client.download("https://blob.example.test/a.zip?sig=1", destination)

        assert written == len(payload)
        assert destination.read_bytes() == payload
        assert "Authorization" not in seen[0].headers

    async def test_download_http_error(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403)

        async with _client(handler) as client:
            with pytest.raises(ArtifactDownloadError) as exc_info:
                await client.download("https://blob.example.test/a.zip", tmp_path / "x.zip")

        assert exc_info.value.status_code == 403

    async def test_close_is_idempotent(self):
        client = _client(lambda request: httpx.Response(200, json=RUNS_PAYLOAD))
        await client.list_runs("octo", "hello")

        await client.close()
        await client.close()
