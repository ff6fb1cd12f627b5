"""Pytest fixtures for harvester tests."""

from pathlib import Path

import pytest

from harvester.config import HarvestConfig
from harvester.errors import ArtifactDownloadError, GitHubAPIError
from harvester.models import Artifact
from tests.fakes import FakeFetcher, make_run, make_zip_bytes


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output root for harvested artifacts."""
    return tmp_path / "artifacts"


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Two branches with a CI run each, both carrying 'test-results'."""
    runs = [
        make_run(1, "main", ts=10),
        make_run(2, "main", ts=20),
        make_run(3, "dev", workflow="Lint", ts=5),
        make_run(4, "feature-x", ts=30),
    ]
    artifacts = {
        2: [
            Artifact(id=20, name="logs"),
            Artifact(id=21, name="test-results"),
        ],
        4: [Artifact(id=41, name="test-results")],
    }
    archives = {
        21: make_zip_bytes({"report/main.xml": b"<main/>"}),
        41: make_zip_bytes({"report/feature.xml": b"<feature/>"}),
    }
    return FakeFetcher(runs=runs, artifacts=artifacts, archives=archives)


@pytest.fixture
def api_error() -> GitHubAPIError:
    return GitHubAPIError("GET /repos/octo/hello/actions/runs failed: 401", status_code=401)


@pytest.fixture
def download_error() -> ArtifactDownloadError:
    return ArtifactDownloadError("Resolving artifact 41 failed: 410", status_code=410)


@pytest.fixture
def config(output_dir: Path) -> HarvestConfig:
    """Create test configuration."""
    return HarvestConfig(output_dir=str(output_dir))


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "pbt: mark test as property-based test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
