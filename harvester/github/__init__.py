"""GitHub Actions API integration."""

from harvester.github.client import GitHubClient

__all__ = ["GitHubClient"]
