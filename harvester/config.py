"""
Harvester configuration management.

Loads configuration from:
1. Config files (--config, HARVESTER_CONFIG, harvester.yml, .harvester/config.yml)
2. Environment variables (HARVESTER_* prefix)
3. Defaults

The access token is never part of the file-backed configuration; it is passed
on the command line and handed straight to the GitHub client.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from harvester.errors import ConfigurationError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_MANIFEST_NAME = "branches.json"
MAX_PER_PAGE = 100

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _convert(
    name: str, value: Any, convert: Callable[[Any], Any], kind: str, source: str
) -> Any:
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            "Invalid configuration", [f"{name} from {source} must be {kind}: {value!r}"]
        ) from e


@dataclass
class HarvestConfig:
    """Main harvester configuration."""

    output_dir: str = "artifacts"
    manifest_name: str = DEFAULT_MANIFEST_NAME
    api_url: str = DEFAULT_API_URL
    per_page: int = MAX_PER_PAGE
    timeout: float = 30.0
    # False reproduces the historical behavior: report success once the
    # archive is written and extract in the background.
    await_extraction: bool = True

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    @classmethod
    def load(cls, config_path: str | None = None) -> "HarvestConfig":
        """Load configuration from file and environment.

        Raises:
            ConfigurationError: If the file cannot be read or parsed, or a
                value cannot be converted to its field's type
        """
        config = cls()

        if not config_path:
            config_path = os.environ.get("HARVESTER_CONFIG")

        paths_to_try = [
            config_path,
            "harvester.yml",
            "harvester.yaml",
            ".harvester/config.yml",
        ]

        for path in paths_to_try:
            if path and Path(path).exists():
                config = cls._load_from_file(path)
                break

        config._load_from_env()
        return config

    @classmethod
    def _load_from_file(cls, path: str) -> "HarvestConfig":
        """Load configuration from YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}", [str(e)]) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}", [str(e)]) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid config file {path}", ["top level must be a mapping"]
            )

        config = cls()

        if "output_dir" in data:
            config.output_dir = str(data["output_dir"])
        if "manifest_name" in data:
            config.manifest_name = str(data["manifest_name"])
        if "api_url" in data:
            config.api_url = str(data["api_url"])
        if "per_page" in data:
            config.per_page = _convert("per_page", data["per_page"], int, "an integer", path)
        if "timeout" in data:
            config.timeout = _convert("timeout", data["timeout"], float, "a number", path)
        if "await_extraction" in data:
            config.await_extraction = _convert(
                "await_extraction", data["await_extraction"], _parse_bool, "a boolean", path
            )

        return config

    def _load_from_env(self) -> None:
        """Override configuration from environment variables."""
        if os.environ.get("HARVESTER_OUTPUT_DIR"):
            self.output_dir = os.environ["HARVESTER_OUTPUT_DIR"]

        if os.environ.get("HARVESTER_MANIFEST_NAME"):
            self.manifest_name = os.environ["HARVESTER_MANIFEST_NAME"]

        if os.environ.get("HARVESTER_API_URL"):
            self.api_url = os.environ["HARVESTER_API_URL"]

        if os.environ.get("HARVESTER_PER_PAGE"):
            self.per_page = _convert(
                "per_page",
                os.environ["HARVESTER_PER_PAGE"],
                int,
                "an integer",
                "HARVESTER_PER_PAGE",
            )

        if os.environ.get("HARVESTER_TIMEOUT"):
            self.timeout = _convert(
                "timeout", os.environ["HARVESTER_TIMEOUT"], float, "a number", "HARVESTER_TIMEOUT"
            )

        if os.environ.get("HARVESTER_AWAIT_EXTRACTION"):
            self.await_extraction = _convert(
                "await_extraction",
                os.environ["HARVESTER_AWAIT_EXTRACTION"],
                _parse_bool,
                "a boolean",
                "HARVESTER_AWAIT_EXTRACTION",
            )

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.output_dir:
            errors.append("output_dir must not be empty")

        output_path = self.output_path
        if output_path.exists() and not output_path.is_dir():
            errors.append(f"output_dir is not a directory: {self.output_dir}")

        if not self.manifest_name or Path(self.manifest_name).name != self.manifest_name:
            errors.append(f"manifest_name must be a plain file name: {self.manifest_name!r}")

        if not self.api_url.startswith(("http://", "https://")):
            errors.append(f"api_url must be an http(s) URL: {self.api_url}")

        if not 1 <= self.per_page <= MAX_PER_PAGE:
            errors.append(f"per_page must be between 1 and {MAX_PER_PAGE}: {self.per_page}")

        if self.timeout <= 0:
            errors.append(f"timeout must be positive: {self.timeout}")

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "output_dir": self.output_dir,
            "manifest_name": self.manifest_name,
            "api_url": self.api_url,
            "per_page": self.per_page,
            "timeout": self.timeout,
            "await_extraction": self.await_extraction,
        }
