"""Manifest of harvested workflow runs (``branches.json``)."""

import json
import os
from collections.abc import Sequence
from pathlib import Path

from harvester.models import WorkflowRun


def write_manifest(path: Path, runs: Sequence[WorkflowRun]) -> Path:
    """
    Write the manifest, replacing any previous file at *path*.

    Entries keep the order of *runs*. The file is written next to its final
    location and moved into place, so readers never see a partial manifest.

    Args:
        path: Manifest file path
        runs: Successfully harvested runs in dispatch order

    Returns:
        The manifest path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [run.to_manifest_entry() for run in runs]

    tmp_path = path.with_name(f".{path.name}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")
    os.replace(tmp_path, path)

    return path


def read_manifest(path: Path) -> list[WorkflowRun]:
    """Load a manifest written by :func:`write_manifest`."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [WorkflowRun.model_validate(item) for item in data]
