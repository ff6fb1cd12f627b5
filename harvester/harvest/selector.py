"""Pick the most recent run of a workflow for every branch."""

import logging
from collections.abc import Iterable

from harvester.models import WorkflowRun

logger = logging.getLogger(__name__)


def select_latest_runs(
    runs: Iterable[WorkflowRun], workflow_name: str
) -> dict[str, WorkflowRun]:
    """
    Group runs by branch, keeping the latest run of *workflow_name* per branch.

    Runs of other workflows are ignored entirely, so they never fill or evict a
    branch slot. On equal ``created_at`` the run seen later in *runs* wins.
    Branches without a matching run are absent from the result.

    The returned mapping preserves the order in which branches were first
    selected; harvests are dispatched and recorded in that order.

    Args:
        runs: Workflow runs in API listing order
        workflow_name: Exact workflow name to match

    Returns:
        Mapping of branch name to selected run
    """
    selected: dict[str, WorkflowRun] = {}

    for run in runs:
        if run.workflow_name != workflow_name:
            continue
        if not run.branch:
            logger.debug(f"Skipping run {run.id}: no head branch")
            continue

        current = selected.get(run.branch)
        if current is None or run.created_at >= current.created_at:
            selected[run.branch] = run

    return selected
