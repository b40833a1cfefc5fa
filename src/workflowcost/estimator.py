# estimator.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .circleci.models import JobDetail, WorkflowStatus
from .errors import NonTerminalWorkflow, ParameterError
from .model import CostReport
from .pricing import DEFAULT_PRICING, PricingTable
from .resolver import parse_executor, parse_job_number, parse_resource_class, resolve_jobs
from .settings import Settings
from .tally import tally
from .ui.console import get_console


REQUIRED_PARAMETERS = ("circle_token", "workflow_id", "project_name", "project_user")


class WorkflowAPI(Protocol):
    def get_workflow(self, workflow_id: str) -> WorkflowStatus: ...

    def list_jobs(self, workflow_id: str) -> List[Dict[str, Any]]: ...

    def get_job_detail(self, vcs: str, user: str, project: str, job_number: int) -> JobDetail: ...


@dataclass(frozen=True)
class RequestContext:
    """Caller-supplied parameters for one estimate request."""
    circle_token: str
    workflow_id: str
    project_name: str
    project_user: str
    project_vcs: str = "github"

    @classmethod
    def from_query(cls, params: Optional[Mapping[str, Any]]) -> RequestContext:
        """
        Build a context from query string parameters.

        Raises:
            ParameterError: if any required parameter is missing or blank
        """
        params = params or {}
        values = {key: str(params.get(key) or "").strip() for key in REQUIRED_PARAMETERS}
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ParameterError(
                "Please provide query parameters: " + ", ".join(REQUIRED_PARAMETERS)
                + f". Missing: {', '.join(missing)}"
            )
        vcs = str(params.get("project_vcs") or "").strip() or "github"
        return cls(project_vcs=vcs, **values)


def _needs_detail(raw: Mapping[str, Any]) -> bool:
    if parse_job_number(raw.get("job_number")) is None:
        return False
    if parse_executor(raw.get("executor")) is None or parse_resource_class(raw) is None:
        return True
    has_times = (raw.get("started_at") or raw.get("start_time")) and (raw.get("stopped_at") or raw.get("stop_time"))
    return raw.get("duration") is None and not has_times


def enrich_jobs(
    ctx: RequestContext,
    client: WorkflowAPI,
    raw_jobs: List[Dict[str, Any]],
    max_workers: int = 4,
) -> List[Dict[str, Any]]:
    """
    Fill in executor, resource class and duration from per-job detail lookups.

    Lookups run concurrently; results are put back in listing order. If any
    lookup fails the remaining ones are cancelled and the error propagates.
    """
    console = get_console()
    enriched = list(raw_jobs)
    pending = [i for i, raw in enumerate(raw_jobs) if _needs_detail(raw)]
    if not pending:
        return enriched

    console.print_debug(f"Fetching details for {len(pending)} of {len(raw_jobs)} job(s)")
    pool = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {
            pool.submit(
                client.get_job_detail,
                ctx.project_vcs,
                ctx.project_user,
                ctx.project_name,
                parse_job_number(raw_jobs[i]["job_number"]),
            ): i
            for i in pending
        }
        for fut in as_completed(futures):
            i = futures[fut]
            enriched[i] = fut.result().fill(raw_jobs[i])
    finally:
        pool.shutdown(wait=True, cancel_futures=True)

    return enriched


def estimate_workflow_cost(
    ctx: RequestContext,
    client: WorkflowAPI,
    settings: Settings,
    pricing: PricingTable = DEFAULT_PRICING,
) -> CostReport:
    """
    Estimate the cost of a finished workflow.

    Raises:
        NonTerminalWorkflow: the workflow is not `success` or `failed` yet
        UpstreamError: the provider API failed
    """
    console = get_console()

    workflow = client.get_workflow(ctx.workflow_id)
    if not workflow.terminal:
        console.print_debug(f"Workflow {ctx.workflow_id} status is {workflow.status}; not estimating")
        raise NonTerminalWorkflow(workflow.status)

    console.print_debug(f"Workflow status is {workflow.status}. Getting jobs..")
    raw_jobs = client.list_jobs(ctx.workflow_id)
    console.print_debug(f"Workflow {ctx.workflow_id} has {len(raw_jobs)} job(s)")

    if settings.fetch_job_details:
        raw_jobs = enrich_jobs(ctx, client, raw_jobs, max_workers=settings.detail_workers)

    report = tally(resolve_jobs(raw_jobs), pricing, settings.credit_price)
    console.print_debug(
        f"Tallied {len(report.per_job)} job(s): total {report.total_cost}, "
        f"{report.unpriced_count} unpriced"
    )
    return report
