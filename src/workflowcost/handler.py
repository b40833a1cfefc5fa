# handler.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .circleci.api_client import APIClient
from .errors import NonTerminalWorkflow, ParameterError, UpstreamError
from .estimator import RequestContext, WorkflowAPI, estimate_workflow_cost
from .pricing import DEFAULT_PRICING, PricingTable
from .settings import Settings, get_settings
from .tally import report_to_dict
from .ui.console import get_console


DISCLAIMER = "NOTICE - THIS IS A COST ESTIMATE. THERE IS NO GUARANTEE THIS ESTIMATE IS CORRECT."

ClientFactory = Callable[[RequestContext, Settings], WorkflowAPI]


def default_client_factory(ctx: RequestContext, settings: Settings) -> WorkflowAPI:
    return APIClient(
        ctx.circle_token,
        base_url=settings.circle_url,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff=settings.retry_backoff,
    )


@dataclass
class HandlerResponse:
    status_code: int
    body: Dict[str, Any]

    def render(self) -> str:
        return render_body(self.body)


def render_body(body: Mapping[str, Any]) -> str:
    """Formatted JSON text for a response body."""
    return json.dumps(body, indent=2)


def _respond(status_code: int, body: Dict[str, Any]) -> HandlerResponse:
    body["disclaimer"] = DISCLAIMER
    return HandlerResponse(status_code, body)


def handle_request(
    params: Optional[Mapping[str, Any]],
    client_factory: Optional[ClientFactory] = None,
    settings: Optional[Settings] = None,
    pricing: PricingTable = DEFAULT_PRICING,
) -> HandlerResponse:
    """
    Validate parameters, run the estimate and map the outcome to a response.

      401 {error}    missing parameters, nothing is fetched
      202 {message}  workflow not finished yet
      500 {error}    provider API failure (upstream body when available)
      200 report     success

    Every body carries the disclaimer.
    """
    console = get_console()
    settings = settings or get_settings()
    client_factory = client_factory or default_client_factory

    try:
        ctx = RequestContext.from_query(params)
    except ParameterError as e:
        return _respond(e.status_code, {"error": e.message})

    try:
        client = client_factory(ctx, settings)
        report = estimate_workflow_cost(ctx, client, settings, pricing)
    except NonTerminalWorkflow as e:
        return _respond(e.status_code, {"message": e.message})
    except UpstreamError as e:
        console.print_error("Upstream API failure", e.message, details=[f"status={e.upstream_status}"])
        return _respond(e.status_code, {"error": e.detail})
    except Exception as e:
        console.print_exception(e)
        return _respond(500, {"error": "Internal error while estimating workflow cost."})

    return _respond(200, report_to_dict(report))


def workflow_cost_estimate(event: Optional[Mapping[str, Any]], context: Any = None) -> Dict[str, Any]:
    """Serverless (API gateway proxy) entry point."""
    params = (event or {}).get("queryStringParameters") or {}
    response = handle_request(params)
    return {
        "statusCode": response.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": response.render(),
    }
