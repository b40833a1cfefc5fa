# cli.py
from __future__ import annotations

import sys

import click

from workflowcost.handler import handle_request
from workflowcost.settings import get_settings
from workflowcost.ui.console import Console, set_console, get_console


EXIT_CODES = {200: 0, 202: 2}


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """Workflow cost estimator: rough compute cost of a finished CircleCI workflow."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--workflow-id", required=True, help="Workflow identifier")
@click.option("--token", envvar="CIRCLE_TOKEN", required=True, help="CircleCI API token (env: CIRCLE_TOKEN)")
@click.option("--project-name", required=True, help="Project (repository) name")
@click.option("--project-user", required=True, help="Project owner (user or organization)")
@click.option("--project-vcs", default="github", show_default=True, help="VCS type used for job detail lookups")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.pass_context
def estimate(ctx, workflow_id, token, project_name, project_user, project_vcs, output_format):
    """Estimate the cost of a finished workflow."""
    console = get_console()

    try:
        settings = get_settings()
    except ValueError as e:
        console.print_error(
            "Invalid configuration",
            str(e),
            suggestion="Check CREDIT_PRICE, MAX_RETRIES, RETRY_BACKOFF and DETAIL_WORKERS.",
        )
        sys.exit(1)

    result = handle_request(
        {
            "workflow_id": workflow_id,
            "circle_token": token,
            "project_name": project_name,
            "project_user": project_user,
            "project_vcs": project_vcs,
        },
        settings=settings,
    )

    if result.status_code == 200 and output_format == "text":
        console.print_estimate(result.body)
    elif result.status_code == 200:
        console.print_info(result.render())
    elif result.status_code == 202:
        console.print_info(result.body["message"])
    else:
        console.print_error(
            "Estimate failed",
            f"HTTP {result.status_code}",
            details=[result.render()],
        )

    sys.exit(EXIT_CODES.get(result.status_code, 1))


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, type=int, show_default=True, help="Bind port")
@click.pass_context
def serve(ctx, host, port):
    """Serve the estimate endpoint over HTTP."""
    import uvicorn

    console = get_console()
    console.print_info(f"Serving on http://{host}:{port}/workflow-cost-estimate")
    try:
        uvicorn.run("workflowcost.server:app", host=host, port=port)
    except KeyboardInterrupt:
        console.print_info("\nStopped by user")


if __name__ == "__main__":
    cli()
