"""Console output formatting utilities for the workflow cost estimator."""

from __future__ import annotations

import sys
from typing import Any, Dict, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_estimate(self, body: Dict[str, Any]) -> None:
        """Print a cost estimate response body as a human-readable summary."""
        self.print_header("WORKFLOW COST ESTIMATE")
        for job in body.get("jobs", []):
            name = job.get("name") or job.get("id") or "?"
            where = f"{job.get('executor') or '?'}/{job.get('resourceClass') or '?'}"
            if job.get("pricingStatus") == "priced":
                print(
                    f"  {name} ({where}): {job['billedMinutes']} min, "
                    f"{job['creditsConsumed']} credits, ${job['costEstimate']}"
                )
            else:
                print(f"  {name} ({where}): not priced ({job.get('pricingStatus')})")

        print()
        print(f"Total credits: {body.get('totalCredits')}")
        print(f"Total cost: ${body.get('totalCost')} (credit price {body.get('creditPrice')})")
        unpriced = body.get("unpricedCount", 0)
        if unpriced:
            print(f"Partial estimate: {unpriced} job(s) could not be priced")
        if body.get("disclaimer"):
            print(f"\n{body['disclaimer']}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI or server)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
