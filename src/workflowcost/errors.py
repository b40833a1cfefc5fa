# errors.py
from __future__ import annotations

from typing import Any, Optional


class EstimateError(Exception):
    """Base class for errors that end an estimate request early."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParameterError(EstimateError):
    """Required request parameters are missing."""
    status_code = 401


class NonTerminalWorkflow(EstimateError):
    """The workflow has not finished yet; the caller may poll again later."""
    status_code = 202

    def __init__(self, workflow_status: str):
        super().__init__(
            f"Workflow status is {workflow_status}. "
            "Workflow status must be 'success' or 'failed' to estimate cost."
        )
        self.workflow_status = workflow_status


class UpstreamError(EstimateError):
    """The provider API returned an error or could not be parsed."""
    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body

    @property
    def detail(self) -> Any:
        """Upstream error body when there is one, otherwise the message."""
        return self.body if self.body not in (None, "", {}) else self.message


class UpstreamUnavailable(UpstreamError):
    """Network errors or 5xx/429 responses persisted through all retries."""
