# circleci/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


TERMINAL_STATUSES = frozenset({"success", "failed"})


def _millis(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        millis = int(value)
    except (TypeError, ValueError):
        return None
    return millis if millis >= 0 else None


def _foreground_millis(steps: List[Any]) -> Optional[int]:
    """Summed run time of non-background actions; None if any action is unreadable."""
    total = 0
    for step in steps:
        actions = step.get("actions") if isinstance(step, dict) else None
        for action in actions if isinstance(actions, list) else []:
            if not isinstance(action, dict):
                return None
            if action.get("background"):
                continue
            value = action.get("run_time_millis")
            if value is None:
                continue
            millis = _millis(value)
            if millis is None:
                return None
            total += millis
    return total


@dataclass
class WorkflowStatus:
    """Workflow summary from GET /workflow/{id}."""
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WorkflowStatus:
        return cls(status=str(data.get("status") or "unknown"), raw=data)

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class JobPage:
    """One page of GET /workflow/{id}/jobs."""
    items: List[Dict[str, Any]]
    next_page_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JobPage:
        items = data.get("items")
        if items is None:
            items = data.get("jobs") or []
        token = data.get("next_page_token")
        return cls(
            items=[item for item in items if isinstance(item, dict)],
            next_page_token=str(token) if token else None,
        )


@dataclass
class JobDetail:
    """
    Per-job detail from the v1.1 project job endpoint.

    Only the fields needed for pricing are kept: the executor and resource
    class (under `picard`) and the summed run time of foreground actions.
    """
    executor: Optional[str]
    resource_class: Optional[str]
    run_time_millis: Optional[int]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JobDetail:
        picard = data.get("picard")
        if not isinstance(picard, dict):
            picard = {}
        resource_class = picard.get("resource_class")
        if isinstance(resource_class, dict):
            resource_class = resource_class.get("class")
        executor = picard.get("executor")

        millis: Optional[int] = None
        steps = data.get("steps")
        if isinstance(steps, list):
            millis = _foreground_millis(steps)
        elif data.get("build_time_millis") is not None:
            millis = _millis(data["build_time_millis"])

        return cls(
            executor=executor if isinstance(executor, str) else None,
            resource_class=resource_class if isinstance(resource_class, str) else None,
            run_time_millis=millis,
        )

    def fill(self, raw_job: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of `raw_job` with missing pricing fields taken from this detail."""
        merged = dict(raw_job)
        if not merged.get("executor") and self.executor:
            merged["executor"] = self.executor
        if not merged.get("resource_class") and self.resource_class:
            merged["resource_class"] = self.resource_class
        if merged.get("duration") is None and self.run_time_millis is not None:
            merged["duration"] = Decimal(self.run_time_millis) / 1000
        return merged
