# resolver.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .model import Executor, JobRecord


# Durations beyond ~30,000 years are treated as malformed
MAX_DURATION_EXPONENT = 12


EXECUTOR_ALIASES: Dict[str, Executor] = {
    "docker": Executor.CONTAINER,
    "container": Executor.CONTAINER,
    "machine": Executor.VIRTUAL_MACHINE,
    "vm": Executor.VIRTUAL_MACHINE,
    "virtual-machine": Executor.VIRTUAL_MACHINE,
    "linux": Executor.VIRTUAL_MACHINE,
    "macos": Executor.MACOS,
    "gpu": Executor.GPU,
    "windows": Executor.WINDOWS,
}


def parse_executor(value: Any) -> Optional[Executor]:
    """Map a provider executor spelling (or {"type": ...} object) to an Executor."""
    if isinstance(value, Executor):
        return value
    if isinstance(value, Mapping):
        value = value.get("type")
    if not isinstance(value, str):
        return None
    return EXECUTOR_ALIASES.get(value.strip().lower())


def parse_resource_class(raw: Mapping[str, Any]) -> Optional[str]:
    value = raw.get("resource_class")
    # Some payloads nest it under the executor object instead
    if value is None and isinstance(raw.get("executor"), Mapping):
        value = raw["executor"].get("resource_class")
    if isinstance(value, Mapping):
        value = value.get("class")
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_duration(value: Any) -> Optional[Decimal]:
    """Non-negative duration in seconds, or None if the value is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not seconds.is_finite() or seconds < 0 or seconds.adjusted() > MAX_DURATION_EXPONENT:
        return None
    return seconds


def elapsed_seconds(started_at: Optional[datetime], stopped_at: Optional[datetime]) -> Optional[Decimal]:
    if started_at is None or stopped_at is None:
        return None
    try:
        delta = stopped_at - started_at
    except TypeError:
        # naive vs aware timestamps
        return None
    if delta.total_seconds() < 0:
        return None
    return Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(1_000_000)


def parse_job_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def resolve_job(raw: Mapping[str, Any]) -> JobRecord:
    """
    Build a JobRecord from one raw provider job.

    Duration preference:
      1. explicit `duration` field (seconds)
      2. stopped_at - started_at, when both are present and ordered
      3. absent

    Never raises on malformed fields; anything unreadable is recorded as absent.
    """
    started_at = parse_timestamp(raw.get("started_at", raw.get("start_time")))
    stopped_at = parse_timestamp(raw.get("stopped_at", raw.get("stop_time")))

    duration = parse_duration(raw.get("duration"))
    if duration is None:
        duration = elapsed_seconds(started_at, stopped_at)

    job_id = raw.get("id")
    name = raw.get("name")
    status = raw.get("status")

    return JobRecord(
        id="" if job_id is None else str(job_id),
        name="" if name is None else str(name),
        status="" if status is None else str(status),
        executor=parse_executor(raw.get("executor")),
        resource_class=parse_resource_class(raw),
        started_at=started_at,
        stopped_at=stopped_at,
        duration_seconds=duration,
        job_number=parse_job_number(raw.get("job_number")),
    )


def resolve_jobs(raw_jobs: Iterable[Mapping[str, Any]]) -> List[JobRecord]:
    return [resolve_job(raw) for raw in raw_jobs]
