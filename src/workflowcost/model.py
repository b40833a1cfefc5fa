# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class Executor(str, Enum):
    """Execution environment family a job ran on."""
    CONTAINER = "container"
    VIRTUAL_MACHINE = "virtual-machine"
    MACOS = "macOS"
    GPU = "GPU"
    WINDOWS = "windows"


# Families with no published per-class rates
UNPRICED_EXECUTORS = frozenset({Executor.MACOS, Executor.GPU, Executor.WINDOWS})


class PricingStatus(str, Enum):
    PRICED = "priced"
    UNPRICED_EXECUTOR = "unpriced-executor"
    UNPRICED_CLASS = "unpriced-class"
    MISSING_DURATION = "missing-duration"


@dataclass(frozen=True)
class JobRecord:
    """A single workflow job, normalised from the provider's API response."""
    id: str
    name: str
    status: str
    executor: Optional[Executor] = None
    resource_class: Optional[str] = None
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    duration_seconds: Optional[Decimal] = None
    job_number: Optional[int] = None


@dataclass(frozen=True)
class PricedJob:
    job: JobRecord
    pricing_status: PricingStatus
    billed_minutes: Optional[int] = None
    credits_consumed: Optional[Decimal] = None
    cost_estimate: Optional[Decimal] = None

    @property
    def priced(self) -> bool:
        return self.pricing_status is PricingStatus.PRICED


@dataclass(frozen=True)
class CostReport:
    """
    Result of one tally.

    `total_cost` is kept exact; rounding to the currency's minor unit happens
    only when the report is presented (see tally.report_to_dict).
    """
    total_cost: Decimal
    total_credits: Decimal
    credit_price: Decimal
    per_job: Tuple[PricedJob, ...] = field(default_factory=tuple)
    unpriced_count: int = 0
    currency: str = "USD-equivalent via credits"

    @property
    def partial(self) -> bool:
        """True when at least one job could not be priced."""
        return self.unpriced_count > 0
