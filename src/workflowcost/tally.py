# tally.py
from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, DecimalException
from typing import Any, Dict, List

from .model import UNPRICED_EXECUTORS, CostReport, JobRecord, PricedJob, PricingStatus
from .pricing import LookupOutcome, PricingTable


SECONDS_PER_MINUTE = Decimal(60)
# Presentation precision for money, matching the credit price granularity
COST_QUANTUM = Decimal("0.0001")


def billed_minutes(duration_seconds: Decimal) -> int:
    """Whole minutes billed for a duration; partial minutes round up."""
    return int((duration_seconds / SECONDS_PER_MINUTE).to_integral_value(rounding=ROUND_CEILING))


def price_job(job: JobRecord, pricing: PricingTable, credit_price: Decimal) -> PricedJob:
    if job.duration_seconds is None:
        return PricedJob(job=job, pricing_status=PricingStatus.MISSING_DURATION)

    lookup = pricing.lookup(job.executor, job.resource_class)
    if not lookup.found:
        if lookup.outcome is LookupOutcome.UNPRICED_EXECUTOR or job.executor in UNPRICED_EXECUTORS:
            status = PricingStatus.UNPRICED_EXECUTOR
        else:
            status = PricingStatus.UNPRICED_CLASS
        return PricedJob(job=job, pricing_status=status)

    try:
        minutes = billed_minutes(job.duration_seconds)
        credits = lookup.rate * minutes
        cost = credits * credit_price
    except DecimalException:
        # Duration too large to price; treated like an unusable duration
        return PricedJob(job=job, pricing_status=PricingStatus.MISSING_DURATION)
    return PricedJob(
        job=job,
        pricing_status=PricingStatus.PRICED,
        billed_minutes=minutes,
        credits_consumed=credits,
        cost_estimate=cost,
    )


def tally(jobs: Iterable[JobRecord], pricing: PricingTable, credit_price: Decimal) -> CostReport:
    """
    Price every job in listing order and total the priced ones.

    Job outcome (success, failed, canceled, ...) does not matter: compute time
    spent is billed either way. Jobs that cannot be priced are reported with a
    non-priced status and counted in `unpriced_count`; they never abort the tally.

    Raises:
        TypeError: if `jobs` is not an iterable of JobRecord, or credit_price
            is not a Decimal-compatible number
    """
    if isinstance(jobs, (str, bytes, Mapping)) or not isinstance(jobs, Iterable):
        raise TypeError(f"jobs must be a sequence of JobRecord, got {type(jobs).__name__}")
    if isinstance(credit_price, bool) or not isinstance(credit_price, (Decimal, int, str)):
        raise TypeError(f"credit_price must be a Decimal, got {type(credit_price).__name__}")
    price = Decimal(credit_price)

    per_job: List[PricedJob] = []
    total_cost = Decimal(0)
    total_credits = Decimal(0)
    unpriced = 0

    for job in jobs:
        if not isinstance(job, JobRecord):
            raise TypeError(f"expected JobRecord, got {type(job).__name__}")
        priced = price_job(job, pricing, price)
        per_job.append(priced)
        if priced.priced:
            total_cost += priced.cost_estimate
            total_credits += priced.credits_consumed
        else:
            unpriced += 1

    return CostReport(
        total_cost=total_cost,
        total_credits=total_credits,
        credit_price=price,
        per_job=tuple(per_job),
        unpriced_count=unpriced,
    )


def _number(value: Decimal | None) -> Any:
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def present_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def report_to_dict(report: CostReport) -> Dict[str, Any]:
    """Render a report for a JSON response body (camelCase keys, rounded total)."""
    jobs = []
    for priced in report.per_job:
        job = priced.job
        jobs.append({
            "id": job.id,
            "name": job.name,
            "status": job.status,
            "executor": job.executor.value if job.executor else None,
            "resourceClass": job.resource_class,
            "durationSeconds": _number(job.duration_seconds),
            "billedMinutes": priced.billed_minutes,
            "creditsConsumed": _number(priced.credits_consumed),
            "costEstimate": _number(priced.cost_estimate),
            "pricingStatus": priced.pricing_status.value,
        })

    return {
        "jobs": jobs,
        "totalCost": _number(present_cost(report.total_cost)),
        "totalCredits": _number(report.total_credits),
        "creditPrice": _number(report.credit_price),
        "currency": report.currency,
        "unpricedCount": report.unpriced_count,
        "partialEstimate": report.partial,
    }
