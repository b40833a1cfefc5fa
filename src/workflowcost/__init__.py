from .model import CostReport, Executor, JobRecord, PricedJob, PricingStatus
from .pricing import DEFAULT_PRICING, PricingTable
from .resolver import resolve_job
from .tally import tally

__all__ = [
    "CostReport", "Executor", "JobRecord", "PricedJob", "PricingStatus",
    "DEFAULT_PRICING", "PricingTable", "resolve_job", "tally",
]
