# pricing.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .model import Executor


class LookupOutcome(str, Enum):
    FOUND = "found"
    UNPRICED_EXECUTOR = "unpriced-executor"
    UNKNOWN_CLASS = "unknown-class"


@dataclass(frozen=True)
class RateLookup:
    """Result of a pricing lookup. `rate` is set only when the outcome is FOUND."""
    outcome: LookupOutcome
    rate: Optional[Decimal] = None

    @property
    def found(self) -> bool:
        return self.outcome is LookupOutcome.FOUND


def _normalise_class(resource_class: str | None) -> str | None:
    if resource_class is None:
        return None
    return resource_class.strip().lower() or None


class PricingTable:
    """
    Read-only (executor, resource class) -> credits per minute lookup.

    A family mapped to an empty dict is known but unpriced, which is different
    from a priced family that does not list the requested resource class.
    """

    def __init__(self, rates: Mapping[Executor, Mapping[str, object]]):
        table: Dict[Executor, Mapping[str, Decimal]] = {}
        for executor, classes in rates.items():
            entries: Dict[str, Decimal] = {}
            for name, rate in classes.items():
                key = _normalise_class(name)
                if key is None:
                    raise ValueError(f"Empty resource class name for executor {executor.value}")
                if key in entries:
                    raise ValueError(f"Duplicate rate for ({executor.value}, {key})")
                value = Decimal(str(rate))
                if value < 0:
                    raise ValueError(f"Negative rate for ({executor.value}, {key}): {rate}")
                entries[key] = value
            table[Executor(executor)] = MappingProxyType(entries)
        self._rates: Mapping[Executor, Mapping[str, Decimal]] = MappingProxyType(table)

    def lookup(self, executor: Executor | None, resource_class: str | None) -> RateLookup:
        if executor is None:
            return RateLookup(LookupOutcome.UNPRICED_EXECUTOR)

        classes = self._rates.get(executor)
        if not classes:
            return RateLookup(LookupOutcome.UNPRICED_EXECUTOR)

        rate = classes.get(_normalise_class(resource_class))  # type: ignore[arg-type]
        if rate is None:
            return RateLookup(LookupOutcome.UNKNOWN_CLASS)
        return RateLookup(LookupOutcome.FOUND, rate)

    def rate(self, executor: Executor | None, resource_class: str | None) -> Optional[Decimal]:
        """Credits per minute, or None when the pair cannot be priced."""
        return self.lookup(executor, resource_class).rate


DEFAULT_RATES: Mapping[Executor, Mapping[str, int]] = {
    Executor.CONTAINER: {
        "small": 5,
        "medium": 10,
        "medium+": 15,
        "large": 20,
        "xlarge": 40,
        "2xlarge": 80,
        "2xlarge+": 100,
        "3xlarge": 160,
        "4xlarge": 320,
    },
    Executor.VIRTUAL_MACHINE: {
        "small": 5,
        "medium": 10,
        "large": 20,
        "xlarge": 40,
        "2xlarge": 80,
        "3xlarge": 120,
    },
    Executor.MACOS: {},
    Executor.GPU: {},
    Executor.WINDOWS: {},
}

DEFAULT_PRICING = PricingTable(DEFAULT_RATES)
