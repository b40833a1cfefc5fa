from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional, Tuple


def _bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _delays(value: str) -> Tuple[float, ...]:
    delays = tuple(float(part) for part in value.split(",") if part.strip())
    if any(d < 0 for d in delays):
        raise ValueError(f"RETRY_BACKOFF delays must be non-negative: {value!r}")
    return delays


@dataclass(frozen=True)
class Settings:
    """Deployment configuration. Changing any of these requires a redeploy."""
    credit_price: Decimal = Decimal("0.0006")
    circle_url: str = "https://circleci.com"
    request_timeout: float = 10.0
    max_retries: int = 3
    retry_backoff: Tuple[float, ...] = (0.5, 1.0, 2.0)
    detail_workers: int = 4
    fetch_job_details: bool = True
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ

        try:
            credit_price = Decimal(env.get("CREDIT_PRICE", "0.0006"))
        except InvalidOperation:
            raise ValueError(f"CREDIT_PRICE is not a number: {env.get('CREDIT_PRICE')!r}")
        if not credit_price.is_finite() or credit_price < 0:
            raise ValueError(f"CREDIT_PRICE must be a non-negative number: {credit_price}")

        max_retries = int(env.get("MAX_RETRIES", "3"))
        detail_workers = int(env.get("DETAIL_WORKERS", "4"))
        if max_retries < 0:
            raise ValueError("MAX_RETRIES must be >= 0")
        if detail_workers < 1:
            raise ValueError("DETAIL_WORKERS must be >= 1")

        return cls(
            credit_price=credit_price,
            circle_url=env.get("CIRCLE_URL", "https://circleci.com").rstrip("/"),
            request_timeout=float(env.get("REQUEST_TIMEOUT", "10")),
            max_retries=max_retries,
            retry_backoff=_delays(env.get("RETRY_BACKOFF", "0.5,1,2")),
            detail_workers=detail_workers,
            fetch_job_details=_bool(env.get("FETCH_JOB_DETAILS", "true")),
            debug=_bool(env.get("WORKFLOWCOST_DEBUG", "false")),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Settings loaded once from the environment."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
