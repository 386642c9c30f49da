"""Retry-policy synthesis.

Maps an abstract retry strategy from the editor to the concrete timing fields
of the runtime's activity retry policy. Defaults are strategy-specific and are
applied field by field: an explicitly supplied value always wins.

    keep-trying          unbounded attempts, 1s -> 1h, coefficient 2.0
    fail-after-x         3 attempts, 1s initial interval
    exponential-backoff  5 attempts, 1s -> 1h, coefficient 2.0
    none                 single attempt, no retry block emitted
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flowsmith.core.graph_schema import RetryPolicy, RetryStrategy
from flowsmith.core.utils import ts_number, ts_string

# None for maximum_attempts means unbounded; None elsewhere means "omit"
STRATEGY_DEFAULTS: dict[RetryStrategy, dict[str, Any]] = {
    RetryStrategy.KEEP_TRYING: {
        "maximum_attempts": None,
        "initial_interval": "1s",
        "maximum_interval": "1h",
        "backoff_coefficient": 2.0,
    },
    RetryStrategy.FAIL_AFTER_X: {
        "maximum_attempts": 3,
        "initial_interval": "1s",
        "maximum_interval": None,
        "backoff_coefficient": None,
    },
    RetryStrategy.EXPONENTIAL_BACKOFF: {
        "maximum_attempts": 5,
        "initial_interval": "1s",
        "maximum_interval": "1h",
        "backoff_coefficient": 2.0,
    },
    RetryStrategy.NONE: {
        "maximum_attempts": 1,
        "initial_interval": None,
        "maximum_interval": None,
        "backoff_coefficient": None,
    },
}


@dataclass(frozen=True)
class RetrySettings:
    """Concrete retry parameters for one activity call."""

    strategy: RetryStrategy
    maximum_attempts: int | None  # None means unbounded
    initial_interval: str | None
    maximum_interval: str | None
    backoff_coefficient: float | None

    @property
    def retries_enabled(self) -> bool:
        return self.strategy != RetryStrategy.NONE

    @property
    def unbounded(self) -> bool:
        return self.maximum_attempts is None

    def render(self, indent: str) -> list[str]:
        """Render as a ``retry: { ... },`` property of an options object."""
        attempts = "Infinity" if self.unbounded else str(self.maximum_attempts)
        lines = [f"{indent}retry: {{", f"{indent}  maximumAttempts: {attempts},"]
        if self.initial_interval is not None:
            lines.append(f"{indent}  initialInterval: {ts_string(self.initial_interval)},")
        if self.maximum_interval is not None:
            lines.append(f"{indent}  maximumInterval: {ts_string(self.maximum_interval)},")
        if self.backoff_coefficient is not None:
            lines.append(f"{indent}  backoffCoefficient: {ts_number(self.backoff_coefficient)},")
        lines.append(f"{indent}}},")
        return lines


def _pick(explicit: Any, default: Any) -> Any:
    return explicit if explicit is not None else default


def synthesize_retry_policy(policy: RetryPolicy) -> RetrySettings:
    """Fill a policy's missing fields from its strategy defaults."""
    defaults = STRATEGY_DEFAULTS[policy.strategy]
    return RetrySettings(
        strategy=policy.strategy,
        maximum_attempts=_pick(policy.max_attempts, defaults["maximum_attempts"]),
        initial_interval=_pick(policy.initial_interval, defaults["initial_interval"]),
        maximum_interval=_pick(policy.max_interval, defaults["maximum_interval"]),
        backoff_coefficient=_pick(policy.backoff_coefficient, defaults["backoff_coefficient"]),
    )
