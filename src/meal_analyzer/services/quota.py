"""Per-caller analysis quota."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaDecision:
    """Whether a request may proceed and how many remain today."""

    allowed: bool
    remaining: int
    limit: int


class QuotaGate(Protocol):
    """Admission check run before an analyzer is invoked."""

    def consume(self, identity: str) -> QuotaDecision:
        """Record one request for ``identity`` if allowed."""


def _utc_today() -> date:
    return datetime.now(tz=UTC).date()


@dataclass
class InMemoryDailyQuota(QuotaGate):
    """Counts requests per identity per UTC day in process memory."""

    daily_limit: int
    today: Callable[[], date] = _utc_today
    _counts: dict[tuple[str, date], int] = field(default_factory=dict)

    def consume(self, identity: str) -> QuotaDecision:
        """Consume one unit of today's quota for ``identity``."""
        day = self.today()
        self._drop_stale(day)
        key = (identity, day)
        used = self._counts.get(key, 0)
        if used >= self.daily_limit:
            _logger.warning("Daily analysis quota exhausted for %s", identity)
            return QuotaDecision(allowed=False, remaining=0, limit=self.daily_limit)
        self._counts[key] = used + 1
        return QuotaDecision(
            allowed=True,
            remaining=self.daily_limit - used - 1,
            limit=self.daily_limit,
        )

    def _drop_stale(self, day: date) -> None:
        stale = [key for key in self._counts if key[1] != day]
        for key in stale:
            del self._counts[key]
