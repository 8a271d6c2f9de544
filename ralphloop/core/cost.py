"""
Cost accounting for a streamed session.

The session engine reports a cumulative cost on each result
notification. Per-iteration cost is the difference between consecutive
cumulative reports, never a re-summed total.
"""

import logging
from dataclasses import dataclass

from .exceptions import CostRegression

logger = logging.getLogger("ralphloop.core.cost")


@dataclass
class CostAccountant:
    """Tracks the session's cumulative cost and the latest delta."""
    total_cost_usd: float = 0.0
    last_delta_usd: float = 0.0
    reports: int = 0

    def record(self, cumulative_usd: float) -> float:
        """Record a cumulative cost report.

        Returns:
            The cost added since the previous report

        Raises:
            CostRegression: If the cumulative figure went down. Stored
                values are left untouched.
        """
        if cumulative_usd < self.total_cost_usd:
            raise CostRegression(previous=self.total_cost_usd, reported=cumulative_usd)

        delta = cumulative_usd - self.total_cost_usd
        self.total_cost_usd = cumulative_usd
        self.last_delta_usd = delta
        self.reports += 1
        logger.debug(f"Cost report #{self.reports}: +${delta:.4f} (total ${cumulative_usd:.4f})")
        return delta

    def reset(self) -> None:
        self.total_cost_usd = 0.0
        self.last_delta_usd = 0.0
        self.reports = 0
