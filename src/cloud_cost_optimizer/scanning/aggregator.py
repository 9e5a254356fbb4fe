"""
Scan aggregation - filtering, totals and summary counts
"""
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ..models import (
    Category,
    Opportunity,
    ScanPeriod,
    ScanReport,
    ScanSummary,
    normalize_savings,
    utcnow,
)
from .batcher import extract_region

logger = logging.getLogger(__name__)


class ScanAggregator:
    """Builds a ScanReport from raw analyzer output"""

    def aggregate(self,
                  opportunities: Iterable[Opportunity],
                  min_savings: float = 0.0,
                  *,
                  provider: str,
                  account_id: str,
                  region: str,
                  days: int,
                  now: Optional[datetime] = None) -> ScanReport:
        """
        Filter by minimum savings and compute totals

        Args:
            opportunities: Findings of all analyzers (and regions)
            min_savings: Keep findings whose monthly savings are at least this
            provider: Provider name for the report header
            account_id: Account, subscription or project id
            region: Literal region or a synthetic multi-region label
            days: Lookback used to label the scan period
            now: End of the scan period (defaults to the current time)

        Returns:
            ScanReport whose total equals the sum of its kept findings
        """
        end = now or utcnow()
        start = end - timedelta(days=days)

        kept = []
        for opportunity in opportunities:
            savings = normalize_savings(opportunity.estimated_savings)
            if savings != opportunity.estimated_savings:
                opportunity = opportunity.with_savings(savings)
            if savings >= min_savings:
                kept.append(opportunity)

        total = 0.0
        for opportunity in kept:
            total += opportunity.estimated_savings

        summary = ScanSummary(
            total_resources=len(kept),
            idle_resources=sum(1 for o in kept if o.category == Category.IDLE.value),
            oversized_resources=sum(1 for o in kept if o.category == Category.OVERSIZED.value),
            unused_resources=sum(1 for o in kept if o.category == Category.UNUSED.value),
        )

        logger.debug(f"Aggregated {len(kept)} opportunities (min savings ${min_savings:.2f})")

        return ScanReport(
            provider=provider,
            account_id=account_id,
            region=region,
            scan_period=ScanPeriod(start=start, end=end),
            opportunities=kept,
            total_potential_savings=total,
            summary=summary,
        )


def region_breakdown(opportunities: Iterable[Opportunity]) -> List[Tuple[str, int, float]]:
    """Per-region (region, count, savings), most findings first"""
    stats = OrderedDict()
    for opportunity in opportunities:
        region = opportunity.region or extract_region(opportunity.resource_id) or 'unknown'
        count, savings = stats.get(region, (0, 0.0))
        stats[region] = (count + 1, savings + normalize_savings(opportunity.estimated_savings))

    rows = [(region, count, savings) for region, (count, savings) in stats.items()]
    rows.sort(key=lambda row: row[1], reverse=True)
    return rows
