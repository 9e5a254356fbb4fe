"""
Diff Engine Module

Classifies the opportunities of two scan reports by stable identity key into
new, resolved, improved, worsened and unchanged buckets.
"""

import logging
from typing import Dict, List

from ..models import ComparisonResult, ComparisonSummary, Opportunity, ScanReport

logger = logging.getLogger(__name__)

CHANGE_THRESHOLD_PERCENT = 5.0


def index_by_key(opportunities: List[Opportunity]) -> Dict[str, Opportunity]:
    """Map key -> opportunity; a later duplicate key replaces the earlier one"""
    index: Dict[str, Opportunity] = {}
    for opportunity in opportunities:
        index[opportunity.key] = opportunity
    return index


class DiffEngine:
    """Compare two scan reports"""

    def __init__(self, threshold_percent: float = CHANGE_THRESHOLD_PERCENT):
        """
        Args:
            threshold_percent: Relative change (in percent) a savings estimate
                must exceed to count as improved or worsened
        """
        self.threshold_percent = threshold_percent

    def percent_change(self, from_savings: float, to_savings: float) -> float:
        if from_savings > 0:
            return (to_savings - from_savings) * 100 / from_savings
        return 0.0

    def diff(self, from_report: ScanReport, to_report: ScanReport) -> ComparisonResult:
        """
        Compare an older report against a newer one

        Args:
            from_report: Baseline report
            to_report: Report to compare against the baseline

        Returns:
            ComparisonResult whose buckets partition the union of both key sets
        """
        from_index = index_by_key(from_report.opportunities)
        to_index = index_by_key(to_report.opportunities)

        new = [o for key, o in to_index.items() if key not in from_index]
        resolved = [o for key, o in from_index.items() if key not in to_index]
        improved: List[Opportunity] = []
        worsened: List[Opportunity] = []
        unchanged: List[Opportunity] = []

        for key, before in from_index.items():
            after = to_index.get(key)
            if after is None:
                continue

            savings_diff = after.estimated_savings - before.estimated_savings
            change = self.percent_change(before.estimated_savings, after.estimated_savings)

            if abs(change) > self.threshold_percent:
                delta = after.with_savings(abs(savings_diff))
                if savings_diff > 0:
                    worsened.append(delta)
                else:
                    improved.append(delta)
            else:
                unchanged.append(after)

        summary = ComparisonSummary(
            from_savings=from_report.total_potential_savings,
            to_savings=to_report.total_potential_savings,
            net_change=to_report.total_potential_savings - from_report.total_potential_savings,
            new_count=len(new),
            resolved_count=len(resolved),
        )

        logger.debug(f"Diff: {len(new)} new, {len(resolved)} resolved, {len(improved)} improved, "
                     f"{len(worsened)} worsened, {len(unchanged)} unchanged")

        return ComparisonResult(
            new_opportunities=new,
            resolved_opportunities=resolved,
            improved_opportunities=improved,
            worsened_opportunities=worsened,
            unchanged_opportunities=unchanged,
            summary=summary,
        )


def diff(from_report: ScanReport, to_report: ScanReport) -> ComparisonResult:
    return DiffEngine().diff(from_report, to_report)
