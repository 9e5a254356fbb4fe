"""
Terminal rendering of scan reports and report comparisons
"""
import json
from typing import List, Tuple

from colorama import Fore, Style
from tabulate import tabulate

from ..models import ComparisonResult, Opportunity, ScanReport

RULE = '─' * 70
TOP_CHANGES = 5


def format_currency(amount: float) -> str:
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def _truncate(text: str, width: int) -> str:
    text = text or ''
    return text if len(text) <= width else text[:width - 3] + '...'


class ConsoleRenderer:
    """Render reports as plain or ANSI-colored text"""

    def __init__(self, color: bool = False):
        self.color = color

    def _style(self, text: str, *codes: str) -> str:
        if not self.color:
            return text
        return ''.join(codes) + text + Style.RESET_ALL

    def _money(self, amount: float) -> str:
        return self._style(format_currency(amount), Fore.GREEN)

    def render_report(self, report: ScanReport, top: int = 5) -> str:
        lines = [
            self._style('Cloud Cost Optimization Report', Style.BRIGHT),
            f"Provider: {report.provider} | Region: {report.region} | Account: {report.account_id}",
            f"Analyzed: {report.scan_period.start.date().isoformat()} to "
            f"{report.scan_period.end.date().isoformat()}",
            '',
        ]

        ranked = sorted(report.opportunities, key=lambda o: o.estimated_savings, reverse=True)[:top]
        if not ranked:
            lines.append(self._style('✓ No cost optimization opportunities found!', Fore.GREEN))
            return '\n'.join(lines)

        lines.append(self._style(
            f"Top {len(ranked)} Savings Opportunities "
            f"(est. {format_currency(report.total_potential_savings)}/month):", Style.BRIGHT))
        lines.append('')

        rows = [
            [index, o.resource_type.upper(), _truncate(o.resource_id, 40),
             _truncate(o.recommendation, 60), self._money(o.estimated_savings)]
            for index, o in enumerate(ranked, start=1)
        ]
        lines.append(tabulate(rows, headers=['#', 'Type', 'Resource ID', 'Recommendation', 'Savings/mo'],
                              tablefmt='simple', colalign=('right', 'left', 'left', 'left', 'right')))

        total = report.total_potential_savings
        lines.append('')
        lines.append(f"Total potential savings: {self._money(total)}/month ({self._money(total * 12)}/year)")
        lines.append('')
        summary = report.summary
        lines.append(
            f"Summary: {summary.total_resources} resources analyzed | {summary.idle_resources} idle | "
            f"{summary.oversized_resources} oversized | {summary.unused_resources} unused"
        )
        return '\n'.join(lines)

    def render_region_breakdown(self, breakdown: List[Tuple[str, int, float]], label: str = 'Region') -> str:
        if not breakdown:
            return ''
        rows = [[region, count, format_currency(savings)] for region, count, savings in breakdown]
        return '\n'.join([
            self._style(f"{label} Breakdown:", Style.BRIGHT),
            tabulate(rows, headers=[label, 'Opportunities', 'Savings/mo'], tablefmt='simple'),
        ])

    def _opportunity_lines(self, opportunities: List[Opportunity], suffix: str) -> List[str]:
        lines = []
        for o in opportunities[:TOP_CHANGES]:
            lines.append(f"  • {o.resource_type}: {o.resource_id[:50]} "
                         f"({format_currency(o.estimated_savings)}/month {suffix})")
        if len(opportunities) > TOP_CHANGES:
            lines.append(f"  ... and {len(opportunities) - TOP_CHANGES} more")
        return lines

    def render_comparison(self, result: ComparisonResult) -> str:
        summary = result.summary
        if summary.net_change < 0:
            trend = self._style('▼', Fore.GREEN)
        elif summary.net_change > 0:
            trend = self._style('▲', Fore.RED)
        else:
            trend = '='
        sign = '+' if summary.net_change > 0 else ''

        lines = [
            self._style('Cost Optimization Comparison Report', Style.BRIGHT),
            '',
            'Summary:',
            f"  Previous potential savings: {format_currency(summary.from_savings)}/month",
            f"  Current potential savings:  {format_currency(summary.to_savings)}/month",
            f"  Net change: {trend} {sign}{format_currency(summary.net_change)}/month",
            '',
            RULE,
        ]

        if result.new_opportunities:
            lines.append('')
            lines.append(self._style(f"New Opportunities ({len(result.new_opportunities)}):", Fore.YELLOW))
            for o in result.new_opportunities[:TOP_CHANGES]:
                lines.append(f"  • {o.resource_type}: {o.resource_id[:50]}")
                lines.append(f"    {format_currency(o.estimated_savings)}/month - {o.recommendation[:60]}")
            if len(result.new_opportunities) > TOP_CHANGES:
                lines.append(f"  ... and {len(result.new_opportunities) - TOP_CHANGES} more")

        if result.resolved_opportunities:
            achieved = sum(o.estimated_savings for o in result.resolved_opportunities)
            lines.append('')
            lines.append(self._style(f"Resolved Opportunities ({len(result.resolved_opportunities)}):", Fore.GREEN))
            lines.append(f"   Total savings achieved: {format_currency(achieved)}/month")
            lines.extend(self._opportunity_lines(result.resolved_opportunities, 'saved'))

        if result.improved_opportunities:
            reduced = sum(o.estimated_savings for o in result.improved_opportunities)
            lines.append('')
            lines.append(f"Improved Opportunities ({len(result.improved_opportunities)}):")
            lines.append(f"   Savings reduced by: {format_currency(reduced)}/month")
            lines.extend(self._opportunity_lines(result.improved_opportunities, 'improvement'))

        if result.worsened_opportunities:
            added = sum(o.estimated_savings for o in result.worsened_opportunities)
            lines.append('')
            lines.append(self._style(f"Worsened Opportunities ({len(result.worsened_opportunities)}):", Fore.RED))
            lines.append(f"   Additional waste: {format_currency(added)}/month")
            lines.extend(self._opportunity_lines(result.worsened_opportunities, 'increase'))

        lines.append('')
        lines.append(RULE)
        lines.append('')
        lines.append(f"Total: {summary.new_count} new, {summary.resolved_count} resolved")
        return '\n'.join(lines)


def comparison_to_json(result: ComparisonResult) -> str:
    return json.dumps(result.to_dict(), indent=2)
