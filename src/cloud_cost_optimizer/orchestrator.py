"""
Scan Orchestrator - wires a provider scanner to the analyzer runner,
the region batcher and the aggregator for one scan invocation
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .models import Opportunity, ScanReport
from .providers import ProviderScanner, ScanOptions, get_scanner
from .scanning import AnalyzerRunner, MultiRegionResult, RegionBatcher, ScanAggregator
from .utils.cache import RegionCache
from .utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)


@dataclass
class ScanSession:
    """Mutable state owned by one scan; never shared between scans"""
    zone_cache: RegionCache = field(default_factory=RegionCache)


class ScanOrchestrator:
    """Runs a single-region or all-regions scan and builds its report"""

    def __init__(self,
                 options: ScanOptions,
                 scanner: Optional[ProviderScanner] = None,
                 session: Optional[ScanSession] = None):
        """
        Initialize the orchestrator

        Args:
            options: Merged scan options
            scanner: Provider scanner (resolved from options.provider if omitted)
            session: Per-scan caches (a fresh session if omitted)
        """
        self.options = options
        self.session = session or ScanSession()
        self.scanner = scanner or get_scanner(options.provider, options, self.session)
        self.runner = AnalyzerRunner(timeout=options.analyzer_timeout)
        self.batcher = RegionBatcher(batch_size=options.batch_size)
        self.aggregator = ScanAggregator()
        self.last_result: Optional[MultiRegionResult] = None

    @log_execution_time
    def run(self) -> ScanReport:
        if self.options.all_regions:
            return self.scan_all_regions()
        return self.scan_single_region()

    def scan_region(self, client: Any) -> List[Opportunity]:
        return self.runner.run_all(self.scanner.analyzers(client))

    def scan_single_region(self) -> ScanReport:
        client = self.scanner.create_client(self.scanner.default_region)
        self.scanner.test_connection(client)
        account_id = self.scanner.account_id(client)
        region = self.scanner.report_region(client)

        logger.info(f"Scanning {self.scanner.name} account {account_id} "
                    f"({self.scanner.region_label}: {region})...")
        opportunities = self.scan_region(client)

        return self._build_report(opportunities, account_id, region)

    def scan_all_regions(self) -> ScanReport:
        client = self.scanner.create_client(self.scanner.default_region)
        self.scanner.test_connection(client)
        account_id = self.scanner.account_id(client)

        regions = self.scanner.list_regions()
        label = self.scanner.region_label
        logger.info(f"Scanning {len(regions)} {label}s: {', '.join(regions)}")

        result = self.batcher.scan(
            regions,
            lambda region: self.scan_region(self.scanner.create_client(region)),
        )
        self.last_result = result

        logger.info(f"Completed multi-{label} scan across {len(result.scanned_regions)} {label}s")
        if result.skipped_regions:
            logger.info(f"Skipped {label}s: {', '.join(result.skipped_regions)}")

        return self._build_report(
            result.opportunities,
            account_id,
            self.scanner.multi_region_label(len(result.scanned_regions)),
        )

    def _build_report(self, opportunities: List[Opportunity], account_id: str, region: str) -> ScanReport:
        return self.aggregator.aggregate(
            opportunities,
            self.options.min_savings,
            provider=self.scanner.name,
            account_id=account_id,
            region=region,
            days=self.scanner.days,
        )
