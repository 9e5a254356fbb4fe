"""
Region batcher - bounded fan-out of region scans with fail-soft semantics
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence

from ..models import Opportunity

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

REGION_TAG_PATTERN = re.compile(r'^\[([^\]]+)\]')

ScanRegionFn = Callable[[str], List[Opportunity]]


@dataclass
class MultiRegionResult:
    """Merged findings of a multi-region scan"""
    opportunities: List[Opportunity] = field(default_factory=list)
    scanned_regions: List[str] = field(default_factory=list)
    skipped_regions: List[str] = field(default_factory=list)


def chunk_regions(regions: Sequence[str], size: int) -> List[List[str]]:
    """Split regions into consecutive batches of at most `size`"""
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    regions = list(regions)
    return [regions[i:i + size] for i in range(0, len(regions), size)]


def tag_region(opportunity: Opportunity, region: str) -> Opportunity:
    """Copy an opportunity with its region recorded in both the field and the id prefix"""
    return replace(
        opportunity,
        resource_id=f"[{region}] {opportunity.resource_id}",
        region=region,
    )


def extract_region(resource_id: str) -> Optional[str]:
    match = REGION_TAG_PATTERN.match(resource_id or '')
    return match.group(1) if match else None


class RegionBatcher:
    """Scans regions in fixed-size concurrent batches, strictly one batch at a time"""

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError(f"batch size must be at least 1, got {batch_size}")
        self.batch_size = batch_size

    def scan(self, regions: Sequence[str], scan_region: ScanRegionFn) -> MultiRegionResult:
        """
        Scan every region, isolating per-region failures

        Args:
            regions: Regions or locations, in the order results should be merged
            scan_region: Callable returning the untagged findings of one region

        Returns:
            MultiRegionResult with tagged opportunities in region-list order
        """
        result = MultiRegionResult()
        batches = chunk_regions(regions, self.batch_size)

        for index, batch in enumerate(batches, start=1):
            logger.info(f"Scanning batch {index}/{len(batches)}: {', '.join(batch)}")
            for region, found, failed in self._scan_batch(batch, scan_region):
                if failed:
                    result.skipped_regions.append(region)
                    continue
                if found:
                    result.scanned_regions.append(region)
                    logger.info(f"✓ {region}: Found {len(found)} opportunities")
                result.opportunities.extend(tag_region(o, region) for o in found)

        return result

    def _scan_batch(self, batch: List[str], scan_region: ScanRegionFn):
        outcomes = []
        # Leaving the with-block joins every worker, which is the batch barrier
        with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix='region') as executor:
            futures = [(region, executor.submit(scan_region, region)) for region in batch]
            for region, future in futures:
                try:
                    outcomes.append((region, list(future.result() or []), False))
                except Exception as e:
                    logger.warning(f"Skipped {region}: {e}")
                    outcomes.append((region, [], True))
        return outcomes
