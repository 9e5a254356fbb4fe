"""Concurrent analyzer execution, region batching and aggregation"""

from .runner import AnalyzerRunner, AnalyzerResult, describe_failure, is_permission_error
from .batcher import (
    RegionBatcher,
    MultiRegionResult,
    chunk_regions,
    tag_region,
    extract_region,
)
from .aggregator import ScanAggregator, region_breakdown

__all__ = [
    'AnalyzerRunner',
    'AnalyzerResult',
    'describe_failure',
    'is_permission_error',
    'RegionBatcher',
    'MultiRegionResult',
    'chunk_regions',
    'tag_region',
    'extract_region',
    'ScanAggregator',
    'region_breakdown',
]
