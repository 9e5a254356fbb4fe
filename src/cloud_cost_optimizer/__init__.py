"""
Cloud Cost Optimizer - multi-cloud scan orchestration and report comparison
"""

__version__ = "0.1.0"

from .models import (
    Category,
    ComparisonResult,
    ComparisonSummary,
    Confidence,
    Opportunity,
    Provider,
    ScanPeriod,
    ScanReport,
    ScanSummary,
)
from .exceptions import (
    CloudCostError,
    ConfigurationError,
    CredentialsError,
    InsufficientReportsError,
    ReportFormatError,
    ReportNotFoundError,
)

__all__ = [
    '__version__',
    'Category',
    'ComparisonResult',
    'ComparisonSummary',
    'Confidence',
    'Opportunity',
    'Provider',
    'ScanPeriod',
    'ScanReport',
    'ScanSummary',
    'CloudCostError',
    'ConfigurationError',
    'CredentialsError',
    'InsufficientReportsError',
    'ReportFormatError',
    'ReportNotFoundError',
]
