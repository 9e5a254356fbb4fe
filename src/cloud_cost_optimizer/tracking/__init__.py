"""Report history: saved scan reports and the diff between two of them"""

from .diff_engine import DiffEngine, diff, index_by_key, CHANGE_THRESHOLD_PERCENT
from .report_store import ReportStore, report_filename, DEFAULT_REPORTS_DIR

__all__ = [
    'DiffEngine',
    'diff',
    'index_by_key',
    'CHANGE_THRESHOLD_PERCENT',
    'ReportStore',
    'report_filename',
    'DEFAULT_REPORTS_DIR',
]
