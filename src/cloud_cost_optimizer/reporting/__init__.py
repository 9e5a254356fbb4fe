"""Report rendering and export"""

from .console import ConsoleRenderer, comparison_to_json, format_currency
from .exporters import ExcelReporter, export_csv, opportunities_dataframe, report_to_json

__all__ = [
    'ConsoleRenderer',
    'comparison_to_json',
    'format_currency',
    'ExcelReporter',
    'export_csv',
    'opportunities_dataframe',
    'report_to_json',
]
