"""
Flat-file store of saved scan reports
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..exceptions import InsufficientReportsError, ReportFormatError, ReportNotFoundError
from ..models import ScanReport, utcnow

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_DIR = Path.home() / '.cloud-cost-optimizer' / 'reports'


def report_filename(report: ScanReport, timestamp: datetime) -> str:
    """scan-<provider>-<region>-<timestamp>.json, filesystem safe"""
    region = re.sub(r'\s+', '-', report.region)
    stamp = timestamp.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    stamp = re.sub(r'[:.]', '-', stamp)
    return f"scan-{report.provider}-{region}-{stamp}.json"


class ReportStore:
    """Save, list and load JSON scan reports in one directory"""

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.directory = Path(directory).expanduser() if directory else DEFAULT_REPORTS_DIR

    def save(self, report: ScanReport, timestamp: Optional[datetime] = None) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / report_filename(report, timestamp or utcnow())
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2)
        logger.info(f"Report saved to {path}")
        return path

    def list_reports(self) -> List[Path]:
        """Saved reports, newest first"""
        if not self.directory.exists():
            return []
        files = [p for p in self.directory.glob('*.json') if p.is_file()]
        # File names embed the scan time, which breaks mtime ties
        files.sort(key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
        return files

    def resolve(self, path: Union[str, Path]) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute() and not candidate.exists():
            candidate = self.directory / candidate
        return candidate

    def load(self, path: Union[str, Path]) -> ScanReport:
        """
        Load a report by absolute path or by a path relative to the store

        Raises:
            ReportNotFoundError: The file does not exist
            ReportFormatError: The file is not a valid report
        """
        resolved = self.resolve(path)
        if not resolved.is_file():
            raise ReportNotFoundError(f"Report not found: {path}")

        try:
            with open(resolved, encoding='utf-8') as f:
                data = json.load(f)
            return ScanReport.from_dict(data)
        except json.JSONDecodeError as e:
            raise ReportFormatError(f"Invalid JSON in report {resolved}: {e}") from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ReportFormatError(f"Malformed report {resolved}: {e}") from e

    def latest_pair(self) -> Tuple[ScanReport, ScanReport]:
        """(second newest, newest) saved reports"""
        reports = self.list_reports()
        if len(reports) < 2:
            raise InsufficientReportsError(
                'Need at least 2 saved reports to compare. '
                'Run "cloud-cost-optimizer scan" at least twice.'
            )
        return self.load(reports[1]), self.load(reports[0])
