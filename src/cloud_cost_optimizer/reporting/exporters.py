"""
File exports of scan reports: JSON, CSV and formatted Excel workbooks
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..models import ScanReport

logger = logging.getLogger(__name__)

OPPORTUNITY_COLUMNS = [
    'provider', 'region', 'resource_type', 'resource_id', 'resource_name',
    'category', 'confidence', 'current_cost', 'estimated_savings', 'recommendation',
]
COLUMN_WIDTHS = {
    'provider': 10,
    'region': 16,
    'resource_id': 45,
    'resource_name': 25,
    'estimated_savings': 16,
    'recommendation': 70,
}


def report_to_json(report: ScanReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


def opportunities_dataframe(report: ScanReport) -> pd.DataFrame:
    """One row per opportunity, highest savings first"""
    rows = [
        {
            'provider': o.provider,
            'region': o.region or '',
            'resource_type': o.resource_type,
            'resource_id': o.resource_id,
            'resource_name': o.resource_name or '',
            'category': o.category,
            'confidence': o.confidence,
            'current_cost': o.current_cost,
            'estimated_savings': o.estimated_savings,
            'recommendation': o.recommendation,
        }
        for o in report.opportunities
    ]
    df = pd.DataFrame(rows, columns=OPPORTUNITY_COLUMNS)
    return df.sort_values('estimated_savings', ascending=False, kind='stable').reset_index(drop=True)


def export_csv(report: ScanReport, output_file: Union[str, Path]) -> Path:
    path = Path(output_file)
    opportunities_dataframe(report).to_csv(path, index=False)
    logger.info(f"CSV report saved to {path}")
    return path


class ExcelReporter:
    """Generate formatted Excel workbooks for a scan report"""

    COLORS = {
        'banner': 'FF1F3A5F',
        'savings': 'FF1E8449',
        'section': 'FFEAEFF5',
        'text_light': 'FFFFFFFF',
    }
    CURRENCY_FORMAT = '$#,##0.00'

    def __init__(self):
        self.styles: Dict[str, Dict[str, Any]] = {}
        self._setup_styles()

    def _solid(self, color_key: str) -> PatternFill:
        color = self.COLORS[color_key]
        return PatternFill(start_color=color, end_color=color, fill_type='solid')

    def _setup_styles(self):
        """Styles shared by both sheets, keyed by role"""
        light = self.COLORS['text_light']
        self.styles['header'] = {
            'font': Font(size=15, bold=True, color=light),
            'fill': self._solid('banner'),
            'alignment': Alignment(vertical='center'),
        }
        self.styles['subheader'] = {
            'font': Font(size=11, bold=True),
            'fill': self._solid('section'),
            'border': Border(bottom=Side(style='medium')),
        }
        self.styles['table_header'] = {
            'font': Font(bold=True, color=light),
            'fill': self._solid('banner'),
            'alignment': Alignment(horizontal='center', wrap_text=True),
        }
        self.styles['savings'] = {
            'font': Font(bold=True, color=self.COLORS['savings']),
            'number_format': self.CURRENCY_FORMAT,
        }

    def _apply_style(self, cell, style: Dict[str, Any]):
        for name, value in style.items():
            setattr(cell, name, value)

    def generate_report(self, report: ScanReport, output_file: Union[str, Path],
                        generated_at: Optional[datetime] = None) -> Path:
        """
        Write a workbook with a Summary sheet and an Opportunities sheet

        Args:
            report: Scan report to export
            output_file: Destination .xlsx path
            generated_at: Timestamp shown on the summary sheet
        """
        path = Path(output_file)
        logger.info(f"Generating Excel report: {path}")

        df = opportunities_dataframe(report)
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name='Opportunities', index=False)
            workbook = writer.book
            self._format_opportunities(workbook['Opportunities'], len(df))
            summary_sheet = workbook.create_sheet('Summary', 0)
            self._create_summary(summary_sheet, report, generated_at or datetime.now())

        logger.info(f"Report saved to {path}")
        return path

    def _create_summary(self, ws, report: ScanReport, generated_at: datetime):
        ws['A1'] = 'Cloud Cost Optimization Report'
        self._apply_style(ws['A1'], self.styles['header'])
        ws.merge_cells('A1:D1')
        ws.row_dimensions[1].height = 28

        period = f"{report.scan_period.start.date()} to {report.scan_period.end.date()}"
        details = [
            ('Report Generated:', generated_at.strftime('%Y-%m-%d %H:%M:%S')),
            ('Provider:', report.provider),
            ('Account:', report.account_id),
            ('Region:', report.region),
            ('Analysis Period:', period),
        ]
        for row, (label, value) in enumerate(details, start=3):
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)

        section_row = 3 + len(details) + 1
        ws.cell(row=section_row, column=1, value='Key Metrics')
        self._apply_style(ws.cell(row=section_row, column=1), self.styles['subheader'])
        ws.merge_cells(start_row=section_row, start_column=1, end_row=section_row, end_column=4)

        summary = report.summary
        metrics = [
            ('Total Monthly Savings', report.total_potential_savings, True),
            ('Total Annual Savings', report.total_potential_savings * 12, True),
            ('Opportunities', summary.total_resources, False),
            ('Idle Resources', summary.idle_resources, False),
            ('Oversized Resources', summary.oversized_resources, False),
            ('Unused Resources', summary.unused_resources, False),
        ]
        for row, (label, value, is_money) in enumerate(metrics, start=section_row + 2):
            ws.cell(row=row, column=1, value=label)
            cell = ws.cell(row=row, column=3, value=value)
            if is_money:
                self._apply_style(cell, self.styles['savings'])

        for letter, width in (('A', 28), ('B', 42), ('C', 18)):
            ws.column_dimensions[letter].width = width

    def _format_opportunities(self, ws, row_count: int):
        for cell in ws[1]:
            self._apply_style(cell, self.styles['table_header'])

        for name in ('current_cost', 'estimated_savings'):
            column = OPPORTUNITY_COLUMNS.index(name) + 1
            for row in range(2, row_count + 2):
                ws.cell(row=row, column=column).number_format = self.CURRENCY_FORMAT

        for index, name in enumerate(OPPORTUNITY_COLUMNS, start=1):
            ws.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTHS.get(name, 14)
        ws.freeze_panes = 'A2'
