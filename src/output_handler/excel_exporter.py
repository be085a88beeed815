"""
Excel Exporter Module.

Excel report of processing results using openpyxl:
    - Results sheet: one row per document with status, decision,
      confidences and the main invoice fields
    - Validation sheet: every validation error and warning
    - Summary sheet: counts per status and decision, average confidence

As a result sink the exporter buffers results and writes the workbook
when closed (or when export() is called explicitly).

Author: ML Engineering Team
"""

import threading
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from src.processing.interfaces import ResultSink
from src.processing.result import ProcessingResult
from src.utils.exceptions import ExcelExportError
from src.utils.helpers import ensure_directory, generate_timestamp
from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

HEADER_FONT = Font(bold=True, color="FFFFFF")
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)

STATUS_FILLS = {
    'ready_for_auto_processing': "C6EFCE",
    'ready_for_review': "FFEB9C",
    'requires_manual_review': "FCE4D6",
    'requires_manual_processing': "F8CBAD",
}
FAILURE_FILL = "FFC7CE"


class ExcelExporter(ResultSink):
    """
    Exports processing results to an Excel workbook.

    Attributes:
        output_dir: Directory for output files
        filename_prefix: Prefix of generated file names
        include_summary_sheet: Whether to add the summary sheet

    Example:
        >>> exporter = ExcelExporter()
        >>> filepath = exporter.export(results, "processing.xlsx")
        >>> print(f"Saved to: {filepath}")
    """

    # Column definitions: (header, extractor)
    COLUMNS: List[Tuple[str, Any]] = [
        ('Filename', lambda r: r.filename),
        ('Status', lambda r: r.status.value),
        ('Decision', lambda r: r.decision.value),
        ('Overall Confidence', lambda r: round(r.overall_confidence, 3)),
        ('Text Confidence', lambda r: round(r.text_confidence, 3)),
        ('Data Confidence', lambda r: round(r.data_confidence, 3)),
        ('PDF Type', lambda r: r.pdf_type),
        ('Strategy', lambda r: r.strategy),
        ('Primary Method', lambda r: r.primary_method),
        ('Invoice Number', lambda r: _field(r, 'invoice_number')),
        ('Total Amount', lambda r: _field(r, 'total_amount')),
        ('Currency', lambda r: _field(r, 'currency')),
        ('Invoice Date', lambda r: _field(r, 'invoice_date')),
        ('Due Date', lambda r: _field(r, 'due_date')),
        ('Vendor Name', lambda r: _field(r, 'vendor_name')),
        ('Fields Extracted', lambda r: r.extracted_field_count),
        ('Processing Time (ms)', lambda r: r.processing_time_ms),
        ('Error', lambda r: r.error),
    ]

    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        filename_prefix: Optional[str] = None,
        include_summary_sheet: Optional[bool] = None
    ) -> None:
        """Initialize the Excel exporter with configuration."""
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.filename_prefix = filename_prefix or get_config("output.excel.filename_prefix", "invoice_processing")
        if include_summary_sheet is None:
            include_summary_sheet = get_config("output.excel.include_summary_sheet", True)
        self.include_summary_sheet = include_summary_sheet

        self._buffer: List[ProcessingResult] = []
        self._lock = threading.Lock()
        self.last_export_path: Optional[str] = None

        logger.debug(f"ExcelExporter initialized (output_dir: {self.output_dir})")

    def write(self, result: ProcessingResult) -> None:
        """Buffer a result for the next export."""
        with self._lock:
            self._buffer.append(result)

    def close(self) -> None:
        """Export buffered results, if any."""
        with self._lock:
            buffered = list(self._buffer)
            self._buffer = []
        if buffered:
            self.export(buffered)

    def export(
        self,
        results: Optional[Iterable[ProcessingResult]] = None,
        filename: Optional[str] = None,
        output_dir: Optional[Union[str, Path]] = None
    ) -> str:
        """
        Export processing results to an Excel file.

        Args:
            results: Results to export; defaults to (and drains) the buffer.
            filename: Output filename. If None, auto-generated.
            output_dir: Output directory. If None, uses configured dir.

        Returns:
            Path to the created Excel file.

        Raises:
            ExcelExportError: If there is nothing to export or saving fails.
        """
        if results is None:
            with self._lock:
                results = list(self._buffer)
                self._buffer = []
        results = list(results)

        if not results:
            raise ExcelExportError("No results", "No results to export")

        out_dir = ensure_directory(Path(output_dir) if output_dir else self.output_dir)
        filepath = out_dir / (filename or self.get_default_filename())

        try:
            workbook = Workbook()
            self._create_results_sheet(workbook, results)
            self._create_validation_sheet(workbook, results)
            if self.include_summary_sheet:
                self._create_summary_sheet(workbook, results)
            workbook.save(filepath)
        except (OSError, ValueError) as e:
            logger.error(f"Excel export failed: {e}")
            raise ExcelExportError(str(filepath), str(e)) from e

        self.last_export_path = str(filepath)
        logger.info(f"Excel file saved: {filepath} ({len(results)} records)")
        return str(filepath)

    @staticmethod
    def _write_header(sheet, headers: List[str], color: str) -> None:
        fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        for col, header in enumerate(headers, 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = HEADER_FONT
            cell.fill = fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = THIN_BORDER
        sheet.freeze_panes = 'A2'

    @staticmethod
    def _fit_columns(sheet, headers: List[str], max_width: int = 50) -> None:
        for col, header in enumerate(headers, 1):
            max_length = len(header)
            for row in range(2, sheet.max_row + 1):
                value = sheet.cell(row=row, column=col).value
                if value is not None:
                    max_length = max(max_length, len(str(value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, max_width)

    def _create_results_sheet(self, workbook, results: List[ProcessingResult]) -> None:
        sheet = workbook.active
        sheet.title = "Processing Results"
        headers = [header for header, _ in self.COLUMNS]
        self._write_header(sheet, headers, "4472C4")

        for row_num, result in enumerate(results, 2):
            for col, (_, getter) in enumerate(self.COLUMNS, 1):
                cell = sheet.cell(row=row_num, column=col, value=getter(result))
                cell.border = THIN_BORDER

            color = FAILURE_FILL if result.status.is_failure else STATUS_FILLS.get(result.status.value)
            if color:
                status_cell = sheet.cell(row=row_num, column=2)
                status_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")

        self._fit_columns(sheet, headers)

    def _create_validation_sheet(self, workbook, results: List[ProcessingResult]) -> None:
        sheet = workbook.create_sheet(title="Validation")
        headers = ['Filename', 'Kind', 'Field', 'Type', 'Message', 'Suggested Value']
        self._write_header(sheet, headers, "C65911")

        row_num = 2
        for result in results:
            if result.validation is None:
                continue
            for error in result.validation.errors:
                values = [result.filename, 'error', error.field, error.error_type, error.message, None]
                for col, value in enumerate(values, 1):
                    sheet.cell(row=row_num, column=col, value=value)
                row_num += 1
            for warning in result.validation.warnings:
                values = [
                    result.filename, 'warning', warning.field, warning.warning_type,
                    warning.message, warning.suggested_value
                ]
                for col, value in enumerate(values, 1):
                    sheet.cell(row=row_num, column=col, value=value)
                row_num += 1

        self._fit_columns(sheet, headers, max_width=70)

    def _create_summary_sheet(self, workbook, results: List[ProcessingResult]) -> None:
        sheet = workbook.create_sheet(title="Summary")
        self._write_header(sheet, ['Metric', 'Value'], "548235")

        successful = [result for result in results if result.is_successful]
        average = (
            sum(result.overall_confidence for result in successful) / len(successful)
            if successful else 0.0
        )

        rows: List[Tuple[str, Any]] = [
            ('Generated', generate_timestamp("%Y-%m-%d %H:%M:%S")),
            ('Documents', len(results)),
            ('Successful', len(successful)),
            ('Failed', len(results) - len(successful)),
            ('Average Confidence', round(average, 3)),
        ]
        rows += [(f"Status: {status}", count) for status, count in
                 sorted(Counter(result.status.value for result in results).items())]
        rows += [(f"Decision: {decision}", count) for decision, count in
                 sorted(Counter(result.decision.value for result in successful).items())]

        for row_num, (metric, value) in enumerate(rows, 2):
            sheet.cell(row=row_num, column=1, value=metric)
            sheet.cell(row=row_num, column=2, value=value)

        sheet.column_dimensions['A'].width = 40
        sheet.column_dimensions['B'].width = 22

    def get_default_filename(self) -> str:
        """Generate a default filename with timestamp."""
        return f"{self.filename_prefix}_{generate_timestamp()}.xlsx"


def _field(result: ProcessingResult, name: str) -> Optional[str]:
    if result.invoice_data is None:
        return None
    return result.invoice_data.to_dict().get(name)
