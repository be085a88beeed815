"""
Main Output Handler Module.

This module provides the unified OutputHandler, a result sink that fans
every processing result out to the enabled sinks (Excel and Database).

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config import get_config
from src.processing.interfaces import ResultSink
from src.processing.result import ProcessingResult
from src.utils.exceptions import OutputError
from src.utils.logger import get_logger
from .database_handler import DatabaseHandler
from .excel_exporter import ExcelExporter

# Initialize module logger
logger = get_logger(__name__)


class OutputHandler(ResultSink):
    """
    Composite result sink over Excel and database output.

    A failing sink is logged and does not stop the others.

    Attributes:
        excel_enabled: Whether Excel export is enabled
        database_enabled: Whether database storage is enabled

    Example:
        >>> handler = OutputHandler(output_dir="outputs")
        >>> service = InvoiceProcessingService(sinks=[handler])
        >>> service.process_all(DirectoryPdfSource("data/invoices"))
        >>> handler.close()  # writes the Excel report
    """

    def __init__(
        self,
        excel_enabled: Optional[bool] = None,
        database_enabled: Optional[bool] = None,
        output_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Initialize the output handler.

        Args:
            excel_enabled: Override config for Excel output.
            database_enabled: Override config for database output.
            output_dir: Override paths.output_dir for both sinks.
        """
        self.excel_enabled = excel_enabled if excel_enabled is not None else \
            get_config("output.excel.enabled", True)
        self.database_enabled = database_enabled if database_enabled is not None else \
            get_config("output.database.enabled", True)
        self.output_dir = Path(output_dir) if output_dir else None

        # Sinks are created lazily
        self._excel_exporter: Optional[ExcelExporter] = None
        self._database_handler: Optional[DatabaseHandler] = None

        logger.info(
            f"OutputHandler initialized "
            f"(excel={self.excel_enabled}, database={self.database_enabled})"
        )

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter(output_dir=self.output_dir)
        return self._excel_exporter

    @property
    def database_handler(self) -> DatabaseHandler:
        """Get or create the database handler."""
        if self._database_handler is None:
            db_path = None
            if self.output_dir is not None:
                db_path = self.output_dir / get_config("output.database.name", "invoice_processing.db")
            self._database_handler = DatabaseHandler(db_path)
        return self._database_handler

    @property
    def sinks(self) -> List[ResultSink]:
        sinks: List[ResultSink] = []
        if self.database_enabled:
            sinks.append(self.database_handler)
        if self.excel_enabled:
            sinks.append(self.excel_exporter)
        return sinks

    def write(self, result: ProcessingResult) -> None:
        for sink in self.sinks:
            try:
                sink.write(result)
            except Exception as e:
                logger.error(f"{type(sink).__name__} failed for {result.filename}: {e}")

    def get_database_stats(self) -> Dict[str, Any]:
        """Statistics of the stored results."""
        return self.database_handler.get_statistics()

    def get_all_records(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.database_handler.get_all(limit)

    @property
    def excel_path(self) -> Optional[str]:
        """Path of the last Excel report written."""
        return self._excel_exporter.last_export_path if self._excel_exporter else None

    def close(self) -> Dict[str, Any]:
        """
        Close all sinks; writes the Excel report for buffered results.

        Returns:
            Dictionary with output details:
            {
                'excel_path': 'path/to/file.xlsx',
                'database_path': 'path/to/file.db'
            }
        """
        output_info: Dict[str, Any] = {'excel_path': None, 'database_path': None}

        if self._excel_exporter is not None:
            try:
                self._excel_exporter.close()
                output_info['excel_path'] = self._excel_exporter.last_export_path
            except OutputError as e:
                logger.error(f"Excel export failed: {e}")

        if self._database_handler is not None:
            self._database_handler.close()
            output_info['database_path'] = str(self._database_handler.db_path)

        return output_info
