"""
Output Handler Module for the Invoice Automation Core.

Result sinks for processed documents:
    - SQLite storage of every processing result
    - Excel report with results, validation and summary sheets
    - Composite handler that fans out to the enabled sinks

Author: ML Engineering Team
"""

from .handler import OutputHandler
from .excel_exporter import ExcelExporter
from .database_handler import DatabaseHandler

__all__ = ['OutputHandler', 'ExcelExporter', 'DatabaseHandler']
