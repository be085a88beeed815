"""
Database Handler Module.

SQLite result sink: one row per processed document with its status,
decision, confidences, invoice fields, validation messages, pattern
usage and (optionally) the raw extracted text for review tooling.

Author: ML Engineering Team
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from config import get_config
from src.processing.interfaces import ResultSink
from src.processing.result import ProcessingResult
from src.utils.exceptions import DatabaseError
from src.utils.helpers import ensure_directory
from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

INVOICE_COLUMNS = [
    'invoice_number',
    'total_amount',
    'subtotal_amount',
    'tax_amount',
    'currency',
    'invoice_date',
    'due_date',
    'vendor_name',
    'vendor_email',
    'customer',
]


class DatabaseHandler(ResultSink):
    """
    Stores processing results in SQLite.

    Attributes:
        db_path: Path to the SQLite database file
        table_name: Name of the results table
        store_raw_text: Whether the extracted text is stored

    Example:
        >>> db = DatabaseHandler()
        >>> db.write(result)
        >>> db.get_by_status("ready_for_review")
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        table_name: Optional[str] = None,
        store_raw_text: Optional[bool] = None
    ) -> None:
        """
        Initialize the database handler.

        Args:
            db_path: Path to database file. If None, uses configuration.
            table_name: Override output.database.table_name.
            store_raw_text: Override output.database.store_raw_text.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            output_dir = Path(get_config("paths.output_dir", "outputs"))
            db_name = get_config("output.database.name", "invoice_processing.db")
            self.db_path = output_dir / db_name

        self.table_name = table_name or get_config("output.database.table_name", "processing_results")
        if store_raw_text is None:
            store_raw_text = get_config("output.database.store_raw_text", True)
        self.store_raw_text = store_raw_text

        # sqlite3 connections are opened per call; writes are serialized
        self._write_lock = threading.Lock()

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"DatabaseHandler initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        invoice_columns = ",\n            ".join(f"{column} TEXT" for column in INVOICE_COLUMNS)
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            filename TEXT NOT NULL,
            email_subject TEXT,
            sender_email TEXT,
            file_size_bytes INTEGER,
            status TEXT NOT NULL,
            decision TEXT NOT NULL,
            overall_confidence REAL,
            text_confidence REAL,
            data_confidence REAL,
            pdf_type TEXT,
            strategy TEXT,
            primary_method TEXT,
            extracted_field_count INTEGER,
            has_required_fields INTEGER,
            {invoice_columns},
            validation_errors TEXT,
            validation_warnings TEXT,
            pattern_usage TEXT,
            raw_text TEXT,
            error TEXT,
            processing_time_ms INTEGER,
            started_at TEXT,
            completed_at TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """

        try:
            with self._write_lock:
                conn = self._connect()
                try:
                    conn.execute(create_sql)
                    conn.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_status ON {self.table_name} (status)"
                    )
                    conn.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_invoice ON {self.table_name} (invoice_number)"
                    )
                    conn.commit()
                finally:
                    conn.close()
            logger.debug("Database tables created/verified")
        except sqlite3.Error as e:
            raise DatabaseError("create tables", str(e)) from e

    def _row_values(self, result: ProcessingResult) -> Dict[str, Any]:
        data = result.invoice_data.to_dict() if result.invoice_data is not None else {}
        validation = result.validation

        row: Dict[str, Any] = {
            'filename': result.filename,
            'email_subject': result.email_subject,
            'sender_email': result.sender_email,
            'file_size_bytes': result.file_size_bytes,
            'status': result.status.value,
            'decision': result.decision.value,
            'overall_confidence': result.overall_confidence,
            'text_confidence': result.text_confidence,
            'data_confidence': result.data_confidence,
            'pdf_type': result.pdf_type,
            'strategy': result.strategy,
            'primary_method': result.primary_method,
            'extracted_field_count': result.extracted_field_count,
            'has_required_fields': 1 if result.has_required_fields else 0,
        }
        for column in INVOICE_COLUMNS:
            row[column] = data.get(column)

        row['validation_errors'] = json.dumps(
            [f"{error.field}: {error.message}" for error in validation.errors] if validation else []
        )
        row['validation_warnings'] = json.dumps(
            [f"{warning.field}: {warning.message}" for warning in validation.warnings] if validation else []
        )
        row['pattern_usage'] = json.dumps(
            result.invoice_data.pattern_usage() if result.invoice_data is not None else {}
        )
        row['raw_text'] = result.raw_text if self.store_raw_text else None
        row['error'] = result.error
        row['processing_time_ms'] = result.processing_time_ms
        row['started_at'] = result.started_at.isoformat()
        row['completed_at'] = result.completed_at.isoformat()
        return row

    def insert(self, result: ProcessingResult) -> int:
        """
        Insert a single processing result.

        Args:
            result: ProcessingResult to insert.

        Returns:
            Row id of the inserted record.

        Raises:
            DatabaseError: If insertion fails.
        """
        row = self._row_values(result)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        insert_sql = f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders})"

        try:
            with self._write_lock:
                conn = self._connect()
                try:
                    cursor = conn.execute(insert_sql, tuple(row.values()))
                    conn.commit()
                    row_id = cursor.lastrowid
                finally:
                    conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("insert", str(e)) from e

        logger.debug(f"Inserted record {row_id}: {result.filename}")
        return row_id

    def write(self, result: ProcessingResult) -> None:
        self.insert(result)

    def _fetch(self, operation: str, query: str, params: Tuple = ()) -> List[Dict[str, Any]]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError(operation, str(e)) from e
        return [dict(row) for row in rows]

    def get_all(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Retrieve all records, newest first.

        Args:
            limit: Maximum number of records to retrieve.
        """
        query = f"SELECT * FROM {self.table_name} ORDER BY id DESC"
        params: Tuple = ()
        if limit:
            query += " LIMIT ?"
            params = (limit,)
        return self._fetch("get_all", query, params)

    def get_by_filename(self, filename: str) -> List[Dict[str, Any]]:
        return self._fetch(
            "get_by_filename",
            f"SELECT * FROM {self.table_name} WHERE filename = ? ORDER BY id DESC",
            (filename,)
        )

    def get_by_status(self, status: str) -> List[Dict[str, Any]]:
        return self._fetch(
            "get_by_status",
            f"SELECT * FROM {self.table_name} WHERE status = ? ORDER BY id DESC",
            (status,)
        )

    def count(self) -> int:
        rows = self._fetch("count", f"SELECT COUNT(*) AS total FROM {self.table_name}")
        return rows[0]['total']

    def get_statistics(self) -> Dict[str, Any]:
        """
        Aggregate statistics over stored results.

        Returns:
            Total records, records per status and average confidence.
        """
        by_status = self._fetch(
            "statistics",
            f"SELECT status, COUNT(*) AS total FROM {self.table_name} GROUP BY status"
        )
        average = self._fetch(
            "statistics",
            f"SELECT AVG(overall_confidence) AS average FROM {self.table_name}"
        )
        return {
            'total_records': sum(row['total'] for row in by_status),
            'by_status': {row['status']: row['total'] for row in by_status},
            'average_confidence': average[0]['average'] or 0.0,
        }
