"""
Pattern Repositories.

Storage for the extraction pattern library. The extraction engine only
reads through find_active_by_category(); edits go through save(),
delete() and set_active(), each of which notifies registered listeners
so that compiled-pattern caches are invalidated on change rather than
polled.

Implementations:
    - InMemoryPatternRepository: process-local, used by default and in tests
    - SQLitePatternRepository: persistent, stdlib sqlite3

Author: ML Engineering Team
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from config import get_config
from src.utils.exceptions import DatabaseError
from src.utils.helpers import ensure_directory
from src.utils.logger import get_logger
from .defaults import default_patterns
from .models import ExtractionPattern, PatternCategory

# Initialize module logger
logger = get_logger(__name__)

PatternListener = Callable[[], None]


class PatternRepository(ABC):
    """
    Abstract pattern library.

    Subclasses must call _notify() after every change.
    """

    def __init__(self) -> None:
        self._listeners: List[PatternListener] = []
        self._listeners_lock = threading.Lock()

    def add_listener(self, listener: PatternListener) -> None:
        """Register a callback invoked after any pattern change."""
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: PatternListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    @abstractmethod
    def find_active_by_category(self, category: PatternCategory) -> List[ExtractionPattern]:
        """Active patterns of a category, ascending by priority."""

    @abstractmethod
    def find_all(self) -> List[ExtractionPattern]:
        """Every stored pattern, active or not."""

    @abstractmethod
    def save(self, pattern: ExtractionPattern) -> ExtractionPattern:
        """Insert or update a pattern and return it with its id."""

    @abstractmethod
    def delete(self, pattern_id: int) -> bool:
        """Delete a pattern; returns False if it did not exist."""

    @abstractmethod
    def set_active(self, pattern_id: int, active: bool) -> bool:
        """Activate or deactivate a pattern; returns False if it did not exist."""

    def count(self) -> int:
        return len(self.find_all())

    def count_active(self) -> int:
        return sum(1 for pattern in self.find_all() if pattern.is_active)

    def find_by_name(self, name: str) -> Optional[ExtractionPattern]:
        return next((pattern for pattern in self.find_all() if pattern.name == name), None)

    def seed(self, patterns: Iterable[ExtractionPattern]) -> int:
        """
        Add patterns whose names are not stored yet.

        Returns:
            Number of patterns added.
        """
        existing = {pattern.name for pattern in self.find_all()}
        added = 0
        for pattern in patterns:
            if pattern.name in existing:
                continue
            self.save(replace(pattern, id=None))
            existing.add(pattern.name)
            added += 1
        if added:
            logger.info(f"Seeded {added} extraction pattern(s)")
        return added


class InMemoryPatternRepository(PatternRepository):
    """
    Process-local pattern library.

    Example:
        >>> repository = InMemoryPatternRepository(default_patterns())
        >>> repository.count() > 0
        True
    """

    def __init__(self, patterns: Optional[Iterable[ExtractionPattern]] = None) -> None:
        super().__init__()
        self._patterns: Dict[int, ExtractionPattern] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        for pattern in patterns or []:
            self._store(pattern)

    def _store(self, pattern: ExtractionPattern) -> ExtractionPattern:
        with self._lock:
            if pattern.id is None:
                pattern = replace(pattern, id=self._next_id)
            self._next_id = max(self._next_id, pattern.id + 1)
            self._patterns[pattern.id] = pattern
            return pattern

    def find_active_by_category(self, category: PatternCategory) -> List[ExtractionPattern]:
        with self._lock:
            matches = [
                pattern for pattern in self._patterns.values()
                if pattern.category == category and pattern.is_active
            ]
        return sorted(matches, key=lambda pattern: pattern.sort_key)

    def find_all(self) -> List[ExtractionPattern]:
        with self._lock:
            return sorted(self._patterns.values(), key=lambda pattern: pattern.id)

    def save(self, pattern: ExtractionPattern) -> ExtractionPattern:
        saved = self._store(pattern)
        self._notify()
        return saved

    def delete(self, pattern_id: int) -> bool:
        with self._lock:
            removed = self._patterns.pop(pattern_id, None)
        if removed is None:
            return False
        self._notify()
        return True

    def set_active(self, pattern_id: int, active: bool) -> bool:
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                return False
            self._patterns[pattern_id] = replace(pattern, is_active=active)
        self._notify()
        return True


class SQLitePatternRepository(PatternRepository):
    """
    Pattern library persisted in SQLite.

    Connections are opened per operation, so the repository can be
    shared between threads.

    Attributes:
        db_path: Path to the SQLite database file
        table_name: Pattern table name

    Example:
        >>> repository = SQLitePatternRepository("outputs/invoice_patterns.db")
        >>> repository.seed(default_patterns())
    """

    COLUMNS = (
        "name", "category", "regex", "flags", "priority", "confidence_weight",
        "capture_group", "date_format", "validation_regex", "is_active",
        "description", "notes", "created_by",
    )

    def __init__(self, db_path: Optional[Union[str, Path]] = None, table_name: str = "extraction_patterns") -> None:
        """
        Initialize the repository and create the table if needed.

        Args:
            db_path: Database file. If None, uses patterns.database.
        """
        super().__init__()
        if db_path is None:
            db_path = get_config("patterns.database", "outputs/invoice_patterns.db")
        self.db_path = Path(db_path)
        self.table_name = table_name

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"SQLitePatternRepository initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            category TEXT NOT NULL,
            regex TEXT NOT NULL,
            flags INTEGER DEFAULT 2,
            priority INTEGER DEFAULT 100,
            confidence_weight REAL DEFAULT 1.0,
            capture_group INTEGER DEFAULT 1,
            date_format TEXT,
            validation_regex TEXT,
            is_active INTEGER DEFAULT 1,
            description TEXT,
            notes TEXT,
            created_by TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """

        try:
            conn = self._connect()
            cursor = conn.cursor()
            cursor.execute(create_sql)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table_name}_category_priority
                ON {self.table_name} (category, is_active, priority)
            """)
            conn.commit()
            conn.close()
            logger.debug("Pattern tables created/verified")
        except sqlite3.Error as e:
            raise DatabaseError("create tables", str(e))

    def _query(self, sql: str, params: tuple = ()) -> List[ExtractionPattern]:
        try:
            conn = self._connect()
            rows = conn.execute(sql, params).fetchall()
            conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("query patterns", str(e))
        return [ExtractionPattern.from_dict(dict(row)) for row in rows]

    def _execute(self, operation: str, sql: str, params: tuple) -> Tuple[Optional[int], int]:
        """Run a write statement; returns (lastrowid, rowcount)."""
        try:
            conn = self._connect()
            cursor = conn.execute(sql, params)
            conn.commit()
            result = (cursor.lastrowid, cursor.rowcount)
            conn.close()
            return result
        except sqlite3.Error as e:
            raise DatabaseError(operation, str(e))

    def find_active_by_category(self, category: PatternCategory) -> List[ExtractionPattern]:
        return self._query(
            f"SELECT * FROM {self.table_name} "
            f"WHERE category = ? AND is_active = 1 "
            f"ORDER BY COALESCE(priority, 100), name",
            (category.value,)
        )

    def find_all(self) -> List[ExtractionPattern]:
        return self._query(f"SELECT * FROM {self.table_name} ORDER BY id")

    def count(self) -> int:
        try:
            conn = self._connect()
            count = conn.execute(f"SELECT COUNT(*) FROM {self.table_name}").fetchone()[0]
            conn.close()
            return count
        except sqlite3.Error as e:
            raise DatabaseError("count", str(e))

    def save(self, pattern: ExtractionPattern) -> ExtractionPattern:
        values = pattern.to_dict()
        values['is_active'] = int(pattern.is_active)
        params = tuple(values[column] for column in self.COLUMNS)

        if pattern.id is None:
            placeholders = ", ".join("?" for _ in self.COLUMNS)
            row_id, _ = self._execute(
                "insert pattern",
                f"INSERT INTO {self.table_name} ({', '.join(self.COLUMNS)}) VALUES ({placeholders})",
                params
            )
            pattern = replace(pattern, id=row_id)
            logger.debug(f"Inserted pattern '{pattern.name}' (id={pattern.id})")
        else:
            assignments = ", ".join(f"{column} = ?" for column in self.COLUMNS)
            self._execute(
                "update pattern",
                f"UPDATE {self.table_name} SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                params + (pattern.id,)
            )
            logger.debug(f"Updated pattern '{pattern.name}' (id={pattern.id})")

        self._notify()
        return pattern

    def delete(self, pattern_id: int) -> bool:
        _, rowcount = self._execute(
            "delete pattern",
            f"DELETE FROM {self.table_name} WHERE id = ?",
            (pattern_id,)
        )
        deleted = rowcount > 0
        if deleted:
            self._notify()
        return deleted

    def set_active(self, pattern_id: int, active: bool) -> bool:
        _, rowcount = self._execute(
            "set pattern active",
            f"UPDATE {self.table_name} SET is_active = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (int(active), pattern_id)
        )
        updated = rowcount > 0
        if updated:
            self._notify()
        return updated


def create_repository(
    kind: Optional[str] = None,
    seed_defaults: Optional[bool] = None,
    db_path: Optional[Union[str, Path]] = None
) -> PatternRepository:
    """
    Build the pattern repository described by the configuration.

    Args:
        kind: "memory" or "sqlite" (patterns.repository).
        seed_defaults: Add the built-in patterns missing from the
            repository (patterns.seed_defaults).
        db_path: SQLite database path (patterns.database).

    Returns:
        Configured PatternRepository.
    """
    kind = kind or get_config("patterns.repository", "memory")
    if seed_defaults is None:
        seed_defaults = get_config("patterns.seed_defaults", True)

    if kind == "sqlite":
        repository: PatternRepository = SQLitePatternRepository(db_path)
    elif kind == "memory":
        repository = InMemoryPatternRepository()
    else:
        raise ValueError(f"Unknown pattern repository: {kind}")

    if seed_defaults:
        added = repository.seed(default_patterns())
        logger.info(f"Pattern repository ({kind}) ready: {repository.count()} pattern(s), {added} seeded")
    return repository
