"""
Pattern Library Module.

Prioritized, category-partitioned regex rules and the engine that
applies them to extracted text.
"""

from .cache import CompiledPatternCache
from .defaults import default_patterns
from .engine import PatternExtractionEngine
from .models import ExtractionPattern, FieldExtraction, PatternCategory, PatternFlag
from .repository import (
    InMemoryPatternRepository,
    PatternRepository,
    SQLitePatternRepository,
    create_repository,
)

__all__ = [
    'CompiledPatternCache',
    'ExtractionPattern',
    'FieldExtraction',
    'InMemoryPatternRepository',
    'PatternCategory',
    'PatternExtractionEngine',
    'PatternFlag',
    'PatternRepository',
    'SQLitePatternRepository',
    'create_repository',
    'default_patterns',
]
