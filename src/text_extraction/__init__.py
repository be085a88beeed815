"""
Text Extraction Module.

Three interchangeable extraction methods (layout, generic, OCR) and the
coordinator that picks, runs and merges them per document.
"""

from .base import ExtractionMethod
from .coordinator import (
    BranchRunner,
    CoordinationResult,
    CoordinatorSettings,
    CoordinatorStatus,
    ExtractionCoordinator,
    ExtractionStrategy,
    ExtractorSet,
    StrategyResult,
    select_strategy,
)
from .generic_extractor import GenericTextExtractor
from .layout_extractor import LayoutTextExtractor
from .ocr_extractor import ImageOcrExtractor, OcrSettings
from .outcome import ExtractionOutcome, ExtractionStatus

__all__ = [
    'BranchRunner',
    'CoordinationResult',
    'CoordinatorSettings',
    'CoordinatorStatus',
    'ExtractionCoordinator',
    'ExtractionMethod',
    'ExtractionOutcome',
    'ExtractionStatus',
    'ExtractionStrategy',
    'ExtractorSet',
    'GenericTextExtractor',
    'ImageOcrExtractor',
    'LayoutTextExtractor',
    'OcrSettings',
    'StrategyResult',
    'select_strategy',
]
