"""
Pattern Extraction Engine.

Extracts invoice fields from text with the prioritized pattern library.

For each requested field the engine walks an ordered list of categories
(e.g. INVOICE_DATE, then DATE). Within a category, active patterns are
tried in ascending priority and the first pattern that matches, passes
its validation regex and (for dates) parses, wins. Later patterns are
never consulted once one succeeds, even if they carry a higher weight.

Confidence of a match:

    weight * multiplier, multiplier = 1.0
        + 0.10 if the match is aligned with a word boundary
        + 0.05 if the value is 4-49 characters long
        + 0.10 if priority <= 10, else + 0.05 if priority <= 50

clamped to [0, 1].

Author: ML Engineering Team
"""

import re
import threading
from typing import Any, Dict, List, Optional, Sequence, Union

from src.postprocessor.normalizers import DateNormalizer
from src.utils.exceptions import PatternCompilationError, ValidationFailure
from src.utils.helpers import clamp
from src.utils.logger import get_logger
from .cache import CompiledPatternCache
from .models import ExtractionPattern, FieldExtraction, PatternCategory
from .repository import PatternRepository

# Initialize module logger
logger = get_logger(__name__)

Categories = Union[PatternCategory, Sequence[PatternCategory]]


class PatternExtractionEngine:
    """
    First-match-wins field extraction over a pattern repository.

    The engine subscribes to repository changes; any save, delete or
    activation change drops both the per-category pattern lists and the
    compiled regex cache.

    Attributes:
        repository: Source of extraction patterns
        cache: Compiled regex cache shared by all threads
        date_normalizer: Parser for date-category values

    Example:
        >>> engine = PatternExtractionEngine(InMemoryPatternRepository(default_patterns()))
        >>> engine.extract("Invoice No 123100401", PatternCategory.INVOICE_NUMBER).value
        '123100401'
    """

    BOUNDARY_BONUS = 0.1
    LENGTH_BONUS = 0.05
    HIGH_PRIORITY_BONUS = 0.1
    MEDIUM_PRIORITY_BONUS = 0.05

    def __init__(
        self,
        repository: PatternRepository,
        cache: Optional[CompiledPatternCache] = None,
        date_normalizer: Optional[DateNormalizer] = None,
    ) -> None:
        self.repository = repository
        self.cache = cache or CompiledPatternCache()
        self.date_normalizer = date_normalizer or DateNormalizer()

        self._category_patterns: Dict[PatternCategory, List[ExtractionPattern]] = {}
        self._category_lock = threading.Lock()
        self._invalid: Dict[str, str] = {}

        repository.add_listener(self.invalidate)

    def invalidate(self) -> None:
        """Forget loaded patterns and compiled regexes."""
        with self._category_lock:
            self._category_patterns = {}
            self._invalid = {}
        self.cache.invalidate()
        logger.info("Pattern caches invalidated")

    def patterns_for(self, category: PatternCategory) -> List[ExtractionPattern]:
        """
        Active, compilable patterns of a category in priority order.

        Patterns whose regex does not compile are excluded here and
        listed in invalid_patterns.
        """
        patterns = self._category_patterns.get(category)
        if patterns is not None:
            return patterns

        with self._category_lock:
            patterns = self._category_patterns.get(category)
            if patterns is not None:
                return patterns

            loaded = []
            for pattern in self.repository.find_active_by_category(category):
                if not pattern.is_valid_and_active:
                    continue
                try:
                    self.cache.get(pattern)
                except PatternCompilationError as e:
                    self._invalid[pattern.name] = e.reason or str(e)
                    continue
                loaded.append(pattern)

            loaded.sort(key=lambda pattern: pattern.sort_key)
            self._category_patterns[category] = loaded
            logger.debug(f"Loaded {len(loaded)} pattern(s) for {category.value}")
            return loaded

    @property
    def invalid_patterns(self) -> Dict[str, str]:
        """Names of excluded patterns mapped to their compilation error."""
        return dict(self._invalid)

    def extract(self, text: Optional[str], categories: Categories) -> FieldExtraction:
        """
        Extract one field.

        Args:
            text: Document text.
            categories: Category or ordered category fallback list.

        Returns:
            FieldExtraction; value is None when nothing matched.
        """
        if isinstance(categories, PatternCategory):
            categories = [categories]
        categories = list(categories)
        if not categories:
            raise ValueError("At least one category is required")

        if not text or not text.strip():
            return FieldExtraction.missing(categories[0])

        for category in categories:
            for pattern in self.patterns_for(category):
                try:
                    extraction = self._apply(pattern, text, categories[0])
                except ValidationFailure as e:
                    logger.debug(str(e))
                    continue
                except PatternCompilationError as e:
                    self._record_invalid(pattern, str(e))
                    continue
                except Exception as e:
                    logger.warning(f"Pattern '{pattern.name}' failed, skipping it: {e}")
                    self._record_invalid(pattern, str(e))
                    continue

                if extraction is not None:
                    logger.debug(
                        f"{category.value}: '{extraction.value}' via {pattern.name} "
                        f"({extraction.confidence:.2f})"
                    )
                    return extraction

        return FieldExtraction.missing(categories[0])

    def _record_invalid(self, pattern: ExtractionPattern, reason: str) -> None:
        with self._category_lock:
            self._invalid[pattern.name] = reason

    def _apply(
        self,
        pattern: ExtractionPattern,
        text: str,
        requested: PatternCategory
    ) -> Optional[FieldExtraction]:
        """
        Apply one pattern to the text.

        Returns:
            FieldExtraction on success, None if the pattern does not yield a value.

        Raises:
            ValidationFailure: If the value fails the validation regex.
        """
        compiled = self.cache.get(pattern)
        match = compiled.search(text)
        if match is None:
            return None

        group = pattern.effective_capture_group
        if group > compiled.groups:
            logger.warning(
                f"Pattern '{pattern.name}' requests group {group} "
                f"but has only {compiled.groups}"
            )
            return None

        value = match.group(group)
        if value is None or not value.strip():
            return None
        value = value.strip()

        if pattern.validation_regex and not self._passes_validation(pattern, value):
            raise ValidationFailure(pattern.name, value, pattern.validation_regex)

        if pattern.category.is_date:
            parsed = self.date_normalizer.parse(value, pattern.date_format)
            if parsed is None:
                logger.debug(f"Pattern '{pattern.name}' matched unparseable date '{value}'")
                return None
            value = parsed.isoformat()

        return FieldExtraction(
            category=requested,
            value=value,
            confidence=self.calculate_confidence(pattern, match, text, value),
            pattern_used=pattern.name,
            matched_category=pattern.category,
        )

    @staticmethod
    def _passes_validation(pattern: ExtractionPattern, value: str) -> bool:
        try:
            return re.fullmatch(pattern.validation_regex, value) is not None
        except re.error as e:
            logger.warning(f"Invalid validation regex on pattern '{pattern.name}', ignoring it: {e}")
            return True

    def calculate_confidence(self, pattern: ExtractionPattern, match: re.Match, text: str, value: str) -> float:
        """Confidence of a match; see the module docstring."""
        multiplier = 1.0

        start = match.start()
        if start == 0 or not text[start - 1].isalnum() or text[start].isspace():
            multiplier += self.BOUNDARY_BONUS

        if 3 < len(value) < 50:
            multiplier += self.LENGTH_BONUS

        priority = pattern.effective_priority
        if priority <= 10:
            multiplier += self.HIGH_PRIORITY_BONUS
        elif priority <= 50:
            multiplier += self.MEDIUM_PRIORITY_BONUS

        return clamp(pattern.effective_weight * multiplier)

    # Field shortcuts

    def extract_invoice_number(self, text: str) -> FieldExtraction:
        return self.extract(text, PatternCategory.INVOICE_NUMBER)

    def extract_total_amount(self, text: str) -> FieldExtraction:
        return self.extract(text, PatternCategory.AMOUNT)

    def extract_invoice_date(self, text: str) -> FieldExtraction:
        return self.extract(text, [PatternCategory.INVOICE_DATE, PatternCategory.DATE])

    def extract_due_date(self, text: str) -> FieldExtraction:
        return self.extract(text, [PatternCategory.DUE_DATE, PatternCategory.DATE])

    def extract_vendor(self, text: str) -> FieldExtraction:
        return self.extract(text, PatternCategory.VENDOR)

    # Diagnostics

    def statistics(self) -> Dict[str, Any]:
        """Pattern library and cache statistics."""
        per_category = {
            category.value: len(self.repository.find_active_by_category(category))
            for category in PatternCategory
        }
        return {
            'total_patterns': self.repository.count(),
            'active_patterns': self.repository.count_active(),
            'cached_patterns': self.cache.size,
            'invalid_patterns': len(self._invalid),
            'patterns_by_category': per_category,
        }

    def test_all_patterns(self, text: str) -> List[Dict[str, Any]]:
        """
        Run every active pattern against a text without short-circuiting.

        Returns:
            One entry per pattern with its match, value and confidence.
        """
        report = []
        for category in PatternCategory:
            for pattern in self.repository.find_active_by_category(category):
                entry: Dict[str, Any] = {
                    'pattern': pattern.name,
                    'category': category.value,
                    'priority': pattern.effective_priority,
                    'matched': False,
                    'value': None,
                    'confidence': 0.0,
                    'error': None,
                }
                try:
                    extraction = self._apply(pattern, text, category)
                except Exception as e:
                    entry['error'] = str(e)
                else:
                    if extraction is not None:
                        entry.update(matched=True, value=extraction.value, confidence=extraction.confidence)
                report.append(entry)
        return report
