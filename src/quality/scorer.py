"""
Text Quality Scorer Module.

Scores extracted text for structural and content plausibility and blends
that score with the extractor's own confidence:

    adjusted = raw_confidence * (0.5 + 0.5 * quality)

Quality can only dampen confidence (down to half of raw), never raise it.
The processing recommendation comes from (adjusted + quality) / 2.

Author: ML Engineering Team
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from src.utils.helpers import clamp, count_words
from src.utils.logger import get_logger
from . import heuristics

# Initialize module logger
logger = get_logger(__name__)


class ProcessingRecommendation(str, Enum):
    """What should happen to a document's text next."""
    AUTO_PROCESS = "auto_process"
    REVIEW_RECOMMENDED = "review_recommended"
    MANUAL_REVIEW = "manual_review"
    MANUAL_PROCESSING = "manual_processing"


@dataclass(frozen=True)
class EnhancedExtractionResult:
    """
    Final text of a document together with its quality assessment.

    Attributes:
        final_text: Text chosen by the coordinator ("" on failure)
        final_confidence: Quality-adjusted confidence (0-1)
        quality_score: Heuristic quality of final_text (0-1)
        recommendation: Suggested handling
        word_count: Words in final_text
        has_invoice_keywords: Mentions invoice / bill / total / amount
        has_amount_patterns: Contains a currency or decimal amount
        has_date_patterns: Contains a numeric date
    """
    final_text: str
    final_confidence: float
    quality_score: float
    recommendation: ProcessingRecommendation
    word_count: int = 0
    has_invoice_keywords: bool = False
    has_amount_patterns: bool = False
    has_date_patterns: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary without the (possibly large) text."""
        data = asdict(self)
        data.pop('final_text')
        data['recommendation'] = self.recommendation.value
        return data


class TextQualityScorer:
    """
    Heuristic quality scoring for extracted text.

    Example:
        >>> scorer = TextQualityScorer()
        >>> enhanced = scorer.enhance(text, raw_confidence=0.85)
        >>> enhanced.recommendation
        <ProcessingRecommendation.REVIEW_RECOMMENDED: 'review_recommended'>
    """

    AUTO_PROCESS_THRESHOLD = 0.9
    REVIEW_THRESHOLD = 0.7
    MANUAL_REVIEW_THRESHOLD = 0.5

    def score(self, text: Optional[str]) -> float:
        """
        Compute the quality score of a text.

        Args:
            text: Extracted text.

        Returns:
            Quality score in [0, 1].
        """
        return heuristics.content_score(text)

    @staticmethod
    def adjust_confidence(raw_confidence: float, quality_score: float) -> float:
        """Dampen raw extractor confidence by text quality."""
        raw = clamp(raw_confidence)
        return clamp(raw * (0.5 + 0.5 * clamp(quality_score)))

    def recommend(self, adjusted_confidence: float, quality_score: float) -> ProcessingRecommendation:
        """Map the combined score to a processing recommendation."""
        combined = (adjusted_confidence + quality_score) / 2.0

        if combined >= self.AUTO_PROCESS_THRESHOLD:
            return ProcessingRecommendation.AUTO_PROCESS
        if combined >= self.REVIEW_THRESHOLD:
            return ProcessingRecommendation.REVIEW_RECOMMENDED
        if combined >= self.MANUAL_REVIEW_THRESHOLD:
            return ProcessingRecommendation.MANUAL_REVIEW
        return ProcessingRecommendation.MANUAL_PROCESSING

    def enhance(
        self,
        text: Optional[str],
        raw_confidence: float,
        successful: bool = True
    ) -> EnhancedExtractionResult:
        """
        Build the enhanced result for a document's final text.

        Args:
            text: Text chosen by the coordinator.
            raw_confidence: Confidence reported by the winning strategy.
            successful: Whether the strategy produced usable text.

        Returns:
            EnhancedExtractionResult. Failed or empty extractions yield
            empty text, zero scores and MANUAL_REVIEW.
        """
        if not successful or text is None:
            return EnhancedExtractionResult(
                final_text="",
                final_confidence=0.0,
                quality_score=0.0,
                recommendation=ProcessingRecommendation.MANUAL_REVIEW,
            )

        quality = self.score(text)
        adjusted = self.adjust_confidence(raw_confidence, quality)
        recommendation = self.recommend(adjusted, quality)

        logger.debug(
            f"Text quality: {quality:.2f} | raw confidence: {raw_confidence:.2f} | "
            f"adjusted: {adjusted:.2f} | {recommendation.value}"
        )

        return EnhancedExtractionResult(
            final_text=text,
            final_confidence=adjusted,
            quality_score=quality,
            recommendation=recommendation,
            word_count=count_words(text),
            has_invoice_keywords=heuristics.has_invoice_keywords(text),
            has_amount_patterns=heuristics.has_amount_patterns(text),
            has_date_patterns=heuristics.has_date_patterns(text),
        )
