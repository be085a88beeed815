"""
Quality Module.

Heuristic text-quality scoring shared by the extractors and the
coordinator.
"""

from .scorer import EnhancedExtractionResult, ProcessingRecommendation, TextQualityScorer

__all__ = ['EnhancedExtractionResult', 'ProcessingRecommendation', 'TextQualityScorer']
