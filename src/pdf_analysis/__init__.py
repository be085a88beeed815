"""
PDF Analysis Module.

Classifies incoming PDF bytes as Digital, Hybrid, Scanned or Corrupted
so the extraction coordinator can pick a strategy.
"""

from .classifier import PdfAnalysis, PdfClassifier, PdfType, RecommendedMethod

__all__ = ['PdfAnalysis', 'PdfClassifier', 'PdfType', 'RecommendedMethod']
