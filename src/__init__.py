"""
Invoice Automation Core - Source Package.

This package contains the core modules of the invoice processing
pipeline. Each module has a single responsibility.

Modules:
    - pdf_analysis: PDF classification (digital, hybrid, scanned, corrupted)
    - text_extraction: Layout, generic and OCR extraction plus the coordinator
    - quality: Text quality scoring
    - patterns: Pattern library and extraction engine
    - postprocessor: Date and amount normalization
    - invoice_data: Invoice fields, validation and data confidence
    - processing: Decision engine and end-to-end service
    - output_handler: SQLite and Excel result sinks

Architecture:
    Classify → Extract Text → Score → Extract Fields → Validate → Decide
                                                                    ↓
                                                                 Sinks
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'pdf_analysis',
    'text_extraction',
    'quality',
    'patterns',
    'postprocessor',
    'invoice_data',
    'processing',
    'output_handler',
    'utils'
]
