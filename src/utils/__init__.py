"""
Utility Module for the Invoice Automation Core.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Common helpers
"""

from .logger import setup_logger, get_logger
from .helpers import clamp, count_words, ensure_directory, generate_timestamp

__all__ = [
    'setup_logger',
    'get_logger',
    'clamp',
    'count_words',
    'ensure_directory',
    'generate_timestamp'
]
