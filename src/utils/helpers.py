"""
Helper Utilities Module.

Small, generic functions shared by the extraction, scoring and output
modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - generate_timestamp: Generate formatted timestamps
    - clamp: Bound a score to a closed interval
    - count_words: Whitespace word count used by every scorer
    - elapsed_ms: Milliseconds since a perf_counter() reading
    - collect_pdf_files: Expand a file or directory argument into PDFs
"""

import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/reports")
        PosixPath('outputs/reports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-01-21"
    """
    return datetime.now().strftime(format_str)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """
    Bound a value to the closed interval [lower, upper].

    Example:
        >>> clamp(1.25)
        1.0
    """
    return max(lower, min(upper, value))


def count_words(text: Optional[str]) -> int:
    """
    Count whitespace-separated words in text.

    Example:
        >>> count_words("Invoice  INV-001\\nTotal")
        3
    """
    if not text:
        return 0
    return len(text.split())


def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since a time.perf_counter() reading."""
    return int((time.perf_counter() - start) * 1000)


def collect_pdf_files(path: Union[str, Path]) -> List[Path]:
    """
    Expand a file or directory argument into a sorted list of PDF files.

    Args:
        path: A single PDF file or a directory containing PDFs.

    Returns:
        Sorted list of PDF paths (empty if none are found).

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If a single file is given that is not a PDF.
    """
    input_path = Path(path)

    if not input_path.exists():
        raise FileNotFoundError(f"Input path not found: {input_path}")

    if input_path.is_file():
        if input_path.suffix.lower() != ".pdf":
            raise ValueError(f"Unsupported file type: {input_path.suffix}")
        return [input_path]

    files = set(input_path.glob("*.pdf")) | set(input_path.glob("*.PDF"))
    return sorted(files)
