"""
Text Cleaning Functions.

Cleanup applied to raw extractor output. Two families exist:
    - standard cleanup for best-effort text (aggressive blank-line collapse)
    - alignment-preserving cleanup for layout text, which must keep runs
      of spaces and tabs intact because later field extraction relies on
      column positions

Author: ML Engineering Team
"""

import re

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
TRAILING_SPACE = re.compile(r"[ \t]+\n")
EXCESS_NEWLINES = re.compile(r"\n{4,}")
EXCESS_NEWLINES_ALIGNED = re.compile(r"\n{5,}")
WIDE_SPACING = re.compile(r" {11,}")
COLUMN_SPACING = re.compile(r" {3,10}")
OCR_WIDE_SPACING = re.compile(r" {4,}")

# Whole-token OCR confusions; in-word occurrences are left alone
OCR_CONFUSIONS = (
    (re.compile(r"(?<![\w.,])l(?![\w'])", re.IGNORECASE), "1"),
    (re.compile(r"(?<![\w.,])o(?![\w'])", re.IGNORECASE), "0"),
    (re.compile(r"\brn\b"), "m"),
    (re.compile(r"\bcl\b"), "d"),
)


def normalize_line_endings(text: str) -> str:
    """Convert CRLF and CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def strip_non_printable(text: str) -> str:
    """Remove non-printable characters, keeping newlines and tabs."""
    return "".join(ch for ch in text if ch.isprintable() or ch in "\n\t")


def clean_text(text: str) -> str:
    """
    Standard cleanup for best-effort extraction.

    Removes non-printable characters, normalizes line endings, collapses
    four or more newlines into three and strips trailing spaces.
    """
    if not text:
        return ""
    text = normalize_line_endings(text)
    text = strip_non_printable(text)
    text = EXCESS_NEWLINES.sub("\n\n\n", text)
    text = TRAILING_SPACE.sub("\n", text)
    return text.strip()


def clean_text_preserving_alignment(text: str) -> str:
    """
    Minimal cleanup that keeps column alignment.

    Only control characters are removed and only five or more newlines
    are collapsed (into four). Spaces inside lines are untouched.
    """
    if not text:
        return ""
    text = CONTROL_CHARS.sub("", text)
    text = normalize_line_endings(text)
    text = EXCESS_NEWLINES_ALIGNED.sub("\n\n\n\n", text)
    return text


def normalize_layout_spacing(text: str) -> str:
    """
    Turn positional space runs into tabs.

    Runs of 3-10 spaces become one tab, longer runs two tabs.
    """
    text = WIDE_SPACING.sub("\t\t", text)
    return COLUMN_SPACING.sub("\t", text)


def correct_ocr_confusions(text: str) -> str:
    """
    Fix common OCR character confusions on isolated tokens only.

    Example:
        >>> correct_ocr_confusions("Qty l  Total o  modern")
        'Qty 1  Total 0  modern'
    """
    for pattern, replacement in OCR_CONFUSIONS:
        text = pattern.sub(replacement, text)
    return text


def clean_ocr_text(text: str) -> str:
    """
    Cleanup for OCR output.

    Applies confusion fixes, the standard cleanup and finally replaces
    runs of four or more spaces with a tab.
    """
    if not text:
        return ""
    text = correct_ocr_confusions(text)
    text = clean_text(text)
    text = OCR_WIDE_SPACING.sub("\t", text)
    return text.strip()
