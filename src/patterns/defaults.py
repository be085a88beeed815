"""
Default Extraction Patterns.

Seed pattern set covering common invoice layouts: tabular rows produced
by layout extraction ("Invoice Number    INV-001"), colon-labelled fields
("Total: $1,146.48") and free-text dates.

Priorities follow one convention: 1-10 for patterns written against a
specific layout, 11-50 for general labelled fields, above 50 for broad
catch-alls.

Author: ML Engineering Team
"""

from typing import List

from .models import ExtractionPattern, PatternCategory

CURRENCY_TOKEN = r"(?:\$|USD|€|EUR|£|GBP|¥|JPY|₹|INR)"
AMOUNT_VALUE = r"([0-9]{1,3}(?:,?[0-9]{3})*(?:\.[0-9]{2})?)"
MONTH_DAY_YEAR = r"([A-Za-z]{3,9}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4})"
# "Date" labels not preceded by "due"
INVOICE_DATE_LABEL = r"(?:invoice\s+date|(?<!due )(?<!due\t)(?<!\w)date)\s*:?\s*"
DUE_DATE_LABEL = r"(?:due\s+date|payment\s+due|due\s+by)\s*:?\s*"
SEEDED_BY = "system"


def _pattern(name: str, category: PatternCategory, regex: str, priority: int, weight: float, **extra) -> ExtractionPattern:
    return ExtractionPattern(
        name=name,
        category=category,
        regex=regex,
        priority=priority,
        confidence_weight=weight,
        created_by=SEEDED_BY,
        **extra
    )


def default_patterns() -> List[ExtractionPattern]:
    """Return the built-in pattern set (unsaved, without ids)."""
    C = PatternCategory
    return [
        # Invoice numbers
        _pattern("InvoiceNumber_Tabular", C.INVOICE_NUMBER,
                 r"invoice\s+number\s+([A-Z0-9][A-Z0-9-]{2,})", 10, 1.0,
                 description="Invoice number in a layout table row"),
        _pattern("InvoiceNumber_No", C.INVOICE_NUMBER,
                 r"\binvoice\s+no\b\.?\s*:?\s*([A-Z0-9][A-Z0-9-]{2,})", 12, 0.95),
        _pattern("OrderNumber_Tabular", C.INVOICE_NUMBER,
                 r"order\s+number\s+([A-Z0-9][A-Z0-9-]{2,})", 15, 0.8),
        _pattern("InvoiceNumber_WithColon", C.INVOICE_NUMBER,
                 r"invoice\s*(?:number|#)?\s*:\s*([A-Z0-9][A-Z0-9-]{2,})", 20, 0.9),
        _pattern("InvoiceNumber_Hash", C.INVOICE_NUMBER,
                 r"invoice\s*#\s*([A-Z0-9-]{4,})", 25, 0.85),
        _pattern("InvoiceNumber_Prefixed", C.INVOICE_NUMBER,
                 r"\b(?:invoice|inv)\s*[-#:]?\s*([A-Z0-9]{2,}-?[0-9]{3,})", 60, 0.7),

        # Totals
        _pattern("Complex_AmountUSD", C.AMOUNT,
                 r"\btotal\s+amount\s+(?:due\s+)?(?:\(USD\)\s*)?" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE, 5, 0.85),
        _pattern("TotalDue_Tabular", C.AMOUNT,
                 r"\btotal\s+due\s+" + CURRENCY_TOKEN + r"\s*" + AMOUNT_VALUE, 10, 1.0),
        _pattern("Total_EndOfLine", C.AMOUNT,
                 r"^\s*total\s+" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE + r"\s*$", 20, 0.9,
                 flags=2 | 8),
        _pattern("Amount_CurrencyFirst", C.AMOUNT,
                 r"\b(?:grand\s+)?total\b[^\n$€£¥₹0-9]{0,20}" + CURRENCY_TOKEN + r"\s*" + AMOUNT_VALUE, 30, 0.7),
        _pattern("Total_WithColon", C.AMOUNT,
                 r"\b(?:total|amount|sum)\s*:\s*" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE, 40, 0.8),
        _pattern("BalanceDue", C.AMOUNT,
                 r"balance\s+due\s*:?\s*" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE, 45, 0.8),

        # Subtotal and tax
        _pattern("Subtotal", C.SUBTOTAL_AMOUNT,
                 r"sub\s*-?\s*total\s*:?\s*" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE, 10, 1.0),
        _pattern("Tax_Tabular", C.TAX_AMOUNT,
                 r"\b(?:sales\s+)?tax\b(?:\s*\(?\d{1,2}(?:\.\d+)?\s*%\)?)?\s*:?\s*" + CURRENCY_TOKEN + r"\s*" + AMOUNT_VALUE,
                 10, 1.0),
        _pattern("Vat", C.TAX_AMOUNT,
                 r"\bVAT\b(?:\s*\(?\d{1,2}(?:\.\d+)?\s*%\)?)?\s*:?\s*" + CURRENCY_TOKEN + r"?\s*" + AMOUNT_VALUE, 20, 0.9),

        # Invoice dates
        _pattern("InvoiceDate_European", C.INVOICE_DATE,
                 INVOICE_DATE_LABEL + r"(\d{1,2}\.\d{1,2}\.\d{4})", 4, 0.9, date_format="%d.%m.%Y"),
        _pattern("InvoiceDate_MonthDayYear", C.INVOICE_DATE,
                 INVOICE_DATE_LABEL + MONTH_DAY_YEAR, 5, 1.0, date_format="%B %d, %Y"),
        _pattern("InvoiceDate_ISO", C.INVOICE_DATE,
                 INVOICE_DATE_LABEL + r"(\d{4}-\d{2}-\d{2})", 15, 0.9, date_format="%Y-%m-%d"),
        _pattern("InvoiceDate_MMDDYYYY", C.INVOICE_DATE,
                 INVOICE_DATE_LABEL + r"(\d{1,2}/\d{1,2}/\d{4})", 20, 0.8, date_format="%m/%d/%Y"),
        _pattern("InvoiceDate_DDMMYYYY", C.INVOICE_DATE,
                 INVOICE_DATE_LABEL + r"(\d{1,2}-\d{1,2}-\d{4})", 25, 0.7, date_format="%d-%m-%Y"),

        # Due dates
        _pattern("DueDate_MonthDayYear", C.DUE_DATE,
                 DUE_DATE_LABEL + MONTH_DAY_YEAR, 5, 1.0, date_format="%B %d, %Y"),
        _pattern("DueDate_Numeric", C.DUE_DATE,
                 DUE_DATE_LABEL + r"(\d{1,2}/\d{1,2}/\d{4})", 10, 0.9, date_format="%m/%d/%Y"),
        _pattern("DueDate_ISO", C.DUE_DATE,
                 DUE_DATE_LABEL + r"(\d{4}-\d{2}-\d{2})", 15, 0.9, date_format="%Y-%m-%d"),

        # Generic dates
        _pattern("Date_MonthDayYear", C.DATE, MONTH_DAY_YEAR, 50, 0.7, date_format="%B %d, %Y"),
        _pattern("Date_ISO", C.DATE, r"\b(\d{4}-\d{2}-\d{2})\b", 55, 0.7, date_format="%Y-%m-%d"),
        _pattern("Date_Slashes", C.DATE, r"\b(\d{1,2}/\d{1,2}/\d{4})\b", 60, 0.6, date_format="%m/%d/%Y"),
        _pattern("Date_Dots", C.DATE, r"\b(\d{1,2}\.\d{1,2}\.\d{4})\b", 65, 0.6, date_format="%d.%m.%Y"),

        # Vendor and customer
        _pattern("Vendor_LegalSuffix", C.VENDOR,
                 r"\b([A-Z][A-Za-z0-9&.\-]*(?:[ \t][A-Z0-9&][A-Za-z0-9&.\-]*)*[ \t]+(?:GmbH|AG|Ltd\.?|LLC|Inc\.?|Corp\.?|Co\.))",
                 5, 0.88, flags=0),
        _pattern("Vendor_From", C.VENDOR,
                 r"from:\s*([A-Za-z0-9 \-,.&]+?)(?=\s*(?:suite|street|avenue|road|po\s+box|\d+|\n|$))", 10, 0.85),
        _pattern("Vendor_Company", C.VENDOR,
                 r"(?:company|vendor|supplier|seller)\s*:\s*([A-Za-z0-9 \-,.&]+)", 20, 0.8),
        _pattern("Customer_BillTo", C.CUSTOMER,
                 r"bill(?:ed)?\s+to\s*:?\s*([A-Za-z0-9 \-,.&]+)", 5, 0.85),
        _pattern("Customer_To", C.CUSTOMER,
                 r"\bto:\s*([A-Za-z0-9 \-,.&]+)", 10, 0.8),

        # Contact details
        _pattern("Email_Standard", C.EMAIL,
                 r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})", 10, 0.9),
        _pattern("Phone_US", C.PHONE,
                 r"(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})", 10, 0.7),
        _pattern("Address_Street", C.ADDRESS,
                 r"(\d{1,6}\s+[A-Za-z0-9 .]+\s(?:Street|St\.?|Avenue|Ave\.?|Road|Rd\.?|Boulevard|Blvd\.?|Lane|Ln\.?|Drive|Dr\.?)\b[^\n]*)",
                 10, 0.7),

        # Currency and terms
        _pattern("Currency_Code", C.CURRENCY, r"\b(USD|EUR|GBP|JPY|INR|CAD|AUD|CHF)\b", 5, 0.9,
                 flags=0),
        _pattern("Currency_Symbol", C.CURRENCY, r"([$€£¥₹])", 10, 0.8),
        _pattern("PaymentTerms_Net", C.PAYMENT_TERMS,
                 r"(?:payment\s+)?terms\s*:?\s*(net\s*\d{1,3}|due\s+on\s+receipt)", 10, 0.85),
    ]
