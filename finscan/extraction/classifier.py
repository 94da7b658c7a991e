"""Keyword-based document classification.

Each document kind has an indicator pattern; kinds are tested in a fixed
priority order against the whole text and the first match wins.
"""

import re
from enum import StrEnum

from finscan.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentKind(StrEnum):
    """Financial document categories recognised by the extractor."""

    BANK_STATEMENT = "BANK_STATEMENT"
    SALARY_SLIP = "SALARY_SLIP"
    FORM_16 = "FORM_16"
    UTILITY_BILL = "UTILITY_BILL"
    CHEQUE = "CHEQUE"
    UNKNOWN = "UNKNOWN"


def _indicators(*terms: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(terms) + r")\b", re.IGNORECASE)


# Priority order matters: salary slips mention accounts and deductions,
# tax certificates mention salary heads, and so on.
CLASSIFICATION_RULES: list[tuple[DocumentKind, re.Pattern[str]]] = [
    (
        DocumentKind.SALARY_SLIP,
        _indicators(
            "salary",
            "payslip",
            r"pay\s+slip",
            "earnings",
            "deductions",
            "basic",
            "hra",
            "da",
            "ta",
            "pf",
            "gross",
            r"net\s+pay",
        ),
    ),
    (
        DocumentKind.FORM_16,
        _indicators(
            r"form[\s-]?16",
            r"tds\s+certificate",
            r"income\s+tax",
            r"assessment\s+year",
            r"pan\s+of\s+(?:the\s+)?deductor",
            r"pan\s+of\s+(?:the\s+)?employee",
        ),
    ),
    (
        DocumentKind.CHEQUE,
        _indicators(
            "cheque",
            "check",
            r"pay\s+to\s+the\s+order\s+of",
            "bearer",
            r"authori[sz]ed\s+signature",
        ),
    ),
    (
        DocumentKind.UTILITY_BILL,
        _indicators(
            "electricity",
            "water",
            "gas",
            "telephone",
            "mobile",
            "internet",
            "bill",
            "consumer",
            r"meter\s+reading",
            r"units\s+consumed",
            r"due\s+date",
        ),
    ),
    (
        DocumentKind.BANK_STATEMENT,
        _indicators(
            "statement",
            "account",
            r"opening\s+balance",
            r"closing\s+balance",
            "withdrawals?",
            "deposits?",
            "transactions?",
            "credit",
            "debit",
        ),
    ),
]


def classify_document(text: str | None) -> DocumentKind:
    """Classify cleaned text into a :class:`DocumentKind`.

    Args:
        text: Cleaned document text; ``None`` or empty gives ``UNKNOWN``.

    Returns:
        The first kind in priority order whose indicators appear.
    """
    if not text:
        return DocumentKind.UNKNOWN

    for kind, pattern in CLASSIFICATION_RULES:
        match = pattern.search(text)
        if match:
            logger.info("Classified document as %s (matched %r)", kind, match.group(0))
            return kind

    logger.info("Document type could not be determined")
    return DocumentKind.UNKNOWN
