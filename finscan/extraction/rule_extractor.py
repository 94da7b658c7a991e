"""Rule-based field extraction keyed by document kind.

Each :class:`DocumentKind` has its own table of labelled regex patterns.
The first match of each pattern is kept verbatim; parsing values into
numbers or dates is left to the downstream semantic extractor.
"""

import re
from dataclasses import dataclass

from finscan.utils.logger import get_logger

from .classifier import DocumentKind, classify_document

logger = get_logger(__name__)


@dataclass
class ExtractedField:
    """A labelled value captured by a field pattern."""

    label: str
    value: str
    start_pos: int
    end_pos: int


_FLAGS = re.IGNORECASE

# Optional currency marker followed by an Indian/Western grouped amount.
_AMOUNT = r"((?:Rs\.?|INR|₹)?\s?\d+(?:,\d+)*(?:\.\d{1,2})?)"
# Identifier of at least six characters containing a digit; single hyphens
# may join digit groups.
_IDENTIFIER = r"(?=[A-Z0-9-]*\d)([A-Z0-9](?:[A-Z0-9]|-(?=[A-Z0-9])){5,})"
_PAN = r"([A-Z]{5}[0-9]{4}[A-Z])"
# Free text up to the end of the line.
_LINE_VALUE = r"([A-Za-z0-9][A-Za-z0-9 ,/\-]*)"
_SEP = r"[\s:.#]*"


def _rule(label: str, pattern: str) -> tuple[str, re.Pattern[str]]:
    return label, re.compile(pattern, _FLAGS)


FIELD_PATTERNS: dict[DocumentKind, list[tuple[str, re.Pattern[str]]]] = {
    DocumentKind.SALARY_SLIP: [
        _rule(
            "EMPLOYEE_ID",
            rf"\b(?:employee|emp)\.?\s*(?:no|number|id|code)\b{_SEP}(?=[A-Z0-9\-/]*\d)([A-Z0-9\-/]{{2,}})",
        ),
        _rule("BASIC_SALARY", rf"\b(?:basic|base)\s+(?:salary|pay|wage){_SEP}{_AMOUNT}"),
        _rule("HRA", rf"\b(?:hra|house\s+rent\s+allowance){_SEP}{_AMOUNT}"),
        _rule("DA", rf"\b(?:da|dearness\s+allowance){_SEP}{_AMOUNT}"),
        _rule("TA", rf"\b(?:ta|transport\s+allowance){_SEP}{_AMOUNT}"),
        _rule("PF", rf"\b(?:pf|provident\s+fund){_SEP}{_AMOUNT}"),
        _rule("TDS", rf"\b(?:tds|tax\s+deducted\s+at\s+source){_SEP}{_AMOUNT}"),
        _rule("GROSS_SALARY", rf"\b(?:gross|total)\s+(?:salary|pay|earnings){_SEP}{_AMOUNT}"),
        _rule("NET_SALARY", rf"\b(?:net|take\s+home)\s+(?:salary|pay){_SEP}{_AMOUNT}"),
    ],
    DocumentKind.FORM_16: [
        _rule("ASSESSMENT_YEAR", rf"\b(?:assessment|ay)\s+year{_SEP}(\d{{4}}\s*-\s*\d{{2,4}})"),
        _rule(
            "PAN_DEDUCTOR",
            rf"\b(?:pan|tan)\s+(?:of\s+)?(?:the\s+)?(?:deductor|employer){_SEP}{_PAN}",
        ),
        _rule(
            "PAN_EMPLOYEE",
            rf"\bpan\s+(?:of\s+)?(?:the\s+)?(?:employee|deductee){_SEP}{_PAN}",
        ),
        _rule(
            "TOTAL_TAX_DEDUCTED",
            rf"\b(?:total|sum)\s+(?:tax|tds)\s+deducted{_SEP}{_AMOUNT}",
        ),
    ],
    DocumentKind.UTILITY_BILL: [
        _rule(
            "BILL_NUMBER",
            rf"\b(?:bill|invoice|statement)\s*(?:no\b|number\b|#){_SEP}{_IDENTIFIER}",
        ),
        _rule(
            "CONSUMER_NUMBER",
            rf"\b(?:consumer|customer|connection)\s*(?:no|number|id)\b{_SEP}{_IDENTIFIER}",
        ),
        _rule("BILL_PERIOD", rf"\b(?:bill|statement)\s+(?:period|cycle|for)[ \t:.]*{_LINE_VALUE}"),
        _rule("DUE_DATE", rf"\b(?:due|payment)\s+(?:date|by)[ \t:.]*{_LINE_VALUE}"),
        _rule("METER_READING", rf"\bmeter\s+(?:reading|value|number){_SEP}(\d+)"),
        _rule(
            "UNITS_CONSUMED",
            rf"\b(?:units(?:\s+consumed)?|consumption|consumed){_SEP}(\d+(?:\.\d+)?)",
        ),
    ],
    DocumentKind.CHEQUE: [
        _rule("CHEQUE_NUMBER", rf"\b(?:cheque|check|chq)\.?\s*(?:no\b|number\b|#){_SEP}(\d{{6,}})"),
        _rule(
            "PAYEE",
            r"\b(?:pay|payable)\s+(?:to\s+the\s+order\s+of|to|in\s+favou?r\s+of)"
            r"[ \t:.]*([A-Za-z][A-Za-z .]*)",
        ),
        _rule("AMOUNT", rf"\b(?:amount|sum|rupees){_SEP}{_AMOUNT}"),
        _rule(
            "AMOUNT_IN_WORDS",
            r"\b(?:amount|rupees)\s+in\s+words[ \t:.]*([A-Za-z][A-Za-z \-]*)",
        ),
        _rule("DATE", rf"\bdate[ \t:.]*{_LINE_VALUE}"),
    ],
    DocumentKind.BANK_STATEMENT: [
        _rule(
            "ACCOUNT_NUMBER",
            rf"\b(?:a/c|account|acct|acc)\.?\s*(?:no\b\.?|number|num\b|#)?{_SEP}{_IDENTIFIER}",
        ),
        _rule("IFSC", rf"\bifsc?(?:\s+code)?{_SEP}([A-Z]{{4}}0[A-Z0-9]{{6}})"),
        _rule(
            "OPENING_BALANCE",
            rf"\b(?:opening|previous|beginning)\s+(?:balance|bal){_SEP}{_AMOUNT}",
        ),
        _rule(
            "CLOSING_BALANCE",
            rf"\b(?:closing|ending|final|end)\s+(?:balance|bal){_SEP}{_AMOUNT}",
        ),
        _rule("TOTAL_DEPOSITS", rf"\b(?:total|sum)\s+(?:deposits|credits){_SEP}{_AMOUNT}"),
        _rule(
            "TOTAL_WITHDRAWALS",
            rf"\b(?:total|sum)\s+(?:withdrawals|debits){_SEP}{_AMOUNT}",
        ),
    ],
    DocumentKind.UNKNOWN: [],
}


class RuleExtractor:
    """Regex field extractor driven by :data:`FIELD_PATTERNS`."""

    def __init__(
        self,
        patterns: dict[DocumentKind, list[tuple[str, re.Pattern[str]]]] | None = None,
    ) -> None:
        self.patterns = patterns or FIELD_PATTERNS

    def extract(self, text: str, kind: DocumentKind) -> list[ExtractedField]:
        """Extract the fields defined for ``kind`` from ``text``.

        Args:
            text: Cleaned document text.
            kind: Document kind selecting the pattern table.

        Returns:
            At most one field per label, in table order. Labels whose
            pattern does not match are omitted.
        """
        results: list[ExtractedField] = []
        if not text:
            return results

        for label, pattern in self.patterns.get(kind, []):
            match = pattern.search(text)
            if not match:
                continue
            value = (match.group(1) if match.groups() else match.group(0)).strip()
            if not value:
                continue
            results.append(
                ExtractedField(
                    label=label,
                    value=value,
                    start_pos=match.start(),
                    end_pos=match.end(),
                )
            )

        logger.info("Rule extraction found %d %s fields", len(results), kind)
        return results


def format_annotated_text(
    text: str, kind: DocumentKind, fields: list[ExtractedField]
) -> str:
    """Render cleaned text with its document type header and field block."""
    annotated = f"DOCUMENT_TYPE: {kind}\n\n{text}"
    if fields:
        block = "".join(f"{f.label}: {f.value}\n" for f in fields)
        annotated = f"{annotated}\n\nEXTRACTED_DATA:\n{block}"
    return annotated


def annotate(
    text: str | None, extractor: RuleExtractor | None = None
) -> tuple[str, DocumentKind, list[ExtractedField]]:
    """Classify cleaned text, extract its fields and build the annotated text.

    Args:
        text: Cleaned document text.
        extractor: Field extractor to use; a default one when omitted.

    Returns:
        Tuple of (annotated_text, document_kind, fields).
    """
    text = text or ""
    kind = classify_document(text)
    fields = (extractor or RuleExtractor()).extract(text, kind)
    return format_annotated_text(text, kind, fields), kind, fields
