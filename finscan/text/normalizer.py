"""Rule-based repair of recognised text from financial documents.

Corrects character confusions inside numbers, known misreadings of
financial terms, spurious spacing, split identifiers and dates, and
currency notation. Every rule is deterministic and the whole pass is
idempotent: normalising already-normalised text changes nothing.
"""

import re

from finscan.utils.logger import get_logger

logger = get_logger(__name__)

# Letters OCR commonly produces in place of digits.
_CONFUSABLE = "oOlIsSgGzZ"
_CONFUSION_TABLE = str.maketrans(_CONFUSABLE, "0011559922")

_NUM_CHAR = f"[0-9{_CONFUSABLE}]"
# A run of digits and confusable letters holding at least one real digit,
# optionally grouped by ",", ".", "/" or "-", and not inside a longer word.
# A currency prefix ("Rs", "INR") counts as a boundary.
_NUMERIC_TOKEN = re.compile(
    r"(?:(?<![A-Za-z0-9])|(?<=\bR[sS])|(?<=\bINR))"
    rf"(?:{_NUM_CHAR}*[0-9]{_NUM_CHAR}*[.,/-])*"
    rf"{_NUM_CHAR}*[0-9]{_NUM_CHAR}*"
    rf"(?:[.,/-]{_NUM_CHAR}+)*"
    r"(?![A-Za-z0-9])"
)

# Known misreadings of financial vocabulary, applied in order.
TERM_FIXES: list[tuple[str, str]] = [
    ("lnvoice", "Invoice"),
    ("Arnount", "Amount"),
    ("Payrnent", "Payment"),
    ("Custorner", "Customer"),
    ("Consurner", "Consumer"),
    ("Staternent", "Statement"),
    ("Accounl", "Account"),
    ("Ernployee", "Employee"),
    ("Incorne", "Income"),
    ("Assessrnent", "Assessment"),
    ("Deduclion", "Deduction"),
    ("Eleclricity", "Electricity"),
    ("Waler", "Water"),
    ("Ulility", "Utility"),
    ("Conlribution", "Contribution"),
    ("Salaly", "Salary"),
    ("FORM NO 16", "FORM 16"),
    ("FORM N0 16", "FORM 16"),
    ("F0RM 16", "FORM 16"),
    ("CHECK", "CHEQUE"),
]

# Only spaces are collapsed; tabs (TSV layout) and newlines survive.
_SPACING_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?<=[0-9]) +(?=[0-9])"), ""),
    (re.compile(r"(?<=[.,]) +(?=[0-9])"), ""),
    (re.compile(r"(?<=[A-Za-z]) +(?=[0-9])"), " "),
    (re.compile(r"(?<=[0-9]) +(?=[A-Za-z])"), " "),
]

# Account numbers and similar identifiers split around hyphens.
_IDENTIFIER_RULES: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            r"(?<![0-9])([0-9]{4}) *- *([0-9]{4}) *- *([0-9]{4}) *- *([0-9]{4})(?![0-9])"
        ),
        r"\1-\2-\3-\4",
    ),
    (
        re.compile(
            r"(?<![0-9])([0-9]{2}) *- *([0-9]{2}) *- *([0-9]{2}) *- *([0-9]{3})(?![0-9])"
        ),
        r"\1-\2-\3-\4",
    ),
    (
        re.compile(r"(?<![0-9])([0-9]{3}) *- *([0-9]{3}) *- *([0-9]{4})(?![0-9])"),
        r"\1-\2-\3",
    ),
]

_DATE_RULES: list[tuple[re.Pattern[str], str]] = [
    # 5 March , 2024 -> 5 March, 2024
    (
        re.compile(r"(?<![0-9])([0-9]{1,2}) +([A-Za-z]+) *, *([0-9]{4})(?![0-9])"),
        r"\1 \2, \3",
    ),
    # March 5 , 2024 -> March 5, 2024
    (
        re.compile(r"\b([A-Za-z]+) +([0-9]{1,2}) *, *([0-9]{4})(?![0-9])"),
        r"\1 \2, \3",
    ),
    # 01 / 02 / 2024, 01-02-2024, 01.02.24 -> 01/02/2024 style
    (
        re.compile(
            r"(?<![0-9./-])([0-9]{1,2}) *([/.-]) *([0-9]{1,2}) *\2 *([0-9]{2,4})"
            r"(?![0-9]|[/.-][0-9])"
        ),
        r"\1/\3/\4",
    ),
]

_CURRENCY_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?<![A-Za-z0-9])R[sS](?![A-Za-z])\.? *"), "₹"),
    (re.compile(r"(?<![A-Za-z0-9])INR(?![A-Za-z]) *"), "₹"),
    (re.compile(r"₹ +"), "₹"),
]


def fix_numeric_confusions(text: str) -> str:
    """Replace letters misread for digits inside numeric tokens.

    ``"1o,5OO.0O"`` becomes ``"10,500.00"`` while words such as ``"Salary"``
    are left alone.
    """
    return _NUMERIC_TOKEN.sub(lambda m: m.group(0).translate(_CONFUSION_TABLE), text)


def fix_terms(text: str) -> str:
    """Apply the literal financial-term corrections."""
    for wrong, correct in TERM_FIXES:
        text = text.replace(wrong, correct)
    return text


def _apply(rules: list[tuple[re.Pattern[str], str]], text: str) -> str:
    for pattern, replacement in rules:
        text = pattern.sub(replacement, text)
    return text


def normalize_text(text: str | None) -> str:
    """Clean raw recognised or extracted text.

    Literal corrections run first because they change the characters the
    spacing, date and currency rules match on.

    Args:
        text: Raw text; ``None`` is treated as empty.

    Returns:
        Cleaned text, ``""`` for empty input.
    """
    if not text:
        return ""

    text = fix_numeric_confusions(text)
    text = fix_terms(text)
    text = _apply(_SPACING_RULES, text)
    text = _apply(_IDENTIFIER_RULES, text)
    text = _apply(_DATE_RULES, text)
    text = _apply(_CURRENCY_RULES, text)

    logger.debug("Normalized %d characters of text", len(text))
    return text
