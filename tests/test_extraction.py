"""Tests for document classification and rule-based field extraction."""

import pytest

from finscan.extraction.classifier import DocumentKind, classify_document
from finscan.extraction.rule_extractor import (
    ExtractedField,
    RuleExtractor,
    annotate,
    format_annotated_text,
)
from finscan.text.normalizer import normalize_text

CHEQUE_TEXT = "CHEQUE No: 123456\nPay to the order of John Smith\nAmount: ₹5,000\n"
UTILITY_TEXT = (
    "Electricity Bill\n"
    "Consumer No: 1234567890\n"
    "Units Consumed: 245\n"
    "Due Date: 15/04/2024\n"
)
FORM_16_TEXT = (
    "FORM 16\n"
    "Assessment Year: 2024-25\n"
    "PAN of the Employee: ABCDE1234F\n"
)


def _fields(text: str, kind: DocumentKind) -> dict[str, str]:
    return {f.label: f.value for f in RuleExtractor().extract(text, kind)}


class TestClassifier:
    """Tests for keyword-based classification."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            (CHEQUE_TEXT, DocumentKind.CHEQUE),
            (UTILITY_TEXT, DocumentKind.UTILITY_BILL),
            (FORM_16_TEXT, DocumentKind.FORM_16),
        ],
    )
    def test_known_kinds(self, text: str, expected: DocumentKind) -> None:
        assert classify_document(text) == expected

    def test_salary_slip(self, salary_slip_text: str) -> None:
        assert classify_document(salary_slip_text) == DocumentKind.SALARY_SLIP

    def test_bank_statement(self, bank_statement_text: str) -> None:
        assert classify_document(bank_statement_text) == DocumentKind.BANK_STATEMENT

    def test_salary_beats_bank_statement(self) -> None:
        text = "Salary credited to your account. Closing balance ₹50,000"
        assert classify_document(text) == DocumentKind.SALARY_SLIP

    def test_case_insensitive(self) -> None:
        assert classify_document("ELECTRICITY CHARGES") == DocumentKind.UTILITY_BILL

    def test_short_indicators_need_whole_words(self) -> None:
        assert classify_document("Data taken from the database") == DocumentKind.UNKNOWN

    @pytest.mark.parametrize("text", [None, "", "lorem ipsum"])
    def test_unknown(self, text: str | None) -> None:
        assert classify_document(text) == DocumentKind.UNKNOWN


class TestRuleExtractor:
    """Tests for per-kind field patterns."""

    def test_bank_statement_fields(self, bank_statement_text: str) -> None:
        fields = _fields(bank_statement_text, DocumentKind.BANK_STATEMENT)
        assert fields["ACCOUNT_NUMBER"] == "123456789012"
        assert fields["OPENING_BALANCE"] == "₹10,000.00"
        assert fields["CLOSING_BALANCE"] == "₹12,345.67"

    def test_salary_slip_fields(self, salary_slip_text: str) -> None:
        fields = _fields(salary_slip_text, DocumentKind.SALARY_SLIP)
        assert fields["EMPLOYEE_ID"] == "EMP-1042"
        assert fields["BASIC_SALARY"] == "Rs. 25,000.00"
        assert fields["HRA"] == "10,000"
        assert fields["NET_SALARY"] == "₹32,500.00"
        assert "GROSS_SALARY" not in fields

    def test_cheque_fields(self) -> None:
        fields = _fields(CHEQUE_TEXT, DocumentKind.CHEQUE)
        assert fields["CHEQUE_NUMBER"] == "123456"
        assert fields["PAYEE"] == "John Smith"
        assert fields["AMOUNT"] == "₹5,000"

    def test_utility_bill_fields(self) -> None:
        fields = _fields(UTILITY_TEXT, DocumentKind.UTILITY_BILL)
        assert fields["CONSUMER_NUMBER"] == "1234567890"
        assert fields["UNITS_CONSUMED"] == "245"
        assert fields["DUE_DATE"] == "15/04/2024"
        assert "BILL_NUMBER" not in fields

    def test_form_16_fields(self) -> None:
        fields = _fields(FORM_16_TEXT, DocumentKind.FORM_16)
        assert fields["ASSESSMENT_YEAR"] == "2024-25"
        assert fields["PAN_EMPLOYEE"] == "ABCDE1234F"

    def test_hyphenated_account_number(self) -> None:
        text = "Account No: 1234-5678-9012-3456\nClosing Balance: ₹2.00"
        fields = _fields(text, DocumentKind.BANK_STATEMENT)
        assert fields["ACCOUNT_NUMBER"] == "1234-5678-9012-3456"

    def test_trailing_hyphen_not_part_of_identifier(self) -> None:
        fields = _fields("Consumer No: 987654- paid", DocumentKind.UTILITY_BILL)
        assert fields["CONSUMER_NUMBER"] == "987654"

    def test_first_match_wins(self) -> None:
        text = "Closing Balance: ₹1.00\nClosing Balance: ₹2.00"
        fields = RuleExtractor().extract(text, DocumentKind.BANK_STATEMENT)
        assert [f.value for f in fields] == ["₹1.00"]

    def test_positions_cover_match(self) -> None:
        text = "Opening Balance: ₹10.00"
        (field,) = RuleExtractor().extract(text, DocumentKind.BANK_STATEMENT)
        assert field.start_pos == 0
        assert field.end_pos == len(text)

    def test_unknown_kind_has_no_fields(self, bank_statement_text: str) -> None:
        assert RuleExtractor().extract(bank_statement_text, DocumentKind.UNKNOWN) == []

    def test_empty_text(self) -> None:
        assert RuleExtractor().extract("", DocumentKind.SALARY_SLIP) == []


class TestAnnotation:
    """Tests for the annotated text format."""

    def test_format_with_fields(self) -> None:
        fields = [ExtractedField("CHEQUE_NUMBER", "123456", 0, 16)]
        annotated = format_annotated_text("body", DocumentKind.CHEQUE, fields)
        assert annotated == (
            "DOCUMENT_TYPE: CHEQUE\n\nbody\n\nEXTRACTED_DATA:\nCHEQUE_NUMBER: 123456\n"
        )

    def test_format_without_fields(self) -> None:
        annotated = format_annotated_text("body", DocumentKind.UNKNOWN, [])
        assert annotated == "DOCUMENT_TYPE: UNKNOWN\n\nbody"

    def test_annotate_bank_statement(self, bank_statement_text: str) -> None:
        annotated, kind, fields = annotate(bank_statement_text)
        assert kind == DocumentKind.BANK_STATEMENT
        assert annotated.startswith("DOCUMENT_TYPE: BANK_STATEMENT\n\n")
        assert "ACCOUNT_NUMBER: 123456789012\n" in annotated
        assert "CLOSING_BALANCE: ₹12,345.67\n" in annotated
        assert len(fields) == 3

    def test_annotate_normalized_grouped_account(self) -> None:
        text = normalize_text(
            "Statement of Account\nAccount No: 1234 - 5678 - 9012 - 3456\n"
            "Closing Balance: Rs. 500.00"
        )
        annotated, kind, fields = annotate(text)
        assert kind == DocumentKind.BANK_STATEMENT
        assert "ACCOUNT_NUMBER: 1234-5678-9012-3456\n" in annotated
        assert {f.label for f in fields} == {"ACCOUNT_NUMBER", "CLOSING_BALANCE"}

    def test_annotate_empty(self) -> None:
        annotated, kind, fields = annotate(None)
        assert annotated == "DOCUMENT_TYPE: UNKNOWN\n\n"
        assert kind == DocumentKind.UNKNOWN
        assert fields == []
