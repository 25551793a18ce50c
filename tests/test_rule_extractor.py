"""Tests for pattern-based extraction from OCR text."""

import pytest

from docintel.extraction.field_kinds import FieldKind, classify_id_type, normalize_value
from docintel.extraction.rule_extractor import (
    MAX_CONFIDENCE,
    RuleExtractor,
    field_confidence,
)
from docintel.models import DocumentType, GenericExtraction, W2Extraction


class TestFieldConfidence:
    """Tests for the local confidence budget."""

    def test_missing_value(self) -> None:
        assert field_confidence(None, 0.9) == 0.0

    def test_text_with_average_ocr(self) -> None:
        assert field_confidence("Acme", 0.7) == pytest.approx(0.65)

    def test_numeric_with_good_ocr_is_capped(self) -> None:
        assert field_confidence(100.0, 0.95) == MAX_CONFIDENCE

    def test_low_quality_penalty(self) -> None:
        assert field_confidence(100.0, 0.4) == pytest.approx(0.55)
        assert field_confidence("Acme", 0.4) == pytest.approx(0.45)

    def test_custom_base(self) -> None:
        assert field_confidence("addr", 0.7, base=0.55) == pytest.approx(0.60)


class TestNormalizeValue:
    """Tests for kind-driven normalization."""

    def test_kinds(self) -> None:
        assert normalize_value(FieldKind.MONEY, "$1,000.00") == 1000.0
        assert normalize_value(FieldKind.YEAR, "2023") == 2023
        assert normalize_value(FieldKind.DATE, " 01/15/2024 ") == "2024-01-15"
        assert normalize_value(FieldKind.NAME, "DOE, JANE") == "Jane Doe"
        assert normalize_value(FieldKind.STATE, "texas") == "TX"
        assert normalize_value(FieldKind.EIN, "123456789") == "12-3456789"
        assert normalize_value(FieldKind.IDENTIFIER, "D1234-5678") == "****5678"
        assert normalize_value(FieldKind.TEXT, "  Acme   Corp ") == "Acme Corp"

    def test_unparseable(self) -> None:
        assert normalize_value(FieldKind.MONEY, "n/a") is None
        assert normalize_value(FieldKind.TEXT, {"nested": 1}) is None

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("DRIVER LICENSE", "driver_license"),
            ("state_id", "state_id"),
            ("Identification Card", "state_id"),
            ("PASSPORT", "passport"),
            ("library card", None),
        ],
    )
    def test_classify_id_type(self, text: str, expected: str | None) -> None:
        assert classify_id_type(text) == expected


class TestRuleExtractorW2:
    """Tests for W-2 extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_box_and_label_forms(self) -> None:
        text = "Employer: Acme Corp\nBox 1 Wages: $75,000.00\n"
        w2 = self.extractor.extract(text, DocumentType.W2, 0.9)
        assert isinstance(w2, W2Extraction)
        assert w2.wages_tips_compensation.value == 75000.0
        assert w2.employer_name.value == "Acme Corp"

    def test_full_document(self, w2_text: str) -> None:
        w2 = self.extractor.extract(w2_text, DocumentType.W2, 0.9)
        assert w2.employer_ein.value == "12-3456789"
        assert w2.employee_name.value == "John Q Public"
        assert w2.federal_income_tax_withheld.value == 12500.0
        assert w2.social_security_wages.value == 75000.0
        assert w2.social_security_tax_withheld.value == 4650.0
        assert w2.medicare_wages.value == 75000.0
        assert w2.medicare_tax_withheld.value == 1087.5
        assert w2.tax_year.value == 2023

    def test_ssn_is_only_last_four(self, w2_text: str) -> None:
        w2 = self.extractor.extract(w2_text, DocumentType.W2, 0.9)
        assert w2.employee_ssn.value == "****6789"
        assert "123-45" not in w2.model_dump_json()

    def test_confidence_is_capped(self, w2_text: str) -> None:
        w2 = self.extractor.extract(w2_text, DocumentType.W2, 0.99)
        for field in w2.populated_fields().values():
            assert 0 < field.confidence <= MAX_CONFIDENCE

    def test_missing_fields_are_unset(self) -> None:
        w2 = self.extractor.extract("nothing useful here", DocumentType.W2, 0.9)
        assert w2.populated_fields() == {}


class TestRuleExtractorOtherTypes:
    """Tests for paystub, bank statement, tax return and ID extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_paystub(self) -> None:
        text = (
            "Company: Acme Corp\n"
            "Employee Name: Jane Doe\n"
            "Pay Period: 01/01/2024 - 01/15/2024\n"
            "Pay Date: 01/19/2024\n"
            "Gross Pay $3,125.00 $6,250.00\n"
            "Net Pay $2,350.75 $4,701.50\n"
            "Total Hours: 80\n"
        )
        stub = self.extractor.extract(text, DocumentType.PAYSTUB, 0.85)
        assert stub.employer_name.value == "Acme Corp"
        assert stub.employee_name.value == "Jane Doe"
        assert stub.pay_period_start.value == "2024-01-01"
        assert stub.pay_period_end.value == "2024-01-15"
        assert stub.pay_date.value == "2024-01-19"
        assert stub.gross_pay.value == 3125.0
        assert stub.ytd_gross_pay.value == 6250.0
        assert stub.net_pay.value == 2350.75
        assert stub.ytd_net_pay.value == 4701.5
        assert stub.hours_worked.value == 80.0

    def test_bank_statement(self) -> None:
        text = (
            "First National Bank\n"
            "Account Holder: John Public\n"
            "Checking Account Number: 0001234567\n"
            "Statement Period: 01/01/2024 - 01/31/2024\n"
            "Beginning Balance $5,000.00\n"
            "Total Deposits $4,250.00\n"
            "Total Withdrawals $3,500.00\n"
            "Ending Balance $5,750.00\n"
        )
        statement = self.extractor.extract(text, DocumentType.BANK_STATEMENT, 0.85)
        assert statement.institution_name.value == "First National Bank"
        assert statement.account_holder_name.value == "John Public"
        assert statement.account_type.value == "Checking"
        assert statement.account_number_last4.value == "****4567"
        assert statement.statement_period_start.value == "2024-01-01"
        assert statement.statement_period_end.value == "2024-01-31"
        assert statement.beginning_balance.value == 5000.0
        assert statement.total_deposits.value == 4250.0
        assert statement.total_withdrawals.value == 3500.0
        assert statement.ending_balance.value == 5750.0

    def test_tax_return(self) -> None:
        text = (
            "Form 1040 U.S. Individual Income Tax Return 2023\n"
            "Filing Status: Married filing jointly\n"
            "Your SSN: 123-45-6789\n"
            "Spouse's SSN: 987-65-4321\n"
            "Total income $78,500.00\n"
            "Adjusted gross income $75,000.00\n"
            "Taxable income $61,150.00\n"
            "Total tax $9,247.00\n"
            "Amount you owe $412.00\n"
        )
        ret = self.extractor.extract(text, DocumentType.TAX_RETURN, 0.85)
        assert ret.tax_year.value == 2023
        assert ret.filing_status.value == "Married filing jointly"
        assert ret.taxpayer_ssn.value == "****6789"
        assert ret.spouse_ssn.value == "****4321"
        assert ret.total_income.value == 78500.0
        assert ret.adjusted_gross_income.value == 75000.0
        assert ret.taxable_income.value == 61150.0
        assert ret.total_tax.value == 9247.0
        assert ret.amount_owed.value == 412.0
        assert not ret.refund_amount.is_set

    def test_id_card(self) -> None:
        text = (
            "ILLINOIS DRIVER'S LICENSE\n"
            "DL: D123-4567-8901\n"
            "Name: JANE DOE\n"
            "DOB: 06/15/1985\n"
            "ISS: 06/15/2021\n"
            "EXP: 06/15/2029\n"
            "Address: 456 Oak St, Springfield, IL 62704\n"
            "SEX: F HGT: 5'-06\" EYES: BRN\n"
        )
        id_doc = self.extractor.extract(text, DocumentType.ID, 0.85)
        assert id_doc.full_name.value == "Jane Doe"
        assert id_doc.license_number.value == "****8901"
        assert id_doc.date_of_birth.value == "1985-06-15"
        assert id_doc.issue_date.value == "2021-06-15"
        assert id_doc.expiration_date.value == "2029-06-15"
        assert id_doc.address.value == "456 Oak St, Springfield, IL 62704"
        assert id_doc.state.value == "IL"
        assert id_doc.id_type.value == "driver_license"
        assert id_doc.sex.value == "F"
        assert id_doc.eye_color.value == "BRN"


class TestGenericExtraction:
    """Tests for the unstructured fallback."""

    def test_amounts_and_dates_are_bounded(self) -> None:
        amounts = " ".join(f"${i},000.00" for i in range(1, 9))
        dates = " ".join(f"01/0{i}/2024" for i in range(1, 6))
        generic = RuleExtractor().extract(f"{amounts}\n{dates}", DocumentType.OTHER, 0.9)
        assert isinstance(generic, GenericExtraction)
        amount_keys = [k for k in generic.detected_fields if k.startswith("amount_")]
        date_keys = [k for k in generic.detected_fields if k.startswith("date_")]
        assert amount_keys == [f"amount_{i}" for i in range(1, 6)]
        assert date_keys == ["date_1", "date_2", "date_3"]
        assert generic.detected_fields["amount_1"].value == 1000.0
        assert generic.detected_fields["date_1"].value == "2024-01-01"

    def test_raw_text_is_redacted(self) -> None:
        generic = RuleExtractor().extract_generic("SSN 123-45-6789 paid $10.00", 0.9)
        assert "123-45-6789" not in generic.raw_text
        assert "****6789" in generic.raw_text
