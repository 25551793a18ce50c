"""Deterministic provider for demos, tests and offline development."""

from docintel.models import (
    BankStatementExtraction,
    BaseExtraction,
    DocumentType,
    ExtractedField,
    ExtractionResult,
    GenericExtraction,
    IdExtraction,
    PaystubExtraction,
    TaxReturnExtraction,
    W2Extraction,
)
from docintel.parsing.confidence import mean_confidence
from docintel.providers.base import OCRProvider

MOCK_CONFIDENCE = 0.90


def _f(value: str | int | float) -> ExtractedField:
    return ExtractedField(value=value, confidence=MOCK_CONFIDENCE, raw_text=str(value))


def _sample(document_type: DocumentType) -> BaseExtraction:
    if document_type is DocumentType.W2:
        return W2Extraction(
            employer_name=_f("Acme Corporation"),
            employer_ein=_f("12-3456789"),
            employer_address=_f("123 Business Ave, Springfield, IL 62701"),
            employee_name=_f("John Q. Public"),
            employee_ssn=_f("****6789"),
            wages_tips_compensation=_f(75000.0),
            federal_income_tax_withheld=_f(12500.0),
            social_security_wages=_f(75000.0),
            social_security_tax_withheld=_f(4650.0),
            medicare_wages=_f(75000.0),
            medicare_tax_withheld=_f(1087.5),
            tax_year=_f(2023),
        )
    if document_type is DocumentType.PAYSTUB:
        return PaystubExtraction(
            employer_name=_f("Acme Corporation"),
            employee_name=_f("John Q. Public"),
            pay_period_start=_f("2024-01-01"),
            pay_period_end=_f("2024-01-15"),
            pay_date=_f("2024-01-19"),
            gross_pay=_f(3125.0),
            net_pay=_f(2350.75),
            ytd_gross_pay=_f(3125.0),
            ytd_net_pay=_f(2350.75),
            hours_worked=_f(80.0),
            hourly_rate=_f(39.06),
        )
    if document_type is DocumentType.BANK_STATEMENT:
        return BankStatementExtraction(
            institution_name=_f("First National Bank"),
            account_holder_name=_f("John Q. Public"),
            account_type=_f("checking"),
            account_number_last4=_f("****4321"),
            statement_period_start=_f("2024-01-01"),
            statement_period_end=_f("2024-01-31"),
            beginning_balance=_f(5000.0),
            ending_balance=_f(5750.0),
            average_daily_balance=_f(5325.5),
            total_deposits=_f(4250.0),
            total_withdrawals=_f(3500.0),
        )
    if document_type is DocumentType.TAX_RETURN:
        return TaxReturnExtraction(
            taxpayer_name=_f("John Q. Public"),
            taxpayer_ssn=_f("****6789"),
            tax_year=_f(2023),
            filing_status=_f("single"),
            total_income=_f(78500.0),
            adjusted_gross_income=_f(75000.0),
            taxable_income=_f(61150.0),
            total_tax=_f(9247.0),
            refund_amount=_f(3253.0),
        )
    if document_type is DocumentType.ID:
        return IdExtraction(
            full_name=_f("John Q. Public"),
            date_of_birth=_f("1985-06-15"),
            license_number=_f("****5678"),
            issue_date=_f("2021-06-15"),
            expiration_date=_f("2029-06-15"),
            address=_f("456 Oak St, Springfield, IL 62704"),
            state=_f("IL"),
            id_type=_f("driver_license"),
            sex=_f("M"),
            height=_f("5-10"),
            eye_color=_f("BRN"),
        )
    return GenericExtraction(
        raw_text="Sample document text",
        detected_type="sample",
        detected_fields={"amount_1": _f(100.0), "date_1": _f("2024-01-01")},
    )


class MockProvider(OCRProvider):
    """Returns a fixed sample per document type, ignoring the input bytes."""

    name = "mock"

    def is_available(self) -> bool:
        return True

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | None = None,
    ) -> ExtractionResult:
        document_type = document_type or DocumentType.OTHER
        extraction = _sample(document_type)
        return ExtractionResult(
            success=True,
            provider=self.name,
            document_type=document_type,
            extraction=extraction,
            overall_confidence=mean_confidence(extraction),
        )
