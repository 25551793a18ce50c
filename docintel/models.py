"""Shared result types for document extraction.

Confidence is always on the 0-1 scale inside the pipeline. Providers that
receive scores on another scale convert them before building these models.
"""

import re
from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docintel.parsing.field_parsers import mask_last_four, redact_identifiers


class DocumentType(StrEnum):
    """Supported document categories."""

    W2 = "w2"
    PAYSTUB = "paystub"
    BANK_STATEMENT = "bank_statement"
    TAX_RETURN = "tax_return"
    ID = "id"
    OTHER = "other"


def clamp_confidence(value: Any) -> float:
    """Coerce a score into [0, 1], treating non-numbers as zero."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    if value != value:  # NaN
        return 0.0
    return min(max(float(value), 0.0), 1.0)


class ExtractedField(BaseModel):
    """A single extracted value with its confidence.

    A field without a value always has zero confidence, and a zero
    confidence always means the field is unset.
    """

    model_config = ConfigDict(frozen=True)

    value: str | int | float | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    raw_text: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_unset(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        value = data.get("value")
        if isinstance(value, str):
            value = value.strip() or None
        confidence = clamp_confidence(data.get("confidence", 0.0))
        if value is None or confidence == 0.0:
            value, confidence = None, 0.0
        data["value"] = value
        data["confidence"] = confidence
        if isinstance(data.get("raw_text"), str):
            data["raw_text"] = redact_identifiers(data["raw_text"])
        return data

    @property
    def is_set(self) -> bool:
        return self.value is not None


def masked_field(field: ExtractedField) -> ExtractedField:
    """Reduce an identifier field to its last four digits in value and raw text."""
    if field.value is None:
        return field
    masked = mask_last_four(field.value)
    return ExtractedField(value=masked, confidence=field.confidence, raw_text=masked)


def redacted_field(field: ExtractedField) -> ExtractedField:
    """Mask identifier-shaped text inside a free-form string value."""
    if not isinstance(field.value, str):
        return field
    redacted = redact_identifiers(field.value)
    if redacted == field.value:
        return field
    return field.model_copy(update={"value": redacted})


class BaseExtraction(BaseModel):
    """Common behavior for the per-document extraction variants.

    Subclasses list their identifier fields in ``sensitive_fields``; those
    are re-masked on every construction so no provider can leak a full
    number.
    """

    sensitive_fields: ClassVar[tuple[str, ...]] = ()

    notes: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _mask_identifiers(self) -> "BaseExtraction":
        for name in self.sensitive_fields:
            setattr(self, name, masked_field(getattr(self, name)))
        return self

    def extracted_fields(self) -> dict[str, ExtractedField]:
        """Return every ExtractedField member keyed by field name."""
        return {
            name: getattr(self, name)
            for name, info in type(self).model_fields.items()
            if info.annotation is ExtractedField
        }

    def populated_fields(self) -> dict[str, ExtractedField]:
        """Return only the fields that carry a value."""
        return {
            name: field
            for name, field in self.extracted_fields().items()
            if field.is_set
        }


class W2Extraction(BaseExtraction):
    """Wage and tax statement (Form W-2)."""

    sensitive_fields: ClassVar[tuple[str, ...]] = ("employee_ssn",)

    document_type: Literal["w2"] = "w2"
    employer_name: ExtractedField = Field(default_factory=ExtractedField)
    employer_ein: ExtractedField = Field(default_factory=ExtractedField)
    employer_address: ExtractedField = Field(default_factory=ExtractedField)
    employee_name: ExtractedField = Field(default_factory=ExtractedField)
    employee_ssn: ExtractedField = Field(default_factory=ExtractedField)
    wages_tips_compensation: ExtractedField = Field(default_factory=ExtractedField)
    federal_income_tax_withheld: ExtractedField = Field(default_factory=ExtractedField)
    social_security_wages: ExtractedField = Field(default_factory=ExtractedField)
    social_security_tax_withheld: ExtractedField = Field(default_factory=ExtractedField)
    medicare_wages: ExtractedField = Field(default_factory=ExtractedField)
    medicare_tax_withheld: ExtractedField = Field(default_factory=ExtractedField)
    tax_year: ExtractedField = Field(default_factory=ExtractedField)


class PaystubExtraction(BaseExtraction):
    """Earnings statement for a single pay period."""

    document_type: Literal["paystub"] = "paystub"
    employer_name: ExtractedField = Field(default_factory=ExtractedField)
    employee_name: ExtractedField = Field(default_factory=ExtractedField)
    pay_period_start: ExtractedField = Field(default_factory=ExtractedField)
    pay_period_end: ExtractedField = Field(default_factory=ExtractedField)
    pay_date: ExtractedField = Field(default_factory=ExtractedField)
    gross_pay: ExtractedField = Field(default_factory=ExtractedField)
    net_pay: ExtractedField = Field(default_factory=ExtractedField)
    ytd_gross_pay: ExtractedField = Field(default_factory=ExtractedField)
    ytd_net_pay: ExtractedField = Field(default_factory=ExtractedField)
    hours_worked: ExtractedField = Field(default_factory=ExtractedField)
    hourly_rate: ExtractedField = Field(default_factory=ExtractedField)


class BankStatementExtraction(BaseExtraction):
    """Periodic bank account statement."""

    sensitive_fields: ClassVar[tuple[str, ...]] = ("account_number_last4",)

    document_type: Literal["bank_statement"] = "bank_statement"
    institution_name: ExtractedField = Field(default_factory=ExtractedField)
    account_holder_name: ExtractedField = Field(default_factory=ExtractedField)
    account_type: ExtractedField = Field(default_factory=ExtractedField)
    account_number_last4: ExtractedField = Field(default_factory=ExtractedField)
    statement_period_start: ExtractedField = Field(default_factory=ExtractedField)
    statement_period_end: ExtractedField = Field(default_factory=ExtractedField)
    beginning_balance: ExtractedField = Field(default_factory=ExtractedField)
    ending_balance: ExtractedField = Field(default_factory=ExtractedField)
    average_daily_balance: ExtractedField = Field(default_factory=ExtractedField)
    total_deposits: ExtractedField = Field(default_factory=ExtractedField)
    total_withdrawals: ExtractedField = Field(default_factory=ExtractedField)


class TaxReturnExtraction(BaseExtraction):
    """Individual income tax return (Form 1040)."""

    sensitive_fields: ClassVar[tuple[str, ...]] = ("taxpayer_ssn", "spouse_ssn")

    document_type: Literal["tax_return"] = "tax_return"
    taxpayer_name: ExtractedField = Field(default_factory=ExtractedField)
    taxpayer_ssn: ExtractedField = Field(default_factory=ExtractedField)
    spouse_name: ExtractedField = Field(default_factory=ExtractedField)
    spouse_ssn: ExtractedField = Field(default_factory=ExtractedField)
    tax_year: ExtractedField = Field(default_factory=ExtractedField)
    filing_status: ExtractedField = Field(default_factory=ExtractedField)
    total_income: ExtractedField = Field(default_factory=ExtractedField)
    adjusted_gross_income: ExtractedField = Field(default_factory=ExtractedField)
    taxable_income: ExtractedField = Field(default_factory=ExtractedField)
    total_tax: ExtractedField = Field(default_factory=ExtractedField)
    refund_amount: ExtractedField = Field(default_factory=ExtractedField)
    amount_owed: ExtractedField = Field(default_factory=ExtractedField)


class IdExtraction(BaseExtraction):
    """Driver's license, state ID card or passport."""

    sensitive_fields: ClassVar[tuple[str, ...]] = ("license_number",)

    document_type: Literal["id"] = "id"
    full_name: ExtractedField = Field(default_factory=ExtractedField)
    date_of_birth: ExtractedField = Field(default_factory=ExtractedField)
    license_number: ExtractedField = Field(default_factory=ExtractedField)
    issue_date: ExtractedField = Field(default_factory=ExtractedField)
    expiration_date: ExtractedField = Field(default_factory=ExtractedField)
    address: ExtractedField = Field(default_factory=ExtractedField)
    state: ExtractedField = Field(default_factory=ExtractedField)
    id_type: ExtractedField = Field(default_factory=ExtractedField)
    sex: ExtractedField = Field(default_factory=ExtractedField)
    height: ExtractedField = Field(default_factory=ExtractedField)
    eye_color: ExtractedField = Field(default_factory=ExtractedField)


_SENSITIVE_KEY = re.compile(r"ssn|social.?security|account|licen[cs]e|passport", re.I)


class GenericExtraction(BaseExtraction):
    """Unstructured document: raw text plus whatever key/value pairs were found."""

    document_type: Literal["other"] = "other"
    raw_text: str = ""
    detected_type: str | None = None
    detected_fields: dict[str, ExtractedField] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _mask_open_fields(self) -> "GenericExtraction":
        self.raw_text = redact_identifiers(self.raw_text)
        self.detected_fields = {
            key: masked_field(field) if _SENSITIVE_KEY.search(key) else redacted_field(field)
            for key, field in self.detected_fields.items()
        }
        return self

    def extracted_fields(self) -> dict[str, ExtractedField]:
        return dict(self.detected_fields)


DocumentExtraction = (
    W2Extraction
    | PaystubExtraction
    | BankStatementExtraction
    | TaxReturnExtraction
    | IdExtraction
    | GenericExtraction
)

EXTRACTION_MODELS: dict[DocumentType, type[BaseExtraction]] = {
    DocumentType.W2: W2Extraction,
    DocumentType.PAYSTUB: PaystubExtraction,
    DocumentType.BANK_STATEMENT: BankStatementExtraction,
    DocumentType.TAX_RETURN: TaxReturnExtraction,
    DocumentType.ID: IdExtraction,
    DocumentType.OTHER: GenericExtraction,
}


class ExtractionResult(BaseModel):
    """Uniform outcome of one extraction call.

    A successful result always carries an extraction; a failed one never
    does and always explains itself in ``error``.
    """

    success: bool
    provider: str
    document_type: DocumentType
    extraction: DocumentExtraction | None = None
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    weighted_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    processing_time_ms: float = 0.0
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_outcome(self) -> "ExtractionResult":
        if self.success and self.extraction is None:
            raise ValueError("successful result requires an extraction")
        if not self.success and (self.extraction is not None or not self.error):
            raise ValueError("failed result requires an error and no extraction")
        return self

    @classmethod
    def failure(
        cls,
        provider: str,
        document_type: DocumentType,
        error: str,
        processing_time_ms: float = 0.0,
    ) -> "ExtractionResult":
        """Build a failed result."""
        return cls(
            success=False,
            provider=provider,
            document_type=document_type,
            error=error,
            processing_time_ms=processing_time_ms,
        )


class OCRConfig(BaseModel):
    """Per-call provider selection settings."""

    model_config = ConfigDict(frozen=True)

    preferred_provider: str = "auto"
    enable_fallback: bool = True
    mock_mode: bool = False
