"""Tests for the shared result models."""

import pytest
from pydantic import ValidationError

from docintel.models import (
    EXTRACTION_MODELS,
    BankStatementExtraction,
    DocumentType,
    ExtractedField,
    ExtractionResult,
    GenericExtraction,
    TaxReturnExtraction,
    W2Extraction,
    clamp_confidence,
)


class TestExtractedField:
    """Tests for the value/confidence invariant."""

    def test_defaults_are_unset(self) -> None:
        field = ExtractedField()
        assert field.value is None
        assert field.confidence == 0.0
        assert not field.is_set

    def test_confidence_is_clamped(self) -> None:
        assert ExtractedField(value="a", confidence=1.4).confidence == 1.0
        assert ExtractedField(value="a", confidence=-2).value is None

    def test_empty_value_forces_zero_confidence(self) -> None:
        field = ExtractedField(value="   ", confidence=0.9)
        assert field.value is None
        assert field.confidence == 0.0

    def test_zero_confidence_unsets_value(self) -> None:
        field = ExtractedField(value=100.0, confidence=0.0, raw_text="100")
        assert field.value is None
        assert not field.is_set

    def test_frozen(self) -> None:
        field = ExtractedField(value="a", confidence=0.5)
        with pytest.raises(ValidationError):
            field.value = "b"

    def test_clamp_rejects_non_numbers(self) -> None:
        assert clamp_confidence("0.5") == 0.0
        assert clamp_confidence(True) == 0.0
        assert clamp_confidence(float("nan")) == 0.0


class TestIdentifierMasking:
    """Tests for the last-four invariant on sensitive fields."""

    def test_w2_ssn_is_masked(self) -> None:
        w2 = W2Extraction(
            employee_ssn=ExtractedField(
                value="123-45-6789", confidence=0.9, raw_text="123-45-6789"
            )
        )
        assert w2.employee_ssn.value == "****6789"
        assert w2.employee_ssn.raw_text == "****6789"
        assert w2.employee_ssn.confidence == 0.9

    def test_tax_return_masks_both_ssns(self) -> None:
        ret = TaxReturnExtraction(
            taxpayer_ssn=ExtractedField(value="111223333", confidence=0.8),
            spouse_ssn=ExtractedField(value="444-55-6666", confidence=0.8),
        )
        assert ret.taxpayer_ssn.value == "****3333"
        assert ret.spouse_ssn.value == "****6666"

    def test_account_number_is_masked(self) -> None:
        statement = BankStatementExtraction(
            account_number_last4=ExtractedField(value="000123456789", confidence=0.7)
        )
        assert statement.account_number_last4.value == "****6789"

    def test_generic_sensitive_keys_and_raw_text(self) -> None:
        generic = GenericExtraction(
            raw_text="Account 000123456789, SSN 123-45-6789",
            detected_fields={
                "Account Number": ExtractedField(value="000123456789", confidence=0.7),
                "Total": ExtractedField(value="45.00", confidence=0.7),
            },
        )
        assert "000123456789" not in generic.raw_text
        assert "123-45-6789" not in generic.raw_text
        assert generic.detected_fields["Account Number"].value == "****6789"
        assert generic.detected_fields["Total"].value == "45.00"

    def test_raw_text_is_redacted_on_every_field(self) -> None:
        field = ExtractedField(
            value="Jane Doe", confidence=0.8, raw_text="Jane Doe acct 000123456789"
        )
        assert field.raw_text == "Jane Doe acct ****6789"

    def test_generic_values_redacted_under_neutral_keys(self) -> None:
        generic = GenericExtraction(
            detected_fields={
                "Reference": ExtractedField(value="SSN 123-45-6789", confidence=0.6),
            }
        )
        assert generic.detected_fields["Reference"].value == "SSN ****6789"
        assert generic.detected_fields["Reference"].confidence == 0.6


class TestExtractionVariants:
    """Tests for the tagged extraction union."""

    def test_every_type_has_a_model(self) -> None:
        assert set(EXTRACTION_MODELS) == set(DocumentType)
        for doc_type, model in EXTRACTION_MODELS.items():
            assert model().document_type == doc_type.value

    def test_populated_fields(self) -> None:
        w2 = W2Extraction(employer_name=ExtractedField(value="Acme", confidence=0.9))
        assert list(w2.populated_fields()) == ["employer_name"]
        assert "tax_year" in w2.extracted_fields()
        assert "notes" not in w2.extracted_fields()

    def test_result_round_trips_through_json(self) -> None:
        result = ExtractionResult(
            success=True,
            provider="mock",
            document_type=DocumentType.W2,
            extraction=W2Extraction(tax_year=ExtractedField(value=2023, confidence=0.9)),
            overall_confidence=0.9,
        )
        restored = ExtractionResult.model_validate_json(result.model_dump_json())
        assert isinstance(restored.extraction, W2Extraction)
        assert restored.extraction.tax_year.value == 2023


class TestExtractionResult:
    """Tests for the success/error invariant."""

    def test_failure_factory(self) -> None:
        result = ExtractionResult.failure("none", DocumentType.OTHER, "boom", 1.5)
        assert not result.success
        assert result.extraction is None
        assert result.error == "boom"

    def test_success_requires_extraction(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionResult(success=True, provider="mock", document_type=DocumentType.W2)

    def test_failure_requires_error(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionResult(success=False, provider="mock", document_type=DocumentType.W2)

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionResult(
                success=True,
                provider="mock",
                document_type=DocumentType.W2,
                extraction=W2Extraction(),
                overall_confidence=1.5,
            )
