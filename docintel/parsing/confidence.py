"""Document-level confidence aggregation.

Per-field scores are combined into a weighted mean where identity and
income fields count for more than incidental ones such as addresses or
hours worked.
"""

from collections.abc import Mapping

from docintel.models import BaseExtraction, DocumentType, clamp_confidence

DEFAULT_FIELD_WEIGHTS: dict[str, float] = {
    "ssn": 3.0,
    "name": 2.5,
    "date_of_birth": 2.5,
    "gross_income": 3.0,
    "net_income": 2.5,
    "employer_name": 2.0,
    "account_balance": 2.5,
    "account_number": 2.0,
    "address": 1.5,
    "city": 1.0,
    "state": 1.0,
    "zip": 1.0,
    "default": 1.0,
}

DOCUMENT_FIELD_WEIGHTS: dict[DocumentType, dict[str, float]] = {
    DocumentType.W2: {
        "employer_name": 2.0,
        "employer_ein": 2.0,
        "employer_address": 1.0,
        "employee_name": 2.5,
        "employee_ssn": 3.0,
        "wages_tips_compensation": 3.0,
        "federal_income_tax_withheld": 2.0,
        "social_security_wages": 2.5,
        "social_security_tax_withheld": 1.5,
        "medicare_wages": 2.5,
        "medicare_tax_withheld": 1.5,
        "tax_year": 2.0,
    },
    DocumentType.PAYSTUB: {
        "employer_name": 2.0,
        "employee_name": 2.5,
        "pay_period_start": 2.0,
        "pay_period_end": 2.0,
        "pay_date": 2.0,
        "gross_pay": 3.0,
        "net_pay": 2.5,
        "ytd_gross_pay": 3.0,
        "ytd_net_pay": 2.0,
        "hours_worked": 1.0,
        "hourly_rate": 1.5,
    },
    DocumentType.BANK_STATEMENT: {
        "institution_name": 2.0,
        "account_holder_name": 2.5,
        "account_type": 1.0,
        "account_number_last4": 2.0,
        "statement_period_start": 2.0,
        "statement_period_end": 2.0,
        "beginning_balance": 3.0,
        "ending_balance": 3.0,
        "average_daily_balance": 2.0,
        "total_deposits": 2.5,
        "total_withdrawals": 2.0,
    },
    DocumentType.TAX_RETURN: {
        "taxpayer_name": 2.5,
        "taxpayer_ssn": 3.0,
        "spouse_name": 1.5,
        "spouse_ssn": 2.0,
        "tax_year": 2.0,
        "filing_status": 1.5,
        "total_income": 3.0,
        "adjusted_gross_income": 3.0,
        "taxable_income": 2.5,
        "total_tax": 2.0,
        "refund_amount": 1.5,
        "amount_owed": 1.5,
    },
    DocumentType.ID: {
        "full_name": 3.0,
        "date_of_birth": 2.5,
        "license_number": 3.0,
        "issue_date": 1.5,
        "expiration_date": 2.0,
        "address": 1.5,
        "state": 1.0,
        "id_type": 1.0,
        "sex": 1.0,
        "height": 1.0,
        "eye_color": 1.0,
    },
    DocumentType.OTHER: {},
}

_LEVELS: tuple[tuple[float, str], ...] = (
    (0.90, "high"),
    (0.70, "medium"),
    (0.50, "low"),
)


def calculate_confidence(
    field_confidences: Mapping[str, float],
    weights: Mapping[str, float] | None = None,
    default_weight: float = 1.0,
) -> float:
    """Aggregate per-field confidences into a weighted mean.

    Args:
        field_confidences: Field name to confidence score. Scores are
            clamped into [0, 1] before weighting.
        weights: Field name to importance weight. A ``"default"`` entry,
            when present, overrides ``default_weight`` for unknown names.
        default_weight: Weight for fields missing from ``weights``.

    Returns:
        The weight-normalized mean in [0, 1], or 0.0 for empty input.
    """
    if not field_confidences:
        return 0.0

    weights = weights if weights is not None else DEFAULT_FIELD_WEIGHTS
    fallback = weights.get("default", default_weight)

    total_weight = 0.0
    weighted_sum = 0.0
    for name, confidence in field_confidences.items():
        weight = weights.get(name, fallback)
        weighted_sum += clamp_confidence(confidence) * weight
        total_weight += weight

    if total_weight <= 0:
        return 0.0
    return weighted_sum / total_weight


def mean_confidence(extraction: BaseExtraction) -> float:
    """Unweighted mean confidence over the fields that carry a value.

    Args:
        extraction: Any document extraction variant.

    Returns:
        The mean in [0, 1], or 0.0 when no field was found.
    """
    populated = extraction.populated_fields()
    if not populated:
        return 0.0
    return sum(field.confidence for field in populated.values()) / len(populated)


def get_confidence_level(score: float) -> str:
    """Bucket a 0-1 confidence into ``high``, ``medium``, ``low`` or ``very_low``."""
    for threshold, level in _LEVELS:
        if score >= threshold:
            return level
    return "very_low"


class ConfidenceCalculator:
    """Scores whole extractions using per-document-type weight tables.

    Args:
        weight_overrides: Document type name to field weights, merged over
            the built-in tables.
        default_weight: Weight for fields absent from a table.
    """

    def __init__(
        self,
        weight_overrides: Mapping[str, Mapping[str, float]] | None = None,
        default_weight: float = 1.0,
    ) -> None:
        self.default_weight = default_weight
        self.weights: dict[DocumentType, dict[str, float]] = {
            doc_type: dict(table) for doc_type, table in DOCUMENT_FIELD_WEIGHTS.items()
        }
        for doc_type, overrides in (weight_overrides or {}).items():
            self.weights[DocumentType(doc_type)].update(overrides)

    def weights_for(self, document_type: DocumentType) -> dict[str, float]:
        """Return the weight table used for a document type."""
        return self.weights.get(document_type, {})

    def score(self, extraction: BaseExtraction) -> float:
        """Weighted confidence over the populated fields of an extraction.

        Args:
            extraction: Any document extraction variant.

        Returns:
            The weighted score in [0, 1], or 0.0 when nothing was found.
        """
        document_type = DocumentType(extraction.document_type)
        confidences = {
            name: field.confidence
            for name, field in extraction.populated_fields().items()
        }
        return calculate_confidence(
            confidences,
            self.weights_for(document_type),
            self.default_weight,
        )
