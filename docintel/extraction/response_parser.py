"""Strict, total deserialization of vision-model responses.

The model's reply is untrusted text. It is mapped onto the typed
extraction variants through declarative path tables: any missing, mistyped
or unparseable node becomes an empty field instead of failing the whole
document. Only a reply with no recoverable JSON object is rejected.
"""

import json
import re
from dataclasses import dataclass

from docintel.extraction.field_kinds import FieldKind, normalize_value
from docintel.models import (
    EXTRACTION_MODELS,
    BaseExtraction,
    DocumentType,
    ExtractedField,
    GenericExtraction,
    clamp_confidence,
)
from docintel.utils.logger import get_logger

logger = get_logger(__name__)

# Used when the model returns a value without a usable confidence score.
DEFAULT_UNSCORED_CONFIDENCE = 0.5

FieldPath = tuple[tuple[str, ...], FieldKind]

RESPONSE_SCHEMAS: dict[DocumentType, dict[str, FieldPath]] = {
    DocumentType.W2: {
        "employer_name": (("employer", "name"), FieldKind.TEXT),
        "employer_ein": (("employer", "ein"), FieldKind.EIN),
        "employer_address": (("employer", "address"), FieldKind.ADDRESS),
        "employee_name": (("employee", "name"), FieldKind.NAME),
        "employee_ssn": (("employee", "ssn"), FieldKind.IDENTIFIER),
        "wages_tips_compensation": (("wages", "box1_wages"), FieldKind.MONEY),
        "federal_income_tax_withheld": (
            ("wages", "box2_federalTaxWithheld"),
            FieldKind.MONEY,
        ),
        "social_security_wages": (
            ("wages", "box3_socialSecurityWages"),
            FieldKind.MONEY,
        ),
        "social_security_tax_withheld": (
            ("wages", "box4_socialSecurityTaxWithheld"),
            FieldKind.MONEY,
        ),
        "medicare_wages": (("wages", "box5_medicareWages"), FieldKind.MONEY),
        "medicare_tax_withheld": (
            ("wages", "box6_medicareTaxWithheld"),
            FieldKind.MONEY,
        ),
        "tax_year": (("taxYear",), FieldKind.YEAR),
    },
    DocumentType.PAYSTUB: {
        "employer_name": (("employer", "name"), FieldKind.TEXT),
        "employee_name": (("employee", "name"), FieldKind.NAME),
        "pay_period_start": (("payPeriod", "startDate"), FieldKind.DATE),
        "pay_period_end": (("payPeriod", "endDate"), FieldKind.DATE),
        "pay_date": (("payPeriod", "payDate"), FieldKind.DATE),
        "gross_pay": (("earnings", "grossPay"), FieldKind.MONEY),
        "net_pay": (("earnings", "netPay"), FieldKind.MONEY),
        "hours_worked": (("earnings", "hoursWorked"), FieldKind.NUMBER),
        "hourly_rate": (("earnings", "hourlyRate"), FieldKind.MONEY),
        "ytd_gross_pay": (("ytdAmounts", "grossPay"), FieldKind.MONEY),
        "ytd_net_pay": (("ytdAmounts", "netPay"), FieldKind.MONEY),
    },
    DocumentType.BANK_STATEMENT: {
        "institution_name": (("institution", "name"), FieldKind.TEXT),
        "account_holder_name": (("account", "holderName"), FieldKind.NAME),
        "account_type": (("account", "type"), FieldKind.TEXT),
        "account_number_last4": (("account", "numberLast4"), FieldKind.IDENTIFIER),
        "statement_period_start": (("statementPeriod", "startDate"), FieldKind.DATE),
        "statement_period_end": (("statementPeriod", "endDate"), FieldKind.DATE),
        "beginning_balance": (("balances", "beginning"), FieldKind.MONEY),
        "ending_balance": (("balances", "ending"), FieldKind.MONEY),
        "average_daily_balance": (("balances", "averageDaily"), FieldKind.MONEY),
        "total_deposits": (("totals", "deposits"), FieldKind.MONEY),
        "total_withdrawals": (("totals", "withdrawals"), FieldKind.MONEY),
    },
    DocumentType.TAX_RETURN: {
        "taxpayer_name": (("taxpayer", "name"), FieldKind.NAME),
        "taxpayer_ssn": (("taxpayer", "ssn"), FieldKind.IDENTIFIER),
        "spouse_name": (("spouse", "name"), FieldKind.NAME),
        "spouse_ssn": (("spouse", "ssn"), FieldKind.IDENTIFIER),
        "tax_year": (("taxYear",), FieldKind.YEAR),
        "filing_status": (("filingStatus",), FieldKind.TEXT),
        "total_income": (("income", "totalIncome"), FieldKind.MONEY),
        "adjusted_gross_income": (("income", "adjustedGrossIncome"), FieldKind.MONEY),
        "taxable_income": (("income", "taxableIncome"), FieldKind.MONEY),
        "total_tax": (("tax", "totalTax"), FieldKind.MONEY),
        "refund_amount": (("tax", "refundAmount"), FieldKind.MONEY),
        "amount_owed": (("tax", "amountOwed"), FieldKind.MONEY),
    },
    DocumentType.ID: {
        "full_name": (("personal", "fullName"), FieldKind.NAME),
        "date_of_birth": (("personal", "dateOfBirth"), FieldKind.DATE),
        "address": (("personal", "address"), FieldKind.ADDRESS),
        "license_number": (("license", "number"), FieldKind.IDENTIFIER),
        "issue_date": (("license", "issueDate"), FieldKind.DATE),
        "expiration_date": (("license", "expirationDate"), FieldKind.DATE),
        "state": (("license", "state"), FieldKind.STATE),
        "id_type": (("license", "idType"), FieldKind.ID_TYPE),
        "sex": (("physical", "sex"), FieldKind.TEXT),
        "height": (("physical", "height"), FieldKind.TEXT),
        "eye_color": (("physical", "eyeColor"), FieldKind.TEXT),
    },
}

DETECTION_LABELS: dict[str, DocumentType] = {
    "w2": DocumentType.W2,
    "w-2": DocumentType.W2,
    "paystub": DocumentType.PAYSTUB,
    "pay_stub": DocumentType.PAYSTUB,
    "bank_statement": DocumentType.BANK_STATEMENT,
    "tax_return": DocumentType.TAX_RETURN,
    "1040": DocumentType.TAX_RETURN,
    "id": DocumentType.ID,
    "drivers_license": DocumentType.ID,
    "driver_license": DocumentType.ID,
    "state_id": DocumentType.ID,
    "passport": DocumentType.ID,
    "other": DocumentType.OTHER,
}


@dataclass(frozen=True)
class DocumentTypeDetection:
    """Outcome of a best-effort document classification."""

    document_type: DocumentType
    confidence: float
    reasoning: str | None = None


UNDETECTED = DocumentTypeDetection(DocumentType.OTHER, 0.0)


def try_parse_json(raw: str) -> dict | None:
    """Extract a JSON object from model output.

    Handles direct JSON, markdown fences, ``<think>`` blocks and prose
    around the object.

    Args:
        raw: The model's text reply.

    Returns:
        The first JSON object found, or None.
    """
    if not raw:
        return None

    cleaned = re.sub(r"<think>.*?</think>", "", raw, flags=re.DOTALL).strip()
    candidates = [cleaned]
    fence = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", cleaned, re.DOTALL)
    if fence:
        candidates.append(fence.group(1).strip())

    for candidate in candidates:
        try:
            result = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    decoder = json.JSONDecoder()
    index = cleaned.find("{")
    while index != -1:
        try:
            result, _ = decoder.raw_decode(cleaned, index)
        except json.JSONDecodeError:
            result = None
        if isinstance(result, dict):
            return result
        index = cleaned.find("{", index + 1)

    logger.warning("Could not parse JSON from model response (%d chars)", len(cleaned))
    return None


def model_confidence(raw: object) -> float | None:
    """Convert a 0-100 model score to the 0-1 scale.

    Args:
        raw: The ``confidence`` node from the response.

    Returns:
        The clamped score, or None when the node is missing or not numeric.
    """
    if isinstance(raw, str):
        try:
            raw = float(raw.strip().rstrip("%"))
        except ValueError:
            return None
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        return None
    return clamp_confidence(raw / 100.0)


def read_field(node: object, kind: FieldKind) -> ExtractedField:
    """Build an ExtractedField from one response node.

    Args:
        node: Either a ``{value, confidence, rawText}`` envelope or a bare
            scalar value.
        kind: How to normalize the value.

    Returns:
        The normalized field; empty when the node is missing or unusable.
    """
    if isinstance(node, dict):
        raw_value = node.get("value")
        confidence = model_confidence(node.get("confidence"))
        raw_text = node.get("rawText")
    else:
        raw_value, confidence, raw_text = node, None, None

    if raw_value is None or isinstance(raw_value, dict | list):
        return ExtractedField()

    value = normalize_value(kind, raw_value)
    if value is None:
        return ExtractedField()

    if kind is FieldKind.IDENTIFIER:
        raw_text = value
    elif not isinstance(raw_text, str) or not raw_text.strip():
        raw_text = str(raw_value)

    return ExtractedField(
        value=value,
        confidence=DEFAULT_UNSCORED_CONFIDENCE if confidence is None else confidence,
        raw_text=raw_text.strip(),
    )


def _walk(data: dict, path: tuple[str, ...]) -> object:
    node: object = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _notes(node: object) -> list[str]:
    if isinstance(node, str):
        node = [node]
    if not isinstance(node, list):
        return []
    return [str(note).strip() for note in node if isinstance(note, str) and note.strip()]


def _parse_generic(data: dict, notes: list[str]) -> GenericExtraction:
    pairs = data.get("keyValuePairs")
    if isinstance(pairs, dict):
        pairs = [{"key": key, "value": value} for key, value in pairs.items()]
    if not isinstance(pairs, list):
        pairs = []

    detected: dict[str, ExtractedField] = {}
    for pair in pairs:
        if not isinstance(pair, dict) or not isinstance(pair.get("key"), str):
            continue
        key = pair["key"].strip() or "field"
        field = read_field(pair.get("value"), FieldKind.TEXT)
        if not field.is_set:
            continue
        unique_key = key
        suffix = 2
        while unique_key in detected:
            unique_key = f"{key}_{suffix}"
            suffix += 1
        detected[unique_key] = field

    raw_text = data.get("rawText")
    detected_type = data.get("documentType")
    return GenericExtraction(
        raw_text=raw_text if isinstance(raw_text, str) else "",
        detected_type=detected_type if isinstance(detected_type, str) else None,
        detected_fields=detected,
        notes=notes,
    )


def parse_extraction_response(
    raw: str, document_type: DocumentType
) -> BaseExtraction | None:
    """Deserialize a model reply into the variant for ``document_type``.

    Args:
        raw: The model's text reply.
        document_type: The type the extraction prompt asked for.

    Returns:
        The typed extraction, or None if the reply holds no JSON object.
    """
    data = try_parse_json(raw)
    if data is None:
        return None

    notes = _notes(data.get("extractionNotes"))
    schema = RESPONSE_SCHEMAS.get(document_type)
    if schema is None:
        return _parse_generic(data, notes)

    values = {
        name: read_field(_walk(data, path), kind)
        for name, (path, kind) in schema.items()
    }
    return EXTRACTION_MODELS[document_type](notes=notes, **values)


def parse_detection_response(raw: str) -> DocumentTypeDetection:
    """Map a classification reply onto a supported document type.

    Args:
        raw: The model's text reply to the detection prompt.

    Returns:
        The detected type, or ``other`` with zero confidence when the reply
        is unusable or names an unsupported type.
    """
    data = try_parse_json(raw)
    if data is None:
        return UNDETECTED

    label = data.get("documentType")
    if not isinstance(label, str):
        return UNDETECTED
    document_type = DETECTION_LABELS.get(label.strip().lower().replace(" ", "_"))
    if document_type is None:
        logger.info("Unrecognized document type label from model")
        return UNDETECTED

    reasoning = data.get("reasoning")
    return DocumentTypeDetection(
        document_type=document_type,
        confidence=model_confidence(data.get("confidence")) or 0.0,
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )
