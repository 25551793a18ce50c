"""Rule-based field extraction from OCR text.

Runs the per-document pattern tables against recognized text, routes each
match through the field parsers and scores it with the local confidence
budget. Scores from this path are capped below what the vision provider can
report, reflecting lower trust in regex matches over raw OCR output.
"""

from docintel.extraction.field_kinds import (
    NUMERIC_KINDS,
    FieldKind,
    classify_id_type,
    normalize_value,
)
from docintel.extraction.patterns import (
    CURRENCY_SCAN,
    DATE_SCAN,
    DOCUMENT_PATTERNS,
    LICENSE_LAST4_PATTERNS,
    MAX_GENERIC_AMOUNTS,
    MAX_GENERIC_DATES,
    SPOUSE_SSN_LAST4_PATTERNS,
    SSN_LAST4_PATTERNS,
    FieldPattern,
    FieldSpec,
)
from docintel.models import (
    EXTRACTION_MODELS,
    BaseExtraction,
    DocumentType,
    ExtractedField,
    GenericExtraction,
)
from docintel.parsing.field_parsers import (
    mask_last_four,
    parse_address,
    parse_currency,
    parse_date,
)
from docintel.utils.logger import get_logger

logger = get_logger(__name__)

BASE_CONFIDENCE = 0.60
ADDRESS_BASE_CONFIDENCE = 0.55
GENERIC_BASE_CONFIDENCE = 0.50
MAX_CONFIDENCE = 0.75

HIGH_QUALITY_OCR = 0.80
HIGH_QUALITY_BONUS = 0.10
LOW_QUALITY_OCR = 0.50
LOW_QUALITY_PENALTY = 0.20
NUMERIC_MATCH_BONUS = 0.15
TEXT_MATCH_BONUS = 0.05


def field_confidence(
    value: object,
    ocr_confidence: float,
    base: float = BASE_CONFIDENCE,
) -> float:
    """Score a value found by pattern matching.

    Args:
        value: The normalized value, or None when nothing matched.
        ocr_confidence: Engine confidence for the page text, 0-1.
        base: Starting confidence before adjustments.

    Returns:
        A confidence in [0, MAX_CONFIDENCE]; 0.0 for a missing value.
    """
    if value is None:
        return 0.0

    confidence = base
    if ocr_confidence > HIGH_QUALITY_OCR:
        confidence += HIGH_QUALITY_BONUS
    elif ocr_confidence < LOW_QUALITY_OCR:
        confidence -= LOW_QUALITY_PENALTY

    if isinstance(value, int | float):
        confidence += NUMERIC_MATCH_BONUS
    else:
        confidence += TEXT_MATCH_BONUS

    return round(max(0.0, min(confidence, MAX_CONFIDENCE)), 4)


class RuleExtractor:
    """Pattern-driven extractor for every supported document type.

    Args:
        patterns: Document type to field specs. Defaults to the built-in
            tables.
    """

    def __init__(
        self, patterns: dict[DocumentType, dict[str, FieldSpec]] | None = None
    ) -> None:
        self.patterns = patterns if patterns is not None else DOCUMENT_PATTERNS

    def extract(
        self,
        text: str,
        document_type: DocumentType,
        ocr_confidence: float,
    ) -> BaseExtraction:
        """Extract a typed document from recognized text.

        Args:
            text: Full OCR text.
            document_type: Which field schema to fill.
            ocr_confidence: Engine confidence for the text, 0-1.

        Returns:
            The extraction variant for ``document_type``; unmatched fields
            are left empty.
        """
        specs = self.patterns.get(document_type)
        if specs is None:
            return self.extract_generic(text, ocr_confidence)

        values: dict[str, ExtractedField] = {
            name: self._extract_field(text, spec, ocr_confidence)
            for name, spec in specs.items()
        }
        values.update(self._extract_special_fields(text, document_type, ocr_confidence))
        if document_type is DocumentType.ID:
            self._fill_state_from_address(values)

        extraction = EXTRACTION_MODELS[document_type](**values)
        logger.info(
            "Rule extraction found %d of %d %s fields",
            len(extraction.populated_fields()),
            len(extraction.extracted_fields()),
            document_type.value,
        )
        return extraction

    def extract_generic(self, text: str, ocr_confidence: float) -> GenericExtraction:
        """Scan unstructured text for amounts and dates.

        Output is bounded to a handful of matches of each kind.

        Args:
            text: Full OCR text.
            ocr_confidence: Engine confidence for the text, 0-1.

        Returns:
            A generic extraction holding the text and any detected values.
        """
        detected: dict[str, ExtractedField] = {}

        amounts = 0
        for match in CURRENCY_SCAN.finditer(text):
            if amounts >= MAX_GENERIC_AMOUNTS:
                break
            value = parse_currency(match.group())
            if value is None:
                continue
            amounts += 1
            detected[f"amount_{amounts}"] = self._make_field(
                value, match.group(), ocr_confidence, GENERIC_BASE_CONFIDENCE
            )

        dates = 0
        for match in DATE_SCAN.finditer(text):
            if dates >= MAX_GENERIC_DATES:
                break
            value = parse_date(match.group())
            if value is None:
                continue
            dates += 1
            detected[f"date_{dates}"] = self._make_field(
                value, match.group(), ocr_confidence, GENERIC_BASE_CONFIDENCE
            )

        logger.info("Generic extraction found %d values", len(detected))
        return GenericExtraction(raw_text=text, detected_fields=detected)

    def _make_field(
        self,
        value: str | int | float | None,
        raw: str,
        ocr_confidence: float,
        base: float = BASE_CONFIDENCE,
    ) -> ExtractedField:
        return ExtractedField(
            value=value,
            confidence=field_confidence(value, ocr_confidence, base),
            raw_text=raw.strip(),
        )

    def _extract_field(
        self, text: str, spec: FieldSpec, ocr_confidence: float
    ) -> ExtractedField:
        """Try each pattern in order and keep the first parseable match."""
        base = (
            ADDRESS_BASE_CONFIDENCE
            if spec.kind is FieldKind.ADDRESS
            else BASE_CONFIDENCE
        )
        for pattern in spec.patterns:
            match = pattern.regex.search(text)
            if not match:
                continue
            raw = match.group(pattern.group)
            value = normalize_value(spec.kind, raw)
            if value is None:
                logger.debug("Pattern matched unparseable %s value", spec.kind.value)
                continue
            if spec.kind in NUMERIC_KINDS and not isinstance(value, int | float):
                continue
            return self._make_field(value, raw, ocr_confidence, base)
        return ExtractedField()

    def _last_four(
        self,
        text: str,
        patterns: tuple[FieldPattern, ...],
        ocr_confidence: float,
    ) -> ExtractedField:
        """Find an identifier and keep only its masked last four digits."""
        for pattern in patterns:
            match = pattern.regex.search(text)
            if match:
                masked = mask_last_four(match.group(pattern.group))
                if masked:
                    return ExtractedField(
                        value=masked,
                        confidence=field_confidence(masked, ocr_confidence),
                        raw_text=masked,
                    )
        return ExtractedField()

    def _extract_special_fields(
        self,
        text: str,
        document_type: DocumentType,
        ocr_confidence: float,
    ) -> dict[str, ExtractedField]:
        """Fields that need a dedicated matcher rather than a pattern table."""
        if document_type is DocumentType.W2:
            return {"employee_ssn": self._last_four(text, SSN_LAST4_PATTERNS, ocr_confidence)}
        if document_type is DocumentType.TAX_RETURN:
            return {
                "taxpayer_ssn": self._last_four(text, SSN_LAST4_PATTERNS, ocr_confidence),
                "spouse_ssn": self._last_four(
                    text, SPOUSE_SSN_LAST4_PATTERNS, ocr_confidence
                ),
            }
        if document_type is DocumentType.ID:
            id_type = classify_id_type(text)
            return {
                "license_number": self._last_four(
                    text, LICENSE_LAST4_PATTERNS, ocr_confidence
                ),
                "id_type": ExtractedField(
                    value=id_type,
                    confidence=field_confidence(id_type, ocr_confidence),
                ),
            }
        return {}

    def _fill_state_from_address(self, values: dict[str, ExtractedField]) -> None:
        address = values.get("address")
        if values["state"].is_set or address is None or not address.is_set:
            return
        parsed = parse_address(address.value)
        if parsed and parsed.state:
            values["state"] = ExtractedField(
                value=parsed.state,
                confidence=address.confidence,
                raw_text=parsed.state,
            )
