"""Value kinds and the parser each one routes through.

Both providers describe their fields with a ``FieldKind`` so that a wage
figure read by OCR and one returned by the vision model end up in the same
canonical form.
"""

import re
from enum import StrEnum

from docintel.parsing.field_parsers import (
    mask_last_four,
    normalize_address,
    normalize_name,
    normalize_state,
    parse_currency,
    parse_date,
    parse_ein,
    parse_year,
)


class FieldKind(StrEnum):
    """How a raw field value is normalized."""

    TEXT = "text"
    MONEY = "money"
    NUMBER = "number"
    DATE = "date"
    YEAR = "year"
    NAME = "name"
    ADDRESS = "address"
    STATE = "state"
    EIN = "ein"
    IDENTIFIER = "identifier"
    ID_TYPE = "id_type"


NUMERIC_KINDS = frozenset({FieldKind.MONEY, FieldKind.NUMBER, FieldKind.YEAR})

_ID_TYPE_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"passport", re.IGNORECASE), "passport"),
    (
        re.compile(r"driver|driving|\bDL\b|operator", re.IGNORECASE),
        "driver_license",
    ),
    (
        re.compile(r"state[\s_]*id|identification\s+card|\bid\s+card\b", re.IGNORECASE),
        "state_id",
    ),
)


def classify_id_type(text: str) -> str | None:
    """Classify identity document text as a license, state ID or passport.

    Args:
        text: Document text or a model-reported label.

    Returns:
        ``driver_license``, ``state_id``, ``passport`` or None.
    """
    for pattern, id_type in _ID_TYPE_KEYWORDS:
        if pattern.search(text):
            return id_type
    return None


def _clean_text(value: object) -> str | None:
    if value is None or isinstance(value, bool | dict | list):
        return None
    text = " ".join(str(value).split()).strip(" :;,")
    return text or None


def normalize_value(kind: FieldKind, value: object) -> str | int | float | None:
    """Normalize a raw value according to its kind.

    Args:
        kind: The field's value kind.
        value: Raw value from OCR text or a model response.

    Returns:
        The canonical value, or None when the value cannot be interpreted.
    """
    if kind in (FieldKind.MONEY, FieldKind.NUMBER):
        return parse_currency(value)
    if kind is FieldKind.YEAR:
        return parse_year(value)
    if kind is FieldKind.IDENTIFIER:
        return mask_last_four(value)
    if kind is FieldKind.ADDRESS:
        # Line breaks separate address parts, so they must survive cleaning.
        return normalize_address(value) if isinstance(value, str) else None

    text = _clean_text(value)
    if text is None:
        return None
    if kind is FieldKind.DATE:
        return parse_date(text)
    if kind is FieldKind.NAME:
        return normalize_name(text)
    if kind is FieldKind.STATE:
        return normalize_state(text)
    if kind is FieldKind.EIN:
        return parse_ein(text)
    if kind is FieldKind.ID_TYPE:
        return classify_id_type(text)
    return text
