"""Normalization functions for values read off financial and identity documents.

Every parser here is pure and total: it accepts whatever a provider hands
it and returns ``None`` for anything it cannot interpret. A single bad
field therefore degrades to an empty value instead of aborting the whole
extraction.

Identifier helpers (SSN, license and account numbers) only ever return the
last four digits behind a fixed mask prefix.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime

from dateutil import parser as date_parser

MASK_PREFIX = "****"
MIN_YEAR = 1900
MAX_YEAR = 2100

# Two-digit years below this pivot belong to the 2000s.
TWO_DIGIT_YEAR_PIVOT = 50

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹]")
_CURRENCY_CODES = re.compile(r"USD|EUR|GBP|CAD|AUD", re.IGNORECASE)
_UNSIGNED_DECIMAL = re.compile(r"\d+(?:\.\d+)?")
_SIGNED_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d+)?|\.\d+)")

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_US_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
_MONTH_DAY_YEAR = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?,?\s+(\d{4})$")

MONTH_NAMES = {
    "january": 1,
    "jan": 1,
    "february": 2,
    "feb": 2,
    "march": 3,
    "mar": 3,
    "april": 4,
    "apr": 4,
    "may": 5,
    "june": 6,
    "jun": 6,
    "july": 7,
    "jul": 7,
    "august": 8,
    "aug": 8,
    "september": 9,
    "sept": 9,
    "sep": 9,
    "october": 10,
    "oct": 10,
    "november": 11,
    "nov": 11,
    "december": 12,
    "dec": 12,
}

_SSN_SHAPED = re.compile(r"\b\d{3}[- ]\d{2}[- ]\d{4}\b")
_LONG_DIGIT_RUN = re.compile(r"\b\d{9,}\b")
_INVALID_SSNS = {"000000000", "111111111", "123456789"}

_PERCENT_MARKER = re.compile(r"%|percent", re.IGNORECASE)

NAME_SUFFIXES = {
    "jr": "Jr",
    "sr": "Sr",
    "ii": "II",
    "iii": "III",
    "iv": "IV",
    "v": "V",
    "esq": "Esq",
    "phd": "PhD",
    "md": "MD",
}

STATE_ABBREVIATIONS = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "district of columbia": "DC",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
}
STATE_NAMES = {code: name.title() for name, code in STATE_ABBREVIATIONS.items()}

_ZIP_SUFFIX = re.compile(r"\b(\d{5})(?:-(\d{4}))?\s*$")
_UNIT_KEYWORDS = r"(?:apt|apartment|unit|suite|ste|bldg|building)"
_UNIT_SEGMENT = re.compile(rf"^(?:{_UNIT_KEYWORDS}\b|#)", re.IGNORECASE)
_EMBEDDED_UNIT = re.compile(
    rf"\s+(?:{_UNIT_KEYWORDS}(?:\.\s*|\s+|(?=\d))|#\s*)[\w-]+\s*$",
    re.IGNORECASE,
)
_YEAR = re.compile(r"\b(19\d{2}|20\d{2}|2100)\b")


# ---------------------------------------------------------------------------
# Currency and numbers
# ---------------------------------------------------------------------------


def parse_currency(value: object) -> float | None:
    """Parse a monetary amount into a signed float.

    Strips currency symbols, ISO codes, whitespace and thousands
    separators. Accounting-style parentheses and a leading minus sign
    both mark a negative amount.

    Args:
        value: Raw amount such as ``"$1,234.56"`` or ``"(1,234.56)"``.
            Plain numbers are accepted as-is.

    Returns:
        The amount, or None if anything non-numeric remains after stripping.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    cleaned = value.strip()
    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]

    cleaned = _CURRENCY_SYMBOLS.sub("", cleaned)
    cleaned = _CURRENCY_CODES.sub("", cleaned)
    cleaned = re.sub(r"[\s,]", "", cleaned)

    if cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[1:]

    if not _UNSIGNED_DECIMAL.fullmatch(cleaned):
        return None

    amount = float(cleaned)
    if not math.isfinite(amount):
        return None
    return -amount if negative else amount


def parse_percentage(value: object) -> float | None:
    """Parse a percentage into a number on the 0-100 scale.

    A bare value strictly between 0 and 1 with no ``%`` or ``percent``
    marker is read as a fraction and rescaled by 100, so ``"0.5"`` yields
    ``50.0``. Genuinely small percentages written without a marker are
    misread by this rule; write ``"0.5%"`` to keep them literal.

    Args:
        value: Raw percentage such as ``"4.5%"``, ``"12 percent"`` or ``"0.045"``.

    Returns:
        The percentage, or None if the value is not numeric.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float) and not math.isfinite(value):
        return None

    text = str(value).strip()
    has_marker = bool(_PERCENT_MARKER.search(text))
    cleaned = _PERCENT_MARKER.sub("", text).strip()
    if not _SIGNED_NUMBER.fullmatch(cleaned):
        return None

    number = float(cleaned)
    if not has_marker and 0 < number < 1:
        number *= 100
    return round(number, 10)


def parse_year(value: object) -> int | None:
    """Extract a four-digit year between 1900 and 2100.

    Args:
        value: An integer year or text containing one.

    Returns:
        The year, or None if no plausible year is present.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        if not math.isfinite(value) or value != int(value):
            return None
        year = int(value)
        return year if MIN_YEAR <= year <= MAX_YEAR else None
    if not isinstance(value, str):
        return None

    match = _YEAR.search(value)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _format_iso_date(year: int, month: int, day: int) -> str | None:
    """Build a canonical date, rejecting out-of-range and rolled-over values."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        year += 2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900
    return year


def parse_date(value: object) -> str | None:
    """Parse a date string into canonical ``YYYY-MM-DD`` form.

    Formats are tried in order: ISO, numeric US (``M/D/YY`` or
    ``M-D-YYYY``), ``Month D, YYYY``, ``D Month YYYY`` and finally a
    general-purpose parse. Once one of the explicit formats matches, its
    verdict is final: ``"2024-02-30"`` is rejected rather than handed to
    the fallback.

    Args:
        value: Raw date text.

    Returns:
        The ISO date, or None if the input is not a valid calendar date
        between 1900 and 2100.
    """
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None

    match = _ISO_DATE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _format_iso_date(year, month, day)

    match = _US_DATE.match(cleaned)
    if match:
        month, day, year = match.groups()
        return _format_iso_date(_expand_year(year), int(month), int(day))

    match = _MONTH_DAY_YEAR.match(cleaned)
    if match:
        month = MONTH_NAMES.get(match.group(1).lower())
        if month:
            return _format_iso_date(int(match.group(3)), month, int(match.group(2)))

    match = _DAY_MONTH_YEAR.match(cleaned)
    if match:
        month = MONTH_NAMES.get(match.group(2).lower())
        if month:
            return _format_iso_date(int(match.group(3)), month, int(match.group(1)))

    try:
        # A missing year falls back to year 1 and is rejected by the range check.
        parsed = date_parser.parse(cleaned, default=datetime(1, 1, 1))
    except (ValueError, OverflowError):
        return None
    return _format_iso_date(parsed.year, parsed.month, parsed.day)


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def _digits_only(value: object) -> str | None:
    if isinstance(value, bool) or not isinstance(value, str | int):
        return None
    return re.sub(r"\D", "", str(value))


def mask_last_four(value: object) -> str | None:
    """Mask an identifier down to its last four digits.

    Args:
        value: SSN, license, account or similar number in any formatting.

    Returns:
        ``"****"`` followed by the last four digits, or None when fewer
        than four digits are present.
    """
    digits = _digits_only(value)
    if not digits or len(digits) < 4:
        return None
    return MASK_PREFIX + digits[-4:]


def parse_account_number(value: object) -> str | None:
    """Mask a bank account number to its last four digits."""
    return mask_last_four(value)


def account_last_four(value: object) -> str | None:
    """Return only the last four digits of an account number, unmasked."""
    digits = _digits_only(value)
    if not digits or len(digits) < 4:
        return None
    return digits[-4:]


def is_valid_ssn_format(value: object) -> bool:
    """Check that a value has the shape of an issuable SSN.

    Args:
        value: Candidate SSN with or without separators.

    Returns:
        True for nine digits outside the never-issued ranges.
    """
    digits = _digits_only(value)
    if not digits or len(digits) != 9:
        return False
    if digits in _INVALID_SSNS:
        return False
    area = digits[:3]
    return area not in ("000", "666") and not area.startswith("9")


def parse_ein(value: object) -> str | None:
    """Format an employer identification number as ``XX-XXXXXXX``."""
    digits = _digits_only(value)
    if not digits or len(digits) != 9:
        return None
    return f"{digits[:2]}-{digits[2:]}"


def redact_identifiers(text: str) -> str:
    """Mask SSN-shaped substrings and long digit runs inside free text.

    Args:
        text: Arbitrary text such as OCR output or a log message.

    Returns:
        The text with each identifier replaced by its masked last four.
    """
    text = _SSN_SHAPED.sub(lambda m: mask_last_four(m.group()) or MASK_PREFIX, text)
    return _LONG_DIGIT_RUN.sub(lambda m: MASK_PREFIX + m.group()[-4:], text)


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedName:
    """Components of a person's name."""

    first: str | None = None
    middle: str | None = None
    last: str | None = None
    suffix: str | None = None
    full: str | None = None


def _title_word(word: str) -> str:
    pieces = re.split(r"(['-])", word.lower())
    titled = []
    for piece in pieces:
        if piece in ("'", "-") or not piece:
            titled.append(piece)
        elif piece.startswith("mc") and len(piece) > 2:
            titled.append("Mc" + piece[2].upper() + piece[3:])
        else:
            titled.append(piece[0].upper() + piece[1:])
    return "".join(titled)


def _title_case(text: str) -> str:
    return " ".join(_title_word(word) for word in text.split())


def _canonical_suffix(token: str) -> str | None:
    canonical = NAME_SUFFIXES.get(token.lower().replace(".", ""))
    if canonical is None:
        return None
    return canonical + "." if token.endswith(".") else canonical


def _split_suffix(tokens: list[str]) -> tuple[list[str], str | None]:
    """Detach a trailing suffix token, keeping at least one name token."""
    if len(tokens) > 1:
        suffix = _canonical_suffix(tokens[-1])
        if suffix:
            return tokens[:-1], suffix
    return tokens, None


def parse_name(value: object) -> ParsedName | None:
    """Split a person's name into title-cased components.

    Handles both ``"First Middle Last"`` and the inverted
    ``"LAST, FIRST MIDDLE"`` form used on many forms, and recognizes
    generational and professional suffixes.

    Args:
        value: Raw name text.

    Returns:
        The parsed name, or None for blank input.
    """
    if not isinstance(value, str):
        return None
    cleaned = " ".join(value.split())
    if not cleaned:
        return None

    if "," in cleaned:
        surname, _, given = cleaned.partition(",")
        surname_tokens, suffix = _split_suffix(surname.split())
        given_tokens = given.replace(",", " ").split()
        if suffix is None:
            given_tokens, suffix = _split_suffix(given_tokens)
        tokens = given_tokens + surname_tokens
    else:
        tokens, suffix = _split_suffix(cleaned.split())

    if not tokens:
        return None

    words = [_title_case(token) for token in tokens]
    first = words[0]
    last = words[-1] if len(words) > 1 else None
    middle = " ".join(words[1:-1]) or None
    full = " ".join(part for part in (first, middle, last, suffix) if part)
    return ParsedName(first=first, middle=middle, last=last, suffix=suffix, full=full)


def normalize_name(value: object) -> str | None:
    """Return the display form of a person's name, or None."""
    parsed = parse_name(value)
    return parsed.full if parsed else None


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedAddress:
    """Components of a US postal address."""

    street: str | None = None
    unit: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    full: str | None = None


def normalize_state(value: object) -> str | None:
    """Map a state name or abbreviation to its two-letter code.

    Args:
        value: ``"CA"``, ``"ca"``, ``"California"`` or ``"D.C."``.

    Returns:
        The USPS code, or None when the value is not a US state or DC.
    """
    if not isinstance(value, str):
        return None
    cleaned = " ".join(value.replace(".", "").split())
    if len(cleaned) == 2 and cleaned.upper() in STATE_NAMES:
        return cleaned.upper()
    return STATE_ABBREVIATIONS.get(cleaned.lower())


def _strip_state(remainder: str) -> tuple[str, str | None]:
    """Remove a trailing state name or code from an address remainder."""
    for word_count in (3, 2, 1):
        match = re.search(
            rf"(?:^|[\s,])((?:[A-Za-z]+\s+){{{word_count - 1}}}[A-Za-z]+)$",
            remainder,
        )
        if not match:
            continue
        state = normalize_state(match.group(1))
        if state:
            return remainder[: match.start(1)].rstrip(" ,"), state
    return remainder, None


def parse_address(value: object) -> ParsedAddress | None:
    """Split a single-line US address into its components.

    The ZIP code and state are peeled off the end first; the rest is
    split on commas into street, optional unit and city. A unit written
    inside the street segment (``"123 Main St Apt 4"``) is detected too.

    Args:
        value: Raw address text; line breaks are treated as commas.

    Returns:
        The parsed address, or None for blank input.
    """
    if not isinstance(value, str):
        return None
    remainder = re.sub(r"\s*[\r\n]+\s*", ", ", value.strip())
    remainder = " ".join(remainder.split()).strip(" ,")
    if not remainder:
        return None

    zip_code = None
    match = _ZIP_SUFFIX.search(remainder)
    if match:
        zip_code = match.group(1)
        if match.group(2):
            zip_code += f"-{match.group(2)}"
        remainder = remainder[: match.start()].rstrip(" ,")

    state = None
    # Without a ZIP or a comma, a trailing "Ct" or "Washington" is more
    # likely part of the street than a state.
    if zip_code or "," in remainder:
        remainder, state = _strip_state(remainder)

    parts = [part.strip() for part in remainder.split(",") if part.strip()]
    street = unit = city = None
    if len(parts) >= 2 and _UNIT_SEGMENT.match(parts[-1]):
        unit = parts[-1]
        street = ", ".join(parts[:-1])
    elif len(parts) >= 2:
        city = _title_case(parts[-1])
        if len(parts) >= 3 and _UNIT_SEGMENT.match(parts[-2]):
            unit = parts[-2]
            street = ", ".join(parts[:-2])
        else:
            street = ", ".join(parts[:-1])
    elif parts:
        street = parts[0]

    if street and unit is None:
        match = _EMBEDDED_UNIT.search(street)
        if match and match.start() > 0:
            unit = match.group().strip()
            street = street[: match.start()].strip()

    if not any((street, unit, city, state, zip_code)):
        return None

    head = ", ".join(part for part in (street, unit, city) if part)
    tail = " ".join(part for part in (state, zip_code) if part)
    full = ", ".join(part for part in (head, tail) if part)
    return ParsedAddress(
        street=street,
        unit=unit,
        city=city,
        state=state,
        zip_code=zip_code,
        full=full,
    )


def normalize_address(value: object) -> str | None:
    """Return the display form of an address, or None."""
    parsed = parse_address(value)
    return parsed.full if parsed else None
