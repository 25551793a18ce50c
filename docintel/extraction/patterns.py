"""Ordered regular-expression tables for local (OCR text) extraction.

Each document field maps to a value kind and a list of alternative
patterns tried in order; the first match wins. Patterns are compiled
once at import and never modified.
"""

import re
from dataclasses import dataclass

from docintel.extraction.field_kinds import FieldKind
from docintel.models import DocumentType

_FLAGS = re.IGNORECASE | re.MULTILINE

# Label-to-value gap on the same line.
_GAP = r"[^\n]{0,60}?"
# Amounts must look like money: a dollar sign, thousands separators or cents.
_AMOUNT = (
    r"(-?\$[ \t]*\d[\d,]*(?:\.\d{2})?"
    r"|-?\d{1,3}(?:,\d{3})+(?:\.\d{2})?"
    r"|-?\d+\.\d{2})"
)
_DATE = (
    r"(\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"
    r"|\d{4}-\d{1,2}-\d{1,2}"
    r"|[A-Za-z]{3,9}\.?[ \t]+\d{1,2},?[ \t]+\d{4})"
)
_RANGE_SEPARATOR = r"[ \t]*(?:-|–|to|through|thru)[ \t]*"
_LINE_VALUE = r"[ \t]*:[ \t]*([^\n]+?)[ \t]*$"
_YEAR = r"((?:19|20)\d{2})\b"


@dataclass(frozen=True)
class FieldPattern:
    """A compiled pattern and the group holding the value."""

    regex: re.Pattern[str]
    group: int = 1


@dataclass(frozen=True)
class FieldSpec:
    """How to find and normalize one document field."""

    kind: FieldKind
    patterns: tuple[FieldPattern, ...]


def _p(pattern: str, group: int = 1) -> FieldPattern:
    return FieldPattern(re.compile(pattern, _FLAGS), group)


def _money(*labels: str) -> FieldSpec:
    return FieldSpec(
        FieldKind.MONEY, tuple(_p(label + _GAP + _AMOUNT) for label in labels)
    )


def _dated(*labels: str) -> FieldSpec:
    return FieldSpec(
        FieldKind.DATE, tuple(_p(label + r"[^\n]{0,20}?" + _DATE) for label in labels)
    )


def _labelled(kind: FieldKind, *labels: str) -> FieldSpec:
    return FieldSpec(
        kind, tuple(_p(r"^[ \t]*" + label + _LINE_VALUE) for label in labels)
    )


# Identifier matchers capture only the trailing four digits.
SSN_LAST4_PATTERNS: tuple[FieldPattern, ...] = (
    _p(
        r"(?:\bSSN\b|social\s+security\s+(?:number|no\.?|#))[^\n]{0,30}?"
        r"(?:\d{3}|[*xX]{3})[- ]?(?:\d{2}|[*xX]{2})[- ]?(\d{4})\b"
    ),
    _p(r"\b\d{3}-\d{2}-(\d{4})\b"),
    _p(r"(?:\bSSN\b|social\s+security\s+(?:number|no\.?|#))[^\d\n]{0,30}?(\d{4})\b"),
)

SPOUSE_SSN_LAST4_PATTERNS: tuple[FieldPattern, ...] = (
    _p(
        r"spouse['’]?s?\s+(?:ssn|social\s+security\s+(?:number|no\.?))[^\n]{0,30}?"
        r"(?:\d{3}|[*xX]{3})[- ]?(?:\d{2}|[*xX]{2})[- ]?(\d{4})\b"
    ),
)

LICENSE_LAST4_PATTERNS: tuple[FieldPattern, ...] = (
    _p(
        r"(?:\bDLN?\b|\bLIC(?:ENSE)?\s*(?:number|no\.?|#)?|\bID\s*(?:number|no\.?|#)"
        r"|passport\s+(?:number|no\.?))[ \t]*:?[ \t]*[A-Z]{0,2}[\d \t-]*(\d{4})\b"
    ),
)

ACCOUNT_LAST4_PATTERNS: tuple[FieldPattern, ...] = (
    _p(
        r"(?:account|acct)\.?\s*(?:number|num|no\.?|#)[ \t]*:?[ \t]*"
        r"(?:[*xX.•-]+|\d[\d \t-]*)?(\d{4})\b"
    ),
    _p(r"ending\s+(?:in\s+)?[*xX.•]*(\d{4})\b"),
)

CURRENCY_SCAN = re.compile(r"\$\s*[\d,]+(?:\.\d{2})?")
DATE_SCAN = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
MAX_GENERIC_AMOUNTS = 5
MAX_GENERIC_DATES = 3

W2_PATTERNS: dict[str, FieldSpec] = {
    "employer_name": FieldSpec(
        FieldKind.TEXT,
        (
            _p(r"employer['’]?s?\s+name" + _LINE_VALUE),
            _p(r"^[ \t]*employer" + _LINE_VALUE),
            _p(r"employer['’]?s?\s+name[^\n]*\n[ \t]*([^\n]+?)[ \t]*$"),
            _p(r"\bbox\s*c\b[^\n]*\n[ \t]*([^\n]+?)[ \t]*$"),
        ),
    ),
    "employer_ein": FieldSpec(
        FieldKind.EIN,
        (
            _p(
                r"(?:employer\s+identification\s+number|\bEIN\b|\bbox\s*b\b)"
                r"[^\n]{0,40}?\b(\d{2}-?\d{7})\b"
            ),
            _p(r"\b(\d{2}-\d{7})\b"),
        ),
    ),
    "employer_address": _labelled(
        FieldKind.ADDRESS, r"employer['’]?s?\s+address"
    ),
    "employee_name": FieldSpec(
        FieldKind.NAME,
        (
            _p(r"employee['’]?s?\s+(?:first\s+)?name[^:\n]*" + _LINE_VALUE),
            _p(r"^[ \t]*employee" + _LINE_VALUE),
        ),
    ),
    "wages_tips_compensation": _money(
        r"wages,?\s+tips,?\s+(?:and\s+)?(?:other\s+)?comp(?:ensation|\.)?",
        r"\bbox\s*1\b",
    ),
    "federal_income_tax_withheld": _money(
        r"federal\s+income\s+tax\s+withheld", r"\bbox\s*2\b"
    ),
    "social_security_wages": _money(r"social\s+security\s+wages", r"\bbox\s*3\b"),
    "social_security_tax_withheld": _money(
        r"social\s+security\s+tax\s+withheld", r"\bbox\s*4\b"
    ),
    "medicare_wages": _money(
        r"medicare\s+wages(?:\s+and\s+tips)?", r"\bbox\s*5\b"
    ),
    "medicare_tax_withheld": _money(r"medicare\s+tax\s+withheld", r"\bbox\s*6\b"),
    "tax_year": FieldSpec(
        FieldKind.YEAR,
        (
            _p(r"tax\s+year[^\d\n]{0,20}?" + _YEAR),
            _p(r"\b" + _YEAR + r"[ \t]+(?:form[ \t]+)?W-?2\b"),
            _p(r"\bW-?2\b[^\n]{0,40}?\b" + _YEAR),
            _p(r"wage\s+and\s+tax\s+statement[^\n]{0,20}?\b" + _YEAR),
        ),
    ),
}

PAYSTUB_PATTERNS: dict[str, FieldSpec] = {
    "employer_name": _labelled(
        FieldKind.TEXT, r"(?:employer|company)(?:\s+name)?"
    ),
    "employee_name": _labelled(
        FieldKind.NAME,
        r"employee(?:\s+name)?",
        r"pay\s+to(?:\s+the\s+order\s+of)?",
        r"name",
    ),
    "pay_period_start": FieldSpec(
        FieldKind.DATE,
        (
            _p(r"pay\s+period[^\n]{0,20}?" + _DATE + _RANGE_SEPARATOR),
            _p(r"(?:period\s+(?:start|begin(?:ning)?)|start\s+date)[^\n]{0,20}?" + _DATE),
        ),
    ),
    "pay_period_end": FieldSpec(
        FieldKind.DATE,
        (
            _p(
                r"pay\s+period[^\n]{0,20}?" + _DATE + _RANGE_SEPARATOR + _DATE,
                group=2,
            ),
            _p(r"(?:period\s+end(?:ing)?|end\s+date)[^\n]{0,20}?" + _DATE),
        ),
    ),
    "pay_date": _dated(r"(?:pay|check|deposit|advice)\s+date"),
    "gross_pay": _money(
        r"(?<!ytd )(?<!to date )gross\s+(?:pay|earnings|wages)",
        r"total\s+(?:gross|earnings)",
    ),
    "net_pay": _money(
        r"(?<!ytd )(?<!to date )net\s+(?:pay|amount|check)",
        r"take[\s-]+home(?:\s+pay)?",
    ),
    "ytd_gross_pay": FieldSpec(
        FieldKind.MONEY,
        (
            _p(r"(?:ytd|year[\s-]+to[\s-]+date)\s+gross" + _GAP + _AMOUNT),
            _p(r"gross\s+(?:pay|earnings)\s+(?:ytd|year[\s-]+to[\s-]+date)" + _GAP + _AMOUNT),
            _p(r"gross\s+(?:pay|earnings)" + _GAP + _AMOUNT + r"[ \t]+" + _AMOUNT, group=2),
        ),
    ),
    "ytd_net_pay": FieldSpec(
        FieldKind.MONEY,
        (
            _p(r"(?:ytd|year[\s-]+to[\s-]+date)\s+net" + _GAP + _AMOUNT),
            _p(r"net\s+pay\s+(?:ytd|year[\s-]+to[\s-]+date)" + _GAP + _AMOUNT),
            _p(r"net\s+pay" + _GAP + _AMOUNT + r"[ \t]+" + _AMOUNT, group=2),
        ),
    ),
    "hours_worked": FieldSpec(
        FieldKind.NUMBER,
        (_p(r"\b(?:total\s+)?hours(?:\s+worked)?\b[^\d\n]{0,15}?(\d+(?:\.\d+)?)\b"),),
    ),
    "hourly_rate": _money(r"\b(?:hourly\s+)?(?:pay\s+)?rate\b"),
}

BANK_STATEMENT_PATTERNS: dict[str, FieldSpec] = {
    "institution_name": FieldSpec(
        FieldKind.TEXT,
        (
            _p(r"^[ \t]*(?:bank|(?:financial\s+)?institution)(?:\s+name)?" + _LINE_VALUE),
            _p(
                r"^[ \t]*([A-Za-z][A-Za-z&.' ]*?\b(?:bank|credit\s+union|savings|trust)\b"
                r"(?:,?[ \t]+N\.?A\.?|[ \t]+of[ \t]+[A-Za-z ]+)?)[ \t]*$"
            ),
        ),
    ),
    "account_holder_name": _labelled(
        FieldKind.NAME,
        r"account\s+(?:holder|owner)",
        r"customer(?:\s+name)?",
        r"name",
    ),
    "account_type": FieldSpec(
        FieldKind.TEXT,
        (
            _p(r"account\s+type" + _LINE_VALUE),
            _p(r"\b(checking|savings|money\s+market)\b"),
        ),
    ),
    "account_number_last4": FieldSpec(FieldKind.IDENTIFIER, ACCOUNT_LAST4_PATTERNS),
    "statement_period_start": FieldSpec(
        FieldKind.DATE,
        (
            _p(r"(?:statement\s+)?period[^\n]{0,20}?" + _DATE + _RANGE_SEPARATOR),
            _p(r"\b(?:from|beginning|opening\s+date)[^\n]{0,10}?" + _DATE),
        ),
    ),
    "statement_period_end": FieldSpec(
        FieldKind.DATE,
        (
            _p(
                r"(?:statement\s+)?period[^\n]{0,20}?" + _DATE + _RANGE_SEPARATOR + _DATE,
                group=2,
            ),
            _p(r"(?:period\s+ending|statement\s+date|closing\s+date)[^\n]{0,20}?" + _DATE),
        ),
    ),
    "beginning_balance": _money(r"(?:beginning|opening|previous|starting)\s+balance"),
    "ending_balance": _money(r"(?:ending|closing|new)\s+balance"),
    "average_daily_balance": _money(r"average\s+(?:daily\s+)?(?:ledger\s+)?balance"),
    "total_deposits": _money(
        r"(?:total\s+)?deposits(?:\s+and\s+(?:other\s+)?(?:credits|additions))?"
    ),
    "total_withdrawals": _money(
        r"(?:total\s+)?(?:withdrawals|debits)(?:\s+and\s+(?:other\s+)?(?:debits|subtractions))?"
    ),
}

TAX_RETURN_PATTERNS: dict[str, FieldSpec] = {
    "taxpayer_name": _labelled(
        FieldKind.NAME, r"taxpayer(?:\s+name)?", r"(?:your\s+)?name"
    ),
    "spouse_name": _labelled(FieldKind.NAME, r"spouse(?:['’]s)?(?:\s+name)?"),
    "tax_year": FieldSpec(
        FieldKind.YEAR,
        (
            _p(r"tax\s+year[^\d\n]{0,20}?" + _YEAR),
            _p(r"form\s+1040[^\n]{0,40}?\b" + _YEAR),
            _p(r"\b" + _YEAR + r"[ \t]+(?:form[ \t]+)?1040\b"),
            _p(r"individual\s+income\s+tax\s+return[^\n]{0,20}?\b" + _YEAR),
        ),
    ),
    "filing_status": FieldSpec(
        FieldKind.TEXT,
        (
            _p(
                r"filing\s+status[ \t]*:?[ \t]*(single|married\s+filing\s+jointly"
                r"|married\s+filing\s+separately|head\s+of\s+household"
                r"|qualifying\s+(?:widow\(?er\)?|surviving\s+spouse))"
            ),
        ),
    ),
    "total_income": _money(r"total\s+income"),
    "adjusted_gross_income": _money(r"adjusted\s+gross\s+income", r"\bAGI\b"),
    "taxable_income": _money(r"taxable\s+income"),
    "total_tax": _money(r"total\s+tax(?!able)"),
    "refund_amount": _money(r"\b(?:refund(?:ed)?|overpaid)\b"),
    "amount_owed": _money(r"amount\s+(?:you\s+)?owe[ds]?\b", r"balance\s+due"),
}

ID_PATTERNS: dict[str, FieldSpec] = {
    "full_name": _labelled(FieldKind.NAME, r"(?:full\s+)?name"),
    "date_of_birth": _dated(r"(?:\bDOB\b|date\s+of\s+birth|birth\s*date)"),
    "issue_date": _dated(r"(?:\bISS(?:UED)?\b|issue\s+date|date\s+issued)"),
    "expiration_date": _dated(r"(?:\bEXP(?:IRES)?\b|expiration(?:\s+date)?)"),
    "address": FieldSpec(
        FieldKind.ADDRESS,
        (
            _p(r"^[ \t]*(?:address|addr)" + _LINE_VALUE),
            _p(
                r"^[ \t]*(\d+[ \t]+[A-Za-z0-9 .'#-]+(?:\n|,)[ \t]*[A-Za-z .'-]+,?"
                r"[ \t]+[A-Za-z]{2}[ \t]+\d{5}(?:-\d{4})?)[ \t]*$"
            ),
        ),
    ),
    "state": FieldSpec(
        FieldKind.STATE,
        (
            _p(r"^[ \t]*state" + _LINE_VALUE),
            _p(
                r"^[ \t]*([A-Za-z]+(?:[ \t]+[A-Za-z]+)?)[ \t]+(?:driver['’]?s?\s+licen[cs]e"
                r"|identification\s+card|id\s+card)\b"
            ),
        ),
    ),
    "sex": FieldSpec(FieldKind.TEXT, (_p(r"\bSEX[ \t]*:?[ \t]*([MFX])\b"),)),
    "height": FieldSpec(
        FieldKind.TEXT,
        (_p(r"\b(?:HGT|HEIGHT|HT)[ \t]*:?[ \t]*(\d['’][ \t-]*\d{1,2}(?:\"|''|”)?)"),),
    ),
    "eye_color": FieldSpec(
        FieldKind.TEXT,
        (_p(r"\b(?:EYE\s+COLOR|EYES|EYE)[ \t]*:?[ \t]*([A-Z]{3,5})\b"),),
    ),
}

DOCUMENT_PATTERNS: dict[DocumentType, dict[str, FieldSpec]] = {
    DocumentType.W2: W2_PATTERNS,
    DocumentType.PAYSTUB: PAYSTUB_PATTERNS,
    DocumentType.BANK_STATEMENT: BANK_STATEMENT_PATTERNS,
    DocumentType.TAX_RETURN: TAX_RETURN_PATTERNS,
    DocumentType.ID: ID_PATTERNS,
}
