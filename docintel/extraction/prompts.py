"""Per-document-type prompts for the vision extraction model.

Every extraction prompt asks for the same field envelope,
``{"value": ..., "confidence": 0-100, "rawText": "..."}``, so the
response parser can treat all document types uniformly.
"""

from docintel.models import DocumentType

_FIELD_RULES = """

Every field uses this envelope:
  {"value": <string | number | null>, "confidence": <0-100>, "rawText": "<text as printed>"}

CRITICAL OUTPUT RULES:
- Return ONLY a single valid JSON object. No text before or after it.
- Do NOT wrap the JSON in code fences.
- Monetary amounts are plain numbers without symbols or separators (75000.00).
- Dates are YYYY-MM-DD.
- If a field is missing or unreadable, use {"value": null, "confidence": 0}.
- NEVER output a full Social Security, license, passport or account number.
  Report only the last 4 digits as "****1234", in both value and rawText.
- Confidence reflects how clearly the value is printed: 90-100 sharp and
  unambiguous, 70-89 readable with minor doubt, below 70 guessed."""

W2_PROMPT = (
    """You are analyzing a U.S. Form W-2 (Wage and Tax Statement).
Extract the fields below and return them as a JSON object with EXACTLY this shape:

{
  "employer": {"name": <field>, "ein": <field>, "address": <field>},
  "employee": {"name": <field>, "ssn": <field>},
  "wages": {
    "box1_wages": <field>,
    "box2_federalTaxWithheld": <field>,
    "box3_socialSecurityWages": <field>,
    "box4_socialSecurityTaxWithheld": <field>,
    "box5_medicareWages": <field>,
    "box6_medicareTaxWithheld": <field>
  },
  "taxYear": <field>,
  "extractionNotes": ["<anything unusual, e.g. a corrected W-2c>"]
}

Important:
- Box 1 is "Wages, tips, other compensation"; Box 2 is "Federal income tax withheld".
- The EIN is formatted XX-XXXXXXX and appears in box b.
- The employer block (box c) holds name, street and city/state/ZIP on separate lines."""
    + _FIELD_RULES
)

PAYSTUB_PROMPT = (
    """You are analyzing an employee paystub (earnings statement).
Extract the fields below and return them as a JSON object with EXACTLY this shape:

{
  "employer": {"name": <field>},
  "employee": {"name": <field>},
  "payPeriod": {"startDate": <field>, "endDate": <field>, "payDate": <field>},
  "earnings": {
    "grossPay": <field>,
    "netPay": <field>,
    "hoursWorked": <field>,
    "hourlyRate": <field>
  },
  "ytdAmounts": {"grossPay": <field>, "netPay": <field>},
  "extractionNotes": ["<anything unusual>"]
}

Important:
- Paystubs usually show a "Current" column and a "YTD" column; keep them apart.
- Gross pay is before deductions; net pay is the amount actually deposited.
- hoursWorked is the total for the period across all earning lines."""
    + _FIELD_RULES
)

BANK_STATEMENT_PROMPT = (
    """You are analyzing a bank account statement.
Extract the fields below and return them as a JSON object with EXACTLY this shape:

{
  "institution": {"name": <field>},
  "account": {"holderName": <field>, "type": <field>, "numberLast4": <field>},
  "statementPeriod": {"startDate": <field>, "endDate": <field>},
  "balances": {"beginning": <field>, "ending": <field>, "averageDaily": <field>},
  "totals": {"deposits": <field>, "withdrawals": <field>},
  "extractionNotes": ["<anything unusual, e.g. multiple accounts on one statement>"]
}

Important:
- account.type is one of "checking", "savings" or "money market".
- Withdrawals include checks, debit card purchases, fees and transfers out.
- If several accounts appear, report the primary one and mention the rest in extractionNotes."""
    + _FIELD_RULES
)

TAX_RETURN_PROMPT = (
    """You are analyzing a U.S. individual income tax return (Form 1040).
Extract the fields below and return them as a JSON object with EXACTLY this shape:

{
  "taxpayer": {"name": <field>, "ssn": <field>},
  "spouse": {"name": <field>, "ssn": <field>},
  "taxYear": <field>,
  "filingStatus": <field>,
  "income": {
    "totalIncome": <field>,
    "adjustedGrossIncome": <field>,
    "taxableIncome": <field>
  },
  "tax": {"totalTax": <field>, "refundAmount": <field>, "amountOwed": <field>},
  "extractionNotes": ["<anything unusual, e.g. missing schedules>"]
}

Important:
- filingStatus is one of "single", "married filing jointly", "married filing separately",
  "head of household" or "qualifying surviving spouse".
- Adjusted gross income is line 11 on recent forms; taxable income is line 15.
- Leave spouse fields null when the return is not a joint return."""
    + _FIELD_RULES
)

ID_PROMPT = (
    """You are analyzing a U.S. government-issued identity document
(driver's license, state ID card or passport).
Extract the fields below and return them as a JSON object with EXACTLY this shape:

{
  "personal": {"fullName": <field>, "dateOfBirth": <field>, "address": <field>},
  "license": {
    "number": <field>,
    "issueDate": <field>,
    "expirationDate": <field>,
    "state": <field>,
    "idType": <field>
  },
  "physical": {"sex": <field>, "height": <field>, "eyeColor": <field>},
  "extractionNotes": ["<anything unusual, e.g. a temporary paper license>"]
}

Important:
- license.idType is one of "driver_license", "state_id" or "passport".
- license.state is the issuing state as a two-letter code.
- Common labels: DOB, EXP, ISS, DL, LN/FN for last and first name."""
    + _FIELD_RULES
)

GENERIC_PROMPT = (
    """You are analyzing a financial or identity document of unknown type.
Extract every clearly labeled value and return a JSON object with EXACTLY this shape:

{
  "documentType": "<your best guess at what this document is>",
  "keyValuePairs": [
    {"key": "<label as printed>", "value": <field>}
  ],
  "rawText": "<all legible text, in reading order>",
  "extractionNotes": ["<anything unusual>"]
}"""
    + _FIELD_RULES
)

DOCUMENT_TYPE_DETECTION_PROMPT = """Classify this document image.
Respond with ONLY a JSON object of this shape:

{
  "documentType": "w2" | "paystub" | "bank_statement" | "tax_return" | "drivers_license" | "state_id" | "passport" | "other",
  "confidence": <0-100>,
  "reasoning": "<one short sentence>"
}

Choose "other" when the document does not clearly match one of the listed types."""

PROMPTS: dict[DocumentType, str] = {
    DocumentType.W2: W2_PROMPT,
    DocumentType.PAYSTUB: PAYSTUB_PROMPT,
    DocumentType.BANK_STATEMENT: BANK_STATEMENT_PROMPT,
    DocumentType.TAX_RETURN: TAX_RETURN_PROMPT,
    DocumentType.ID: ID_PROMPT,
    DocumentType.OTHER: GENERIC_PROMPT,
}


def get_extraction_prompt(document_type: DocumentType) -> str:
    """Return the extraction prompt for a document type, generic when unmapped."""
    return PROMPTS.get(document_type, GENERIC_PROMPT)
