"""Cross-field consistency checks for extracted documents.

Checks only run when the fields they compare were extracted; failures are
reported as warnings on the result and never reject an extraction.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from docintel.models import (
    BankStatementExtraction,
    BaseExtraction,
    IdExtraction,
    PaystubExtraction,
    TaxReturnExtraction,
    W2Extraction,
)
from docintel.utils.logger import get_logger

logger = get_logger(__name__)

MAX_REASONABLE_WAGES = 10_000_000
SOCIAL_SECURITY_WAGE_BASE = 200_000
TAX_YEAR_LOOKBACK = 10
BALANCE_TOLERANCE = 0.01


@dataclass
class ValidationResult:
    """Result of a single consistency check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    """Aggregated consistency report for a document."""

    results: list[ValidationResult] = field(default_factory=list)

    @property
    def all_valid(self) -> bool:
        return all(r.is_valid for r in self.results)

    @property
    def warnings(self) -> list[str]:
        return [r.message for r in self.results if not r.is_valid]


def _number(extraction: BaseExtraction, name: str) -> float | None:
    value = getattr(extraction, name).value
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _date(extraction: BaseExtraction, name: str) -> date | None:
    value = getattr(extraction, name).value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class ExtractionValidator:
    """Runs the consistency checks for each document type.

    Args:
        today: Reference date for recency and expiry checks. Defaults to
            the current date at validation time.
    """

    def __init__(self, today: date | None = None) -> None:
        self._today = today
        self._checks: dict[type[BaseExtraction], Callable] = {
            W2Extraction: self._check_w2,
            PaystubExtraction: self._check_paystub,
            BankStatementExtraction: self._check_bank_statement,
            IdExtraction: self._check_id,
            TaxReturnExtraction: self._check_tax_return,
        }

    @property
    def today(self) -> date:
        return self._today or date.today()

    def validate(self, extraction: BaseExtraction) -> ValidationReport:
        """Validate an extraction.

        Args:
            extraction: Any document extraction variant.

        Returns:
            Report of the checks that could run.
        """
        check = self._checks.get(type(extraction))
        report = ValidationReport(results=check(extraction) if check else [])
        if report.results:
            logger.info(
                "Validation for %s: %s (%d checks)",
                extraction.document_type,
                "PASSED" if report.all_valid else "FAILED",
                len(report.results),
            )
        return report

    def _check_w2(self, w2: W2Extraction) -> list[ValidationResult]:
        results: list[ValidationResult] = []

        wages = _number(w2, "wages_tips_compensation")
        if wages is not None:
            if wages < 0:
                results.append(ValidationResult(
                    "wages_tips_compensation", False,
                    "Wages cannot be negative", "non_negative_wages",
                ))
            elif wages > MAX_REASONABLE_WAGES:
                results.append(ValidationResult(
                    "wages_tips_compensation", False,
                    "Wages exceed $10,000,000; verify extraction", "wage_ceiling",
                ))
            else:
                results.append(ValidationResult(
                    "wages_tips_compensation", True, "Wages in range", "wage_range",
                ))

        year = _number(w2, "tax_year")
        if year is not None:
            current = self.today.year
            valid = current - TAX_YEAR_LOOKBACK <= year <= current
            results.append(ValidationResult(
                "tax_year",
                valid,
                "Tax year in range" if valid
                else f"Tax year {int(year)} is outside the expected range",
                "tax_year_range",
            ))

        ss_wages = _number(w2, "social_security_wages")
        if ss_wages is not None:
            valid = ss_wages <= SOCIAL_SECURITY_WAGE_BASE
            results.append(ValidationResult(
                "social_security_wages",
                valid,
                "Social security wages in range" if valid
                else "Social security wages exceed the wage base limit",
                "social_security_wage_base",
            ))
        return results

    def _check_paystub(self, stub: PaystubExtraction) -> list[ValidationResult]:
        results: list[ValidationResult] = []

        gross = _number(stub, "gross_pay")
        net = _number(stub, "net_pay")
        if gross is not None and net is not None:
            valid = net <= gross
            results.append(ValidationResult(
                "net_pay", valid,
                "Net pay within gross pay" if valid
                else "Net pay exceeds gross pay",
                "net_within_gross",
            ))

        ytd_gross = _number(stub, "ytd_gross_pay")
        if gross is not None and ytd_gross is not None:
            valid = ytd_gross >= gross
            results.append(ValidationResult(
                "ytd_gross_pay", valid,
                "YTD gross covers current gross" if valid
                else "YTD gross pay is less than current gross pay",
                "ytd_covers_current",
            ))

        start = _date(stub, "pay_period_start")
        end = _date(stub, "pay_period_end")
        if start is not None and end is not None:
            valid = end >= start
            results.append(ValidationResult(
                "pay_period_end", valid,
                "Pay period dates ordered" if valid
                else "Pay period end date is before start date",
                "pay_period_order",
            ))
        return results

    def _check_bank_statement(
        self, statement: BankStatementExtraction
    ) -> list[ValidationResult]:
        amounts = [
            _number(statement, name)
            for name in (
                "beginning_balance",
                "total_deposits",
                "total_withdrawals",
                "ending_balance",
            )
        ]
        if any(amount is None for amount in amounts):
            return []

        beginning, deposits, withdrawals, ending = amounts
        expected = beginning + deposits - withdrawals
        valid = abs(expected - ending) <= BALANCE_TOLERANCE
        return [ValidationResult(
            "ending_balance", valid,
            "Balances reconcile" if valid
            else "Balance calculation does not match",
            "balance_reconciliation",
        )]

    def _check_id(self, id_doc: IdExtraction) -> list[ValidationResult]:
        results: list[ValidationResult] = []

        issued = _date(id_doc, "issue_date")
        expires = _date(id_doc, "expiration_date")
        if issued is not None and expires is not None:
            valid = expires >= issued
            results.append(ValidationResult(
                "expiration_date", valid,
                "ID dates ordered" if valid
                else "Expiration date is before issue date",
                "id_date_order",
            ))
        if expires is not None:
            valid = expires >= self.today
            results.append(ValidationResult(
                "expiration_date", valid,
                "ID is current" if valid else "ID document is expired",
                "id_not_expired",
            ))
        return results

    def _check_tax_return(self, ret: TaxReturnExtraction) -> list[ValidationResult]:
        results: list[ValidationResult] = []

        total = _number(ret, "total_income")
        agi = _number(ret, "adjusted_gross_income")
        if total is not None and agi is not None:
            valid = agi <= total
            results.append(ValidationResult(
                "adjusted_gross_income", valid,
                "AGI within total income" if valid
                else "Adjusted gross income exceeds total income",
                "agi_within_total",
            ))

        refund = _number(ret, "refund_amount")
        owed = _number(ret, "amount_owed")
        if refund and owed:
            results.append(ValidationResult(
                "refund_amount", False,
                "Return shows both a refund and an amount owed",
                "refund_or_owed",
            ))
        return results
