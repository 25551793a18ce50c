"""Tests for the field parser library."""

import pytest

from docintel.parsing.field_parsers import (
    account_last_four,
    is_valid_ssn_format,
    mask_last_four,
    normalize_address,
    normalize_name,
    normalize_state,
    parse_address,
    parse_currency,
    parse_date,
    parse_ein,
    parse_name,
    parse_percentage,
    parse_year,
    redact_identifiers,
)


class TestParseCurrency:
    """Tests for monetary amount parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("$1,234.56", 1234.56),
            ("1234", 1234.0),
            ("USD 500.00", 500.0),
            ("€ 1 000", 1000.0),
            ("(1,234.56)", -1234.56),
            ("-$45.10", -45.1),
            ("  $0.99 ", 0.99),
        ],
    )
    def test_valid_amounts(self, raw: str, expected: float) -> None:
        assert parse_currency(raw) == pytest.approx(expected)

    def test_numbers_pass_through(self) -> None:
        assert parse_currency(75000) == 75000.0
        assert parse_currency(12.5) == 12.5

    @pytest.mark.parametrize("raw", ["", "abc", "$12.34.56", "12abc", None, True, "1,2a"])
    def test_invalid_amounts(self, raw: object) -> None:
        assert parse_currency(raw) is None

    def test_rejects_non_finite(self) -> None:
        assert parse_currency(float("nan")) is None
        assert parse_currency(float("inf")) is None

    def test_overflowing_digit_string(self) -> None:
        assert parse_currency("9" * 400) is None


class TestParsePercentage:
    """Tests for percentage parsing."""

    def test_explicit_marker(self) -> None:
        assert parse_percentage("4.5%") == 4.5
        assert parse_percentage("12 percent") == 12.0

    def test_bare_fraction_is_rescaled(self) -> None:
        assert parse_percentage("0.045") == 4.5
        assert parse_percentage(0.5) == 50.0

    def test_marked_fraction_is_literal(self) -> None:
        assert parse_percentage("0.5%") == 0.5

    def test_whole_numbers_are_literal(self) -> None:
        assert parse_percentage("7") == 7.0

    def test_invalid(self) -> None:
        assert parse_percentage("n/a") is None
        assert parse_percentage(None) is None


class TestParseYear:
    """Tests for tax year parsing."""

    def test_integer_and_text(self) -> None:
        assert parse_year(2023) == 2023
        assert parse_year("Tax year 2022") == 2022

    def test_out_of_range(self) -> None:
        assert parse_year(1850) is None
        assert parse_year("year 3000") is None
        assert parse_year(2023.5) is None


class TestParseDate:
    """Tests for date normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2024-01-15", "2024-01-15"),
            ("01/15/2024", "2024-01-15"),
            ("1-5-2024", "2024-01-05"),
            ("01/15/24", "2024-01-15"),
            ("03/04/75", "1975-03-04"),
            ("January 15, 2024", "2024-01-15"),
            ("Sept. 3, 2023", "2023-09-03"),
            ("15 March 2024", "2024-03-15"),
        ],
    )
    def test_supported_formats(self, raw: str, expected: str) -> None:
        assert parse_date(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["2024-02-30", "13/01/2024", "02/30/2024", "not a date", "", "1850-01-01"]
    )
    def test_invalid_dates(self, raw: str) -> None:
        assert parse_date(raw) is None

    def test_leap_day(self) -> None:
        assert parse_date("02/29/2024") == "2024-02-29"
        assert parse_date("02/29/2023") is None

    def test_non_string(self) -> None:
        assert parse_date(20240115) is None


class TestIdentifiers:
    """Tests for SSN, EIN and account number helpers."""

    def test_mask_last_four(self) -> None:
        assert mask_last_four("123-45-6789") == "****6789"
        assert mask_last_four("****6789") == "****6789"
        assert mask_last_four(987654321) == "****4321"

    def test_mask_requires_four_digits(self) -> None:
        assert mask_last_four("12-3") is None
        assert mask_last_four(None) is None

    def test_account_last_four(self) -> None:
        assert account_last_four("0001 2345 6789") == "6789"

    def test_ssn_format(self) -> None:
        assert is_valid_ssn_format("234-56-7890")
        assert not is_valid_ssn_format("000-12-3456")
        assert not is_valid_ssn_format("666-12-3456")
        assert not is_valid_ssn_format("912-34-5678")
        assert not is_valid_ssn_format("123-45-6789")
        assert not is_valid_ssn_format("12345")

    def test_parse_ein(self) -> None:
        assert parse_ein("123456789") == "12-3456789"
        assert parse_ein("12-3456789") == "12-3456789"
        assert parse_ein("1234") is None

    def test_redact_identifiers(self) -> None:
        text = "SSN 123-45-6789 acct 000123456789 total $45.00"
        redacted = redact_identifiers(text)
        assert "123-45" not in redacted
        assert "000123456789" not in redacted
        assert "****6789" in redacted
        assert "$45.00" in redacted


class TestNames:
    """Tests for person name parsing."""

    def test_first_middle_last(self) -> None:
        parsed = parse_name("JOHN QUINCY PUBLIC")
        assert parsed.first == "John"
        assert parsed.middle == "Quincy"
        assert parsed.last == "Public"
        assert parsed.full == "John Quincy Public"

    def test_inverted_with_suffix(self) -> None:
        parsed = parse_name("PUBLIC, JOHN Q JR")
        assert parsed.full == "John Q Public Jr"
        assert parsed.suffix == "Jr"

    def test_special_capitalization(self) -> None:
        assert normalize_name("mary o'brien-mcdonald") == "Mary O'Brien-McDonald"

    def test_blank(self) -> None:
        assert parse_name("   ") is None
        assert normalize_name(None) is None


class TestAddresses:
    """Tests for US address parsing."""

    def test_full_address(self) -> None:
        parsed = parse_address("123 Main St, Apt 4B, springfield, Illinois 62701")
        assert parsed.street == "123 Main St"
        assert parsed.unit == "Apt 4B"
        assert parsed.city == "Springfield"
        assert parsed.state == "IL"
        assert parsed.zip_code == "62701"
        assert parsed.full == "123 Main St, Apt 4B, Springfield, IL 62701"

    def test_multiline_with_zip_plus_four(self) -> None:
        parsed = parse_address("456 Oak Ave\nAustin, TX 78701-1234")
        assert parsed.street == "456 Oak Ave"
        assert parsed.city == "Austin"
        assert parsed.state == "TX"
        assert parsed.zip_code == "78701-1234"

    def test_embedded_unit(self) -> None:
        parsed = parse_address("789 Pine Rd Suite 200, Denver, CO 80202")
        assert parsed.street == "789 Pine Rd"
        assert parsed.unit == "Suite 200"

    def test_street_only_keeps_trailing_words(self) -> None:
        parsed = parse_address("12 Washington Ct")
        assert parsed.street == "12 Washington Ct"
        assert parsed.state is None

    def test_normalize_state(self) -> None:
        assert normalize_state("ca") == "CA"
        assert normalize_state("New York") == "NY"
        assert normalize_state("D.C.") == "DC"
        assert normalize_state("Ontario") is None

    def test_normalize_blank(self) -> None:
        assert normalize_address("") is None
