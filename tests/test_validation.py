"""Tests for bulk import validation."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from family_ledger.utils.dates import fixed_clock
from family_ledger.validation import (
    BulkImportValidator,
    CurrencyGuess,
    ImportIssue,
    ImportRow,
    ImportValidationResult,
    detect_currency,
    parse_import_text,
)


@pytest.fixture
def validator() -> BulkImportValidator:
    return BulkImportValidator(
        max_amount=Decimal("1000000"),
        clock=fixed_clock(datetime(2024, 6, 15, tzinfo=timezone.utc)),
    )


def row(date="2024-06-01", description="Groceries", amount="42.50") -> ImportRow:
    return ImportRow(
        date=date,
        description=description,
        amount=Decimal(amount) if amount is not None else None,
    )


class TestBulkImportValidator:
    """Tests for import row checks."""

    def test_valid_batch(self, validator):
        result = validator.validate([row(), row(description="Rent", amount="1200")])

        assert result.is_valid is True
        assert result.row_count == 2
        assert result.issues == []

    def test_empty_batch(self, validator):
        result = validator.validate([])

        assert result.is_valid is False
        assert result.issues[0].message == "No transactions to import"

    def test_bad_date_format(self, validator):
        result = validator.validate([row(date="06/01/2024")])

        assert result.is_valid is False
        assert result.issues[0].field == "date"
        assert result.issues[0].message == "Row 1: Invalid date format. Use YYYY-MM-DD"

    @pytest.mark.parametrize("date", ["2024-06-16", "2024-02-30"])
    def test_future_or_impossible_date(self, validator, date):
        result = validator.validate([row(date=date)])

        assert result.issues[0].message == "Row 1: Invalid or future date"

    def test_today_is_allowed(self, validator):
        assert validator.validate([row(date="2024-06-15")]).is_valid is True

    def test_description_length(self, validator):
        result = validator.validate([
            row(description="x"),
            row(description="y" * 201),
        ])

        assert [i.message for i in result.issues] == [
            "Row 1: Description too short",
            "Row 2: Description too long (max 200 characters)",
        ]

    def test_amount_checks(self, validator):
        result = validator.validate([
            row(amount="0"),
            row(amount=None),
            row(amount="-1000000.01"),
            row(amount="-25"),
        ])

        assert [(i.row, i.message) for i in result.issues] == [
            (1, "Row 1: Invalid amount"),
            (2, "Row 2: Invalid amount"),
            (3, "Row 3: Amount exceeds maximum limit"),
        ]

    def test_duplicates_are_a_warning(self, validator):
        """Test duplicate rows are flagged but do not block the import."""
        result = validator.validate([row(), row(), row(description="Other")])

        assert result.is_valid is True
        assert len(result.warnings) == 1
        assert result.warnings[0].message == "Found 1 potential duplicate transactions"
        assert result.warnings[0].suggested_fix == "Check rows 2"

    def test_every_row_reported(self, validator):
        result = validator.validate([row(date="bad"), row(), row(amount="0")])

        assert [i.row for i in result.issues] == [1, 3]
        assert result.error_count == 2

    def test_blank_description_too_short(self, validator):
        """Test surrounding whitespace does not count towards the length."""
        result = validator.validate([row(description="   "), row(description="  Rent  ")])

        assert [i.message for i in result.issues] == ["Row 1: Description too short"]

    def test_fractional_cents_rejected(self, validator):
        result = validator.validate([row(amount="12.345"), row(amount="12.3"), row(amount="-0.001")])

        assert [(i.row, i.message) for i in result.issues] == [
            (1, "Row 1: Amount has more than two decimal places"),
            (3, "Row 3: Amount has more than two decimal places"),
        ]
        assert result.issues[0].suggested_fix == "Round amounts to the cent"

    def test_currency_mismatch_is_a_warning(self):
        validator = BulkImportValidator(
            max_amount=Decimal("1000000"),
            clock=fixed_clock(datetime(2024, 6, 15, tzinfo=timezone.utc)),
            currency="usd",
        )

        result = validator.validate([row(amount="5000"), row(description="Rent", amount="2500")])

        assert result.is_valid is True
        assert [(w.field, w.message) for w in result.warnings] == [
            ("currency", "Transactions appear to be in JPY but the ledger uses USD"),
        ]

    def test_mixed_amounts_no_currency_warning(self, validator):
        """Test a batch with no clear currency pattern is not flagged."""
        result = validator.validate([row(amount="42.50"), row(description="Rent", amount="1200")])

        assert result.warnings == []

    def test_max_amount_from_settings(self):
        validator = BulkImportValidator(
            clock=fixed_clock(datetime(2024, 6, 15, tzinfo=timezone.utc)),
        )

        result = validator.validate([row(amount="1000000.01")])

        assert result.issues[0].message == "Row 1: Amount exceeds maximum limit"


class TestImportValidationResult:
    """Tests for ImportValidationResult model."""

    def test_validation_result_has_errors(self):
        result = ImportValidationResult(
            is_valid=False,
            issues=[ImportIssue(row=1, field="amount", message="Row 1: Invalid amount")],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ImportValidationResult(
            is_valid=True,
            issues=[ImportIssue(field="duplicate", message="Dupes", severity="warning")],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestUserFriendlySummary:

    def test_all_good(self, validator):
        summary = validator.get_user_friendly_summary(validator.validate([row()]))

        assert summary == "✅ All 1 rows look good and are ready to import."

    def test_errors_and_warnings(self, validator):
        result = validator.validate([row(), row(), row(amount="0")])

        summary = validator.get_user_friendly_summary(result)

        assert "❌ 1 problem(s) must be fixed before importing:" in summary
        assert "Row 3: Invalid amount" in summary
        assert "⚠️ Please verify the following:" in summary
        assert summary.endswith("Please fix the issues above before importing.")

    def test_warnings_only(self, validator):
        summary = validator.get_user_friendly_summary(validator.validate([row(), row()]))

        assert summary.startswith("⚠️ Please verify the following:")
        assert summary.endswith("You can still import, but please review carefully.")


class TestParseImportText:

    def test_parse_lines(self):
        rows = parse_import_text(
            "2024-06-01, Groceries, $42.50\n"
            "\n"
            "2024-06-02, Dinner, drinks, 18.00\n"
        )

        assert rows[0] == ImportRow(date="2024-06-01", description="Groceries", amount=Decimal("42.50"))
        assert rows[1].description == "Dinner, drinks"
        assert rows[1].amount == Decimal("18.00")

    def test_unparseable_amount_left_empty(self):
        [parsed] = parse_import_text("2024-06-01, Groceries, abc")

        assert parsed.amount is None

    def test_missing_columns(self):
        [parsed] = parse_import_text("2024-06-01, Groceries")

        assert parsed.description == "Groceries"
        assert parsed.amount is None


class TestDetectCurrency:

    def test_two_decimal_amounts(self):
        guesses = detect_currency([Decimal("12.50"), Decimal("-3.99")])

        assert [g.currency for g in guesses] == ["USD", "EUR", "GBP"]
        assert guesses[0].confidence == 100

    def test_whole_amounts(self):
        guesses = detect_currency([Decimal("5000"), Decimal("250")])

        assert guesses == [CurrencyGuess("INR", 100), CurrencyGuess("JPY", 50)]

    def test_weak_patterns_dropped(self):
        amounts = [Decimal("12.50")] + [Decimal("7")] * 4

        assert detect_currency(amounts) == []

    def test_no_amounts(self):
        assert detect_currency([]) == []
