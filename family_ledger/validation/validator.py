"""
Bulk Import Validation

Rows pasted or uploaded in bulk are checked before anything is written
to the ledger:

ROW CHECKS:
- Date format (YYYY-MM-DD) and no future dates
- Description length, ignoring surrounding whitespace
- Non-zero amount in whole cents, within the configured maximum

BATCH CHECKS:
- Empty batch
- Duplicate rows (same date, description and amount)
- Amounts that look like another currency than the ledger's (warning)

IMPORTANT: Validation NEVER silently fixes rows.
It reports issues for the user to correct.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Literal, NamedTuple, Optional

from pydantic import BaseModel, Field

from family_ledger.config import get_settings
from family_ledger.utils.dates import Clock, system_clock

DATE_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MIN_DESCRIPTION_LENGTH = 2
MAX_DESCRIPTION_LENGTH = 200

# Guess order breaks confidence ties
CURRENCY_PATTERNS = ("USD", "EUR", "GBP", "JPY", "INR")
MIN_GUESS_CONFIDENCE = 20
MISMATCH_CONFIDENCE = 70


class ImportRow(BaseModel):
    """One raw row of a bulk import, before it becomes a transaction."""

    date: str
    description: str = ""
    amount: Optional[Decimal] = None


class ImportIssue(BaseModel):
    """A single problem found in an import batch."""

    row: Optional[int] = Field(default=None, description="1-based row number; None for batch issues")
    field: str
    message: str
    severity: Literal["error", "warning"] = "error"
    suggested_fix: Optional[str] = None


class ImportValidationResult(BaseModel):
    """Outcome of validating an import batch."""

    is_valid: bool
    row_count: int = 0
    issues: list[ImportIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ImportIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ImportIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)


def parse_import_text(text: str) -> list[ImportRow]:
    """
    Parse `date, description, amount` lines into import rows.

    Currency symbols in the amount column are ignored. An amount that
    still isn't a number is left as None so the validator reports it
    against the right row.
    """
    rows = []
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        date_str = parts[0]
        if len(parts) >= 3:
            # Descriptions may themselves contain commas
            description = ", ".join(parts[1:-1])
            amount_str = parts[-1]
        else:
            description = parts[1] if len(parts) == 2 else ""
            amount_str = ""

        cleaned = re.sub(r"[^0-9.\-]+", "", amount_str)
        try:
            amount = Decimal(cleaned) if cleaned else None
        except InvalidOperation:
            amount = None

        rows.append(ImportRow(date=date_str, description=description, amount=amount))
    return rows


class CurrencyGuess(NamedTuple):
    currency: str
    confidence: float


def detect_currency(amounts: Iterable[Decimal]) -> list[CurrencyGuess]:
    """
    Guess which currency a batch of amounts was written in.

    Amounts written with exactly two decimals look like USD, EUR or GBP.
    Amounts written as whole numbers look like JPY (above 1000) or INR
    (above 100). Confidence is the share of amounts matching each
    pattern, in percent.

    Returns:
        Guesses above MIN_GUESS_CONFIDENCE, most likely first
    """
    amounts = [abs(amount) for amount in amounts]
    if not amounts:
        return []

    counts = dict.fromkeys(CURRENCY_PATTERNS, 0)
    for amount in amounts:
        exponent = amount.as_tuple().exponent
        if exponent == -2 and Decimal("0.01") < amount < Decimal("100000"):
            for currency in ("USD", "EUR", "GBP"):
                counts[currency] += 1
        elif exponent >= 0:
            if amount > 1000:
                counts["JPY"] += 1
            if amount > 100:
                counts["INR"] += 1

    guesses = [
        CurrencyGuess(currency, count * 100 / len(amounts))
        for currency, count in counts.items()
    ]
    return sorted(
        (guess for guess in guesses if guess.confidence > MIN_GUESS_CONFIDENCE),
        key=lambda guess: guess.confidence,
        reverse=True,
    )


class BulkImportValidator:
    """
    Validates a batch of import rows.

    Every row is checked independently and all issues are reported at
    once, so the user can fix the whole file in one pass.
    """

    def __init__(
        self,
        max_amount: Optional[Decimal] = None,
        clock: Clock = system_clock,
        currency: Optional[str] = None,
    ):
        """
        Initialize validator.

        Args:
            max_amount: Largest absolute amount accepted. Defaults to
                        the configured max_import_amount.
            clock: Source of "now" for the future-date check
            currency: Ledger currency the rows should be in. Defaults
                      to the configured currency.
        """
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_import_amount))
        self._max_amount = max_amount
        self._clock = clock
        self._currency = (currency or get_settings().app.currency).upper()

    def _validate_row(self, number: int, row: ImportRow) -> list[ImportIssue]:
        issues = []
        today = self._clock().date()

        # Date
        if not DATE_FORMAT.match(row.date):
            issues.append(ImportIssue(
                row=number,
                field="date",
                message=f"Row {number}: Invalid date format. Use YYYY-MM-DD",
                suggested_fix="Write dates like 2024-01-31",
            ))
        else:
            try:
                parsed = datetime.strptime(row.date, "%Y-%m-%d").date()
            except ValueError:
                parsed = None
            if parsed is None or parsed > today:
                issues.append(ImportIssue(
                    row=number,
                    field="date",
                    message=f"Row {number}: Invalid or future date",
                    suggested_fix="Check the day and month are correct",
                ))

        # Description
        description = row.description.strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            issues.append(ImportIssue(
                row=number,
                field="description",
                message=f"Row {number}: Description too short",
            ))
        elif len(description) > MAX_DESCRIPTION_LENGTH:
            issues.append(ImportIssue(
                row=number,
                field="description",
                message=f"Row {number}: Description too long (max {MAX_DESCRIPTION_LENGTH} characters)",
            ))

        # Amount
        if row.amount is None or row.amount == 0:
            issues.append(ImportIssue(
                row=number,
                field="amount",
                message=f"Row {number}: Invalid amount",
                suggested_fix="Amounts must be non-zero numbers",
            ))
        elif abs(row.amount) > self._max_amount:
            issues.append(ImportIssue(
                row=number,
                field="amount",
                message=f"Row {number}: Amount exceeds maximum limit",
            ))
        elif row.amount.as_tuple().exponent < -2:
            issues.append(ImportIssue(
                row=number,
                field="amount",
                message=f"Row {number}: Amount has more than two decimal places",
                suggested_fix="Round amounts to the cent",
            ))

        return issues

    def _check_currency(self, rows: list[ImportRow]) -> Optional[ImportIssue]:
        """Warn when the amounts look like another currency than the ledger's."""
        guesses = detect_currency(row.amount for row in rows if row.amount)
        if not guesses:
            return None

        likely = guesses[0]
        if likely.currency == self._currency or likely.confidence <= MISMATCH_CONFIDENCE:
            return None

        return ImportIssue(
            field="currency",
            message=(
                f"Transactions appear to be in {likely.currency} "
                f"but the ledger uses {self._currency}"
            ),
            severity="warning",
            suggested_fix="Convert the amounts or check the ledger currency",
        )

    def _find_duplicates(self, rows: list[ImportRow]) -> list[int]:
        """1-based numbers of rows repeating an earlier row."""
        seen = set()
        duplicates = []
        for number, row in enumerate(rows, start=1):
            key = (row.date, row.description, row.amount)
            if key in seen:
                duplicates.append(number)
            else:
                seen.add(key)
        return duplicates

    def validate(self, rows: list[ImportRow]) -> ImportValidationResult:
        """
        Validate an import batch.

        Args:
            rows: Parsed import rows, in file order

        Returns:
            ImportValidationResult; valid when no issue is an error
        """
        if not rows:
            return ImportValidationResult(
                is_valid=False,
                row_count=0,
                issues=[ImportIssue(
                    field="batch",
                    message="No transactions to import",
                )],
            )

        issues = []
        for number, row in enumerate(rows, start=1):
            issues.extend(self._validate_row(number, row))

        duplicates = self._find_duplicates(rows)
        if duplicates:
            issues.append(ImportIssue(
                field="duplicate",
                message=f"Found {len(duplicates)} potential duplicate transactions",
                severity="warning",
                suggested_fix=f"Check rows {', '.join(str(n) for n in duplicates)}",
            ))

        mismatch = self._check_currency(rows)
        if mismatch:
            issues.append(mismatch)

        return ImportValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            row_count=len(rows),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ImportValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return f"✅ All {result.row_count} rows look good and are ready to import."

        lines = []

        if result.has_errors:
            lines.append(f"❌ {result.error_count} problem(s) must be fixed before importing:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still import, but please review carefully.")
        else:
            lines.append("Please fix the issues above before importing.")

        return "\n".join(lines)
