"""Bulk import validation package."""

from family_ledger.validation.validator import (
    BulkImportValidator,
    CurrencyGuess,
    ImportIssue,
    ImportRow,
    ImportValidationResult,
    detect_currency,
    parse_import_text,
)

__all__ = [
    "BulkImportValidator",
    "CurrencyGuess",
    "ImportIssue",
    "ImportRow",
    "ImportValidationResult",
    "detect_currency",
    "parse_import_text",
]
