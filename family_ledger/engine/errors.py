"""
Engine Exceptions

Configuration errors are rejected by the models (pydantic ValidationError)
before data ever reaches the engine. The exceptions here are for the other
kind of failure: an arithmetic or state invariant broke inside the engine.
They signal a programming error and must never be caught and ignored.
"""


class LedgerInvariantError(Exception):
    """Base exception for broken ledger invariants."""
    pass


class SplitConservationError(LedgerInvariantError):
    """Splits do not add up to the transaction amount."""
    pass


class AllocationCapError(LedgerInvariantError):
    """A savings goal would end up above its target."""
    pass


class CheckpointRegressionError(LedgerInvariantError):
    """A recurring rule's checkpoint would move backwards."""
    pass
