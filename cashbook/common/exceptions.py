"""Exceptions raised inside the reconciliation engine."""


class CashbookError(Exception):
    """Base exception for the engine."""

    pass


class MalformedRecordError(CashbookError):
    """A subsystem record is missing a required field or has an invalid value."""

    def __init__(self, reference_type: str, record_id, reason: str):
        self.reference_type = reference_type
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"{reference_type} record {record_id!r} skipped: {reason}")


class UnknownCollectionError(CashbookError):
    """A storage collection name is not one the engine knows about."""

    pass


class ResolutionError(CashbookError):
    """A conflict resolution pass could not be completed."""

    pass
