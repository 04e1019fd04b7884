class ReconciliationError(Exception):
    """Base exception for all reconciliation-related errors."""


class InputError(ReconciliationError):
    """Raised when a request is rejected before any document is touched."""


class InvalidBatchError(InputError):
    """Raised when the report batch is empty or malformed."""


class UnauthorizedCallerError(InputError):
    """Raised when the caller is not staff or admin."""


class ReportAlreadyResolvedError(InputError):
    """Raised when assigning an unmatched report that was already resolved."""


class DocumentNotFoundError(ReconciliationError):
    """Raised when a document cannot be found in the database."""


class UnmatchedReportNotFoundError(ReconciliationError):
    """Raised when an unmatched report cannot be found in the database."""


class DocumentStateConflictError(ReconciliationError):
    """Raised when a write would overwrite a slot or touch a completed document."""
