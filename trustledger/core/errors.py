# trustledger/core/errors.py


class LedgerError(RuntimeError):
    """Base class for ledger errors."""


class CanonicalEncodingError(LedgerError, TypeError):
    """Raised when a value has no canonical JSON literal form."""


class MalformedInputError(LedgerError, ValueError):
    """Raised when a request payload cannot be turned into ledger input."""


class MalformedEntryError(MalformedInputError):
    """Raised when a candidate entry lacks the fields needed to verify it."""


class StorageError(LedgerError):
    """Raised by storage backends when a read or write fails."""


def sanitize_exception(exc: Exception) -> str:
    """Return a safe error message without filesystem paths."""
    if isinstance(exc, OSError):
        parts = [exc.__class__.__name__]
        if exc.errno is not None:
            parts.append(f"errno={exc.errno}")
        if exc.strerror:
            parts.append(exc.strerror)
        return " ".join(parts).strip()
    return str(exc)
