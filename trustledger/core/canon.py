# trustledger/core/canon.py
from typing import Any

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from trustledger.core.errors import CanonicalEncodingError


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    Keys are sorted at every level and no whitespace is emitted, so two values with
    the same logical content always give the same bytes.
    Raises CanonicalEncodingError for values with no JSON literal form.
    """
    try:
        return jcs.canonicalize(obj)
    except (TypeError, ValueError, AttributeError) as e:
        raise CanonicalEncodingError(f"Value has no canonical JSON form: {e}") from e


def canonical_json_str(obj: Any) -> str:
    """Same as above, but returns string (mostly for debugging)."""
    return canonical_json(obj).decode("utf-8")
