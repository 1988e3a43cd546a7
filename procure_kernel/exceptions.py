"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Reconciliation results drive payment decisions. Callers must be able to
tell "the input was malformed" apart from "the data could not be loaded"
without parsing message strings:

    try:
        results = service.match_results()
    except DataFetchError as e:
        show_banner("Could not load matching results")
        log.error("fetch failed", extra={"code": e.code, "source": e.source})

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcureKernelError (base)
    |
    +-- ValidationError           malformed numeric input to an engine
    +-- DataFetchError            invoice/PO/GRN rows could not be retrieved
    +-- ConfigurationError        matching settings could not be loaded
    +-- UnknownMatchStatusError   status filter names no known bucket

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                  | When Raised
----------------------|---------------------------------------------------
VALIDATION_ERROR      | Negative, NaN or infinite amount; bad tolerance
DATA_FETCH_ERROR      | Database error while reading matching inputs
CONFIGURATION_ERROR   | Missing/malformed settings file or unknown keys
UNKNOWN_MATCH_STATUS  | Filter value is not a match status or "all"
"""

from typing import Any


class ProcureKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCURE_KERNEL_ERROR"


class ValidationError(ProcureKernelError):
    """Input value rejected before any computation was attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {field}: {value!r} ({reason})")


class DataFetchError(ProcureKernelError):
    """
    Invoice, purchase order or GRN rows could not be retrieved.

    Owned by the data-fetch layer; the evaluator is never invoked for the
    affected invoices.
    """

    code: str = "DATA_FETCH_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch {source}: {reason}")


class ConfigurationError(ProcureKernelError):
    """Matching settings could not be loaded or parsed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, path: str | None, reason: str):
        self.path = path
        self.reason = reason
        where = path if path is not None else "<inline>"
        super().__init__(f"Invalid matching configuration ({where}): {reason}")


class UnknownMatchStatusError(ProcureKernelError):
    """A status filter named something other than a match status or 'all'."""

    code: str = "UNKNOWN_MATCH_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown match status: {status!r}")
