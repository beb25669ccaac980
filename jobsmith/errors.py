"""
Error classes for jobsmith job compilation.

These error types enable retry classification at the caller boundary:
- TransientError: Safe to retry (store or external system unreachable)
- PermanentError: Do not retry (malformed payload, missing definitions, lint failures)

Lifecycle operations raise these errors and never commit partial results:
a job's spec is either fully updated or left as it was.
"""


class JobsmithError(Exception):
    """Base exception for jobsmith."""
    pass


class TransientError(JobsmithError):
    """
    Transient error - the caller may retry the whole operation.

    The core itself never retries.
    """
    pass


class PermanentError(JobsmithError):
    """
    Permanent error - do not retry.

    Examples:
    - Malformed spec payload
    - Stored definition or integration not found
    - Job declaring zero sub-targets
    """
    pass


class DecodeError(PermanentError):
    """Raised when a job's spec payload is structurally invalid."""
    pass


class NotFoundError(PermanentError):
    """Raised by a spec store when a record does not exist."""
    pass


class UpstreamLookupError(TransientError):
    """
    Raised when preset resolution cannot reach the spec store or an
    external system, or the requested identity is unknown there.
    """
    pass


class CompileError(PermanentError):
    """Raised when a sub-target's dependencies cannot be resolved at compile time."""
    pass


class EmptyJobError(PermanentError):
    """Raised when a job declares zero sub-targets."""
    pass


class ValidationError(PermanentError):
    """
    Raised by lint when a job references something that does not exist.

    Attributes:
        reference: The first unresolved reference (integration id, definition name)
    """

    def __init__(self, message: str, reference: str = ""):
        super().__init__(message)
        self.reference = reference
