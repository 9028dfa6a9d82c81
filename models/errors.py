"""
Error taxonomy for the invoice engine
"""

from typing import List, Optional


class InvoiceEngineError(Exception):
    """Base class for invoice engine errors"""


class ValidationError(InvoiceEngineError):
    """Malformed or contractually invalid input (never auto-corrected)"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or [message]

    @classmethod
    def from_pydantic(cls, exc, prefix: str = "") -> "ValidationError":
        """Build from a pydantic ValidationError, one message per field"""

        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            if prefix:
                location = f"{prefix}.{location}" if location else prefix
            message = error.get("msg", "invalid value")
            errors.append(f"{location}: {message}" if location else message)

        return cls(f"{len(errors)} validation error(s)", errors)


class StateTransitionError(InvoiceEngineError):
    """Illegal invoice status change; the invoice keeps its prior state"""

    def __init__(self, current, target, reason: str = ""):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        message = f"Cannot move invoice from '{current_value}' to '{target_value}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target


class ComputationError(InvoiceEngineError):
    """Arithmetic overflow or precision failure"""


class CollaboratorUnavailable(InvoiceEngineError):
    """An external collaborator (storage, AI suggestions) failed"""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator} unavailable: {message}")
        self.collaborator = collaborator


class RecordNotFound(InvoiceEngineError):
    """No record with the given id at the persistence boundary"""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id
