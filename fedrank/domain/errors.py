"""Domain errors (typed) for selection and merging.

Why: Unified error family for Application layer, without Infra leaks.
"""

from dataclasses import dataclass


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state."""


class MissingInputError(ValidationError):
    """A required argument is absent (None)."""


class InvalidArgumentError(ValidationError):
    """An argument is present but outside its allowed domain."""


class RetrievalError(DomainError):
    """Generic retrieval failure (after searcher errors were mapped)."""


@dataclass(frozen=True)
class InsufficientEvidenceError(DomainError):
    """Calibration could not be performed for a source.

    Never raised by the domain services (they return an empty list);
    carried by the application layer when a caller asks for a strict outcome.
    """

    resource_id: object
    method: str
