"""
Domain exceptions.

Typed exceptions for the conversation engine and the meal reconciliation flow.
Nothing here is fatal: every error maps to a re-prompt, a retry affordance or
a clamped value at the session boundary.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Allows catching all engine errors with a single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CONVERSATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ConversationError(DomainError):
    """Base exception for the conversation engine."""

    pass


class EmptyInputError(ConversationError):
    """
    Input payload is empty.

    Raised by the input normalizer when a text or voice payload is empty or
    whitespace only, or when a photo/barcode payload is missing. Recovered
    locally by re-prompting the user.

    Example:
        >>> raise EmptyInputError("text")
    """

    def __init__(self, modality: str) -> None:
        self.modality = modality
        super().__init__(f"Empty {modality} input")


class ScoringFailure(ConversationError):
    """
    The nutrition scoring collaborator failed.

    Raised when:
    - Network error or timeout
    - Malformed response
    - Any rejection from the scorer

    The conversation context is preserved so a retry works from the
    same disambiguation state.
    """

    pass


class TurnInProgressError(ConversationError):
    """A new turn was submitted while another one is still processing."""

    pass


class NoCurrentEstimateError(ConversationError):
    """`save` was requested but no finalized estimate is current."""

    pass


# ═══════════════════════════════════════════════════════════
# RECONCILIATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ReconciliationError(DomainError):
    """Base exception for local/remote meal reconciliation."""

    pass


class PersistenceFailure(ReconciliationError):
    """
    Remote create/delete failed.

    The optimistic local change has already been rolled back (or marked
    with an explicit error) when this is raised.

    Attributes:
        local_id: Identifier of the affected local entry, if any.
        operation: "create" or "delete".
    """

    def __init__(
        self,
        message: str,
        local_id: Optional[str] = None,
        operation: str = "create",
    ) -> None:
        self.local_id = local_id
        self.operation = operation
        super().__init__(message)


class ConfirmationInProgressError(ReconciliationError):
    """A second confirm() was issued for an estimate whose save is in flight."""

    pass


class MealNotFoundError(ReconciliationError):
    """Meal id not present in the local state store."""

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationFailure(DomainError):
    """
    Out-of-range numeric value.

    Values are clamped rather than rejected; this exception type is used to
    describe the clamp in logs and is only raised by strict validators.

    Attributes:
        field: Name of the clamped field.
        value: Original value.
        clamped: Value after clamping.
    """

    def __init__(self, field: str, value: float, clamped: float) -> None:
        self.field = field
        self.value = value
        self.clamped = clamped
        super().__init__(f"{field}={value} out of range, clamped to {clamped}")


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Raised by infrastructure adapters; translated into ScoringFailure or
    PersistenceFailure by the layer that owns the call.

    Attributes:
        status_code: HTTP status code when available.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
