"""
Domain exceptions.

Typed exceptions for explicit error handling.
Specific exception types for specific errors.
"""

from __future__ import annotations

from typing import Iterable, Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CONVERSATION DOMAIN EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ConversationDomainError(DomainError):
    """Base exception for the item resolution state machine."""

    pass


class InvalidStateError(ConversationDomainError):
    """
    Operation invoked on an item in the wrong state.

    Raised when:
    - resolve() on an item that is not PARSED
    - apply_disambiguation() on an item that is not DISAMBIGUATING
    - apply_portion() on an item that is not PORTIONING

    Always a programming error in the caller.

    Example:
        >>> raise InvalidStateError("item_1", "RESOLVED", ["PORTIONING"])
    """

    def __init__(self, item_id: str, actual: str, expected: Iterable[str]) -> None:
        self.item_id = item_id
        self.actual = actual
        self.expected = tuple(expected)
        super().__init__(
            f"Item {item_id} is {actual}, expected {' or '.join(self.expected)}"
        )


class InvalidChoiceError(ConversationDomainError):
    """
    Chosen food is not among the offered candidates.

    Example:
        >>> raise InvalidChoiceError("item_1", 11049)
    """

    def __init__(self, item_id: str, food_id: int) -> None:
        self.item_id = item_id
        self.food_id = food_id
        super().__init__(f"Food {food_id} is not a candidate of item {item_id}")


class InvalidPortionError(ConversationDomainError):
    """
    Portion weight is not a finite positive number of grams.

    Raised when:
    - grams <= 0
    - grams is NaN or infinite
    - grams is not a number

    Example:
        >>> raise InvalidPortionError(0)
    """

    def __init__(self, grams: object, item_id: Optional[str] = None) -> None:
        self.grams = grams
        self.item_id = item_id
        target = f" for item {item_id}" if item_id else ""
        super().__init__(f"Portion must be a finite positive gram amount{target}, got {grams!r}")


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Malformed Fineli payload
    - Missing required fields

    Example:
        >>> raise ValidationError("Fineli food payload has no id")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for failures of collaborators behind a port
    (food search, result ranking).

    Example:
        >>> raise ExternalServiceError("Fineli search failed: timeout")
    """

    pass
