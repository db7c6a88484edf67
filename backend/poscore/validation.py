from __future__ import annotations

from typing import Any


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


class PosError(Exception):
    """Base for errors surfaced to API callers with structured details."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(PosError, ValueError):
    """400-level input problem."""


class NotFoundError(PosError, LookupError):
    """404-level reference to a record that does not exist."""


class ConflictError(PosError, ValueError):
    """409-level business rule conflict (e.g., not enough stock)."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for API input.

    Rejects floats, booleans, scientific notation and decimal strings so
    that money in cents is never silently truncated.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")

    raise ValidationError(f"{field} must be an integer")


def coerce_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    cents = coerce_int(value, field)
    if cents < 0 or (cents == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ValidationError(f"{field} must be {bound}")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")
    return cents


def coerce_text(value: Any, field: str, *, max_length: int, required: bool = True) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_actor_id(actor_id: Any) -> int:
    """
    Every mutating operation needs an explicit, authenticated actor.

    There is no fallback identity: a missing actor is an input error.
    """
    if actor_id is None:
        raise ValidationError("actor_id is required")
    actor = coerce_int(actor_id, "actor_id")
    if actor <= 0:
        raise ValidationError("actor_id must be a positive integer")
    return actor
