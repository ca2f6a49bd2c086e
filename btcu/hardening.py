"""
BTCU Validation and Hardening Module

Input validation and invariant enforcement for the BTCU contracts:

1. Principal validation (standard and contract principals)
2. Clarity-style value types (uint128, bounded printable ASCII)
3. State machine invariant enforcement

Validation failures are caller bugs (an ill-typed transaction would never reach
a deployed contract), so they raise ``ValidationErrors`` instead of producing a
contract error code. Invariant violations indicate implementation bugs.

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional


# =============================================================================
# VALIDATION ERROR TYPES
# =============================================================================

class ValidationError(Exception):
    """Base exception for validation failures."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class ValidationErrors(Exception):
    """Collection of validation errors."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        messages = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Validation failed: {messages}")


class InvariantViolation(Exception):
    """State machine invariant violated."""
    pass


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise ValidationErrors if validation failed."""
        if not self.is_valid:
            raise ValidationErrors(self.errors)

    def require(self) -> Any:
        """Return the sanitized value, raising if validation failed."""
        self.raise_if_invalid()
        return self.sanitized_value

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    # c32 alphabet: digits and uppercase letters without I, L, O, U
    _C32 = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

    # Patterns
    STANDARD_PRINCIPAL_PATTERN = re.compile(r'^S[PMTN][0-9A-HJKMNP-TV-Z]{26,39}$')
    CONTRACT_NAME_PATTERN = re.compile(r'^[a-zA-Z]([a-zA-Z0-9]|[-_])*$')
    PRINTABLE_ASCII_PATTERN = re.compile(r'^[\x20-\x7E]*$')

    # Limits
    UINT128_MAX = 2 ** 128 - 1
    MAX_CONTRACT_NAME_LENGTH = 40

    @classmethod
    def validate_principal(cls, value: Any, field_name: str = "principal") -> ValidationResult:
        """Validate a standard or contract principal."""
        if not isinstance(value, str):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected string, got {type(value).__name__}", value)
            ])

        address, dot, contract_name = value.partition(".")
        errors = []

        if not cls.STANDARD_PRINCIPAL_PATTERN.match(address):
            errors.append(ValidationError(field_name, "Not a valid c32 principal address", value))

        if dot:
            if not contract_name or len(contract_name) > cls.MAX_CONTRACT_NAME_LENGTH:
                errors.append(ValidationError(
                    field_name,
                    f"Contract name must be 1-{cls.MAX_CONTRACT_NAME_LENGTH} chars",
                    value,
                ))
            elif not cls.CONTRACT_NAME_PATTERN.match(contract_name):
                errors.append(ValidationError(field_name, "Invalid contract name", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(value)

    @classmethod
    def validate_contract_principal(cls, value: Any, field_name: str = "contract") -> ValidationResult:
        """Validate a contract principal (``<address>.<name>``)."""
        result = cls.validate_principal(value, field_name)
        if not result.is_valid:
            return result
        if "." not in value:
            return ValidationResult.failure([
                ValidationError(field_name, "Expected a contract principal", value)
            ])
        return result

    @classmethod
    def validate_uint(cls, value: Any, field_name: str = "value") -> ValidationResult:
        """Validate an unsigned 128-bit integer."""
        # bool is an int subclass but never a valid uint
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected uint, got {type(value).__name__}", value)
            ])

        if value < 0:
            return ValidationResult.failure([ValidationError(field_name, "Must be non-negative", value)])

        if value > cls.UINT128_MAX:
            return ValidationResult.failure([ValidationError(field_name, "Exceeds uint128 range", value)])

        return ValidationResult.success(value)

    @classmethod
    def validate_ascii(
        cls,
        value: Any,
        field_name: str,
        max_length: int,
        min_length: int = 1,
    ) -> ValidationResult:
        """Validate a bounded printable-ASCII string (``string-ascii N``)."""
        if not isinstance(value, str):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected string, got {type(value).__name__}", value)
            ])

        errors = []

        if not cls.PRINTABLE_ASCII_PATTERN.match(value):
            errors.append(ValidationError(field_name, "Contains non-printable or non-ASCII characters", value))

        if len(value) < min_length:
            errors.append(ValidationError(field_name, f"Too short (min {min_length} chars)", value))

        if len(value) > max_length:
            errors.append(ValidationError(field_name, f"Too long (max {max_length} chars)", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(value)

    @classmethod
    def validate_bool(cls, value: Any, field_name: str = "flag") -> ValidationResult:
        """Validate a boolean."""
        if not isinstance(value, bool):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected bool, got {type(value).__name__}", value)
            ])
        return ValidationResult.success(value)


# =============================================================================
# STATE MACHINE INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces state machine invariants."""

    @staticmethod
    def check_monotonic_increase(
        field_name: str,
        old_value: int,
        new_value: int,
    ) -> None:
        """Ensure value only increases."""
        if new_value < old_value:
            raise InvariantViolation(
                f"{field_name} must be monotonically increasing: "
                f"cannot go from {old_value} to {new_value}"
            )

    @staticmethod
    def check_non_negative(field_name: str, value: int) -> None:
        """Ensure value is non-negative."""
        if value < 0:
            raise InvariantViolation(f"{field_name} cannot be negative: {value}")

    @staticmethod
    def check_dense_ids(field_name: str, ids: Iterable[int], last_id: int) -> None:
        """Ensure ``ids`` is exactly ``{1..last_id}``."""
        seen = sorted(ids)
        if seen != list(range(1, last_id + 1)):
            raise InvariantViolation(
                f"{field_name} must be exactly 1..{last_id}, got {seen[:10]}"
                f"{'...' if len(seen) > 10 else ''}"
            )

    @staticmethod
    def check_fits_uint(field_name: str, value: int, maximum: Optional[int] = None) -> None:
        """Ensure an arithmetic result stays inside uint128."""
        maximum = Validators.UINT128_MAX if maximum is None else maximum
        if value < 0 or value > maximum:
            raise InvariantViolation(f"{field_name} overflowed uint128: {value}")
