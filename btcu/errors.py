"""
BTCU Contract Errors and Results

Every public contract call returns a ``Result``: either ``ok`` with a value or
``err`` with one of the stable numeric ``ErrorCode`` values below. Callers
distinguish failures by code only, so the numbers are part of the contract.

Inside a contract, failures are raised as ``ContractError`` and converted to
``Result.failure`` at the entry-point boundary (see ``btcu.contract``).

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Generic, Optional, TypeVar


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCode(IntEnum):
    """Stable contract error codes."""

    NOT_AUTHORIZED = 100  # caller is not the owner / an instructor
    COURSE_NOT_FOUND = 101
    NOT_WHITELISTED = 102
    NOT_ENROLLED = 103  # also: not a certificate holder
    ALREADY_EXISTS = 104  # already enrolled / whitelisted / minted
    UNAUTHORIZED = 108  # fee claim by someone other than the instructor
    INVALID_TOKEN_CONTRACT = 109
    NOT_ENOUGH_SBTC = 7002

    @property
    def description(self) -> str:
        return ERROR_DESCRIPTIONS[self]


# Context-specific aliases. They share numeric values with the codes above.
NOT_OWNER = ErrorCode.NOT_AUTHORIZED
NOT_INSTRUCTOR = ErrorCode.NOT_AUTHORIZED
ALREADY_MINTED = ErrorCode.ALREADY_EXISTS
ALREADY_WHITELISTED = ErrorCode.ALREADY_EXISTS
ALREADY_ENROLLED = ErrorCode.ALREADY_EXISTS


ERROR_DESCRIPTIONS: Dict[ErrorCode, str] = {
    ErrorCode.NOT_AUTHORIZED: "caller not owner/instructor",
    ErrorCode.COURSE_NOT_FOUND: "course not found",
    ErrorCode.NOT_WHITELISTED: "user not whitelisted",
    ErrorCode.NOT_ENROLLED: "user not enrolled / not certificate holder",
    ErrorCode.ALREADY_EXISTS: "already enrolled / already whitelisted / already minted",
    ErrorCode.UNAUTHORIZED: "unauthorized (fee claim)",
    ErrorCode.INVALID_TOKEN_CONTRACT: "token contract not configured or mismatched",
    ErrorCode.NOT_ENOUGH_SBTC: "insufficient token balance",
}


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ContractError(Exception):
    """A contract-level failure carrying a stable error code."""

    def __init__(self, code: IntEnum, message: str = ""):
        self.code = code
        self.message = message or getattr(code, "description", "")
        super().__init__(f"err u{int(code)}: {self.message}")


class UnknownEntryPoint(KeyError):
    """No entry point with the requested name exists on the contract."""

    def __init__(self, contract: str, function: str):
        self.contract = contract
        self.function = function
        super().__init__(f"{contract} has no entry point '{function}'")


# =============================================================================
# RESULT
# =============================================================================

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a contract call: ``ok(value)`` or ``err(code)``."""
    is_ok: bool
    value: Optional[T] = None
    error: Optional[IntEnum] = None

    @classmethod
    def success(cls, value: Any = True) -> "Result":
        return cls(is_ok=True, value=value)

    @classmethod
    def failure(cls, code: IntEnum) -> "Result":
        return cls(is_ok=False, error=code)

    @property
    def is_err(self) -> bool:
        return not self.is_ok

    @property
    def code(self) -> Optional[int]:
        """Numeric error code, or None for a successful result."""
        return int(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """Return the ok value or raise the carried error."""
        if not self.is_ok:
            raise ContractError(self.error)
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        if self.is_ok:
            return {"ok": _plain(self.value)}
        return {"err": self.code}

    def __repr__(self) -> str:
        if self.is_ok:
            return f"ok({self.value!r})"
        return f"err(u{self.code})"


def _plain(value: Any) -> Any:
    """Convert result payloads into JSON/YAML friendly structures."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value
