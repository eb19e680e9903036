"""Escrow program error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    ASSET = 0x05
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_COMMAND = 0x0100
    NOT_ENOUGH_ACCOUNT_KEYS = 0x0101
    INVALID_DERIVED_ADDRESS = 0x0102
    INVALID_RECORD_DATA = 0x0103

    # Authorization
    MISSING_SIGNATURE = 0x0200
    WRONG_PARTICIPANT = 0x0201
    NOT_OWNED_BY_PROTOCOL = 0x0202

    # Resource
    INSUFFICIENT_FUNDS = 0x0300
    ARITHMETIC_OVERFLOW = 0x0301

    # State
    WRONG_STATE = 0x0400
    ALREADY_SET = 0x0401
    UNINITIALIZED_RECORD = 0x0402

    # Asset
    WRONG_ASSET_PROGRAM = 0x0500
    WRONG_ASSET_TYPE = 0x0501

    # Internal
    INTERNAL_ERROR = 0xFF00
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class SpecError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = SpecError.__setattr__


def _spec_error_setattr(self: SpecError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


SpecError.__setattr__ = _spec_error_setattr  # type: ignore[method-assign]
