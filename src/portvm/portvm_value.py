"""PortVM operand types - immutable tagged values held on the VM stack."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union


# Signed 64-bit range for all integer operands
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def in_int64_range(value: int) -> bool:
    """Check whether an integer fits in a signed 64-bit word."""
    return INT64_MIN <= value <= INT64_MAX


class PortVMValue(ABC):
    """
    Abstract base class for all VM operands.

    All operands are immutable.
    """

    @abstractmethod
    def to_python(self) -> Union[int, str]:
        """Convert to the equivalent Python value."""

    @abstractmethod
    def type_name(self) -> str:
        """Return the operand type name for error messages."""

    @abstractmethod
    def describe(self) -> str:
        """Return a printable representation for traces and errors."""


@dataclass(frozen=True)
class PortVMInteger(PortVMValue):
    """Integer operand."""
    value: int

    def to_python(self) -> int:
        return self.value

    def type_name(self) -> str:
        return "integer"

    def describe(self) -> str:
        return str(self.value)

    def to_text(self) -> str:
        """Canonical decimal text form, used when CONCAT coerces an integer."""
        return str(self.value)


@dataclass(frozen=True)
class PortVMText(PortVMValue):
    """Text operand."""
    value: str

    def to_python(self) -> str:
        return self.value

    def type_name(self) -> str:
        return "text"

    def describe(self) -> str:
        return repr(self.value)
