"""
Numeric policy for chronobranch arithmetic.

Ints are fixed-width (32-bit by default) and floats are IEEE doubles; when a
result does not fit, the policy decides what happens:

    flag      raise NumericOverflowError (default)
    saturate  clamp to the nearest representable bound
    wrap      ints wrap two's-complement; floats are recomputed exactly and
              reduced into [-max, max] modulo 2*max
"""

from enum import Enum
from fractions import Fraction
from typing import Callable, Dict, Optional
import math
import operator
import sys

from .values import Value, int_val, float_val, list_val, set_val
from ..types import INT, FLOAT, LIST, SET
from ..errors import NumericOverflowError, TypeMismatchError


class NumericPolicy(Enum):
    """What arithmetic does with results that do not fit."""
    FLAG = "flag"
    SATURATE = "saturate"
    WRAP = "wrap"

    @classmethod
    def parse(cls, text: str) -> "NumericPolicy":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown numeric policy '{text}' (expected one of: {choices})")


FLOAT_MAX = sys.float_info.max
_FLOAT_MAX_EXACT = Fraction(FLOAT_MAX)

_EXACT_OPS: Dict[str, Callable] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


class Arithmetic:
    """
    Policy-aware arithmetic over int and float Values.

    Usage:
        arith = Arithmetic(NumericPolicy.SATURATE)
        arith.binary("+", int_val(2**31 - 1), int_val(1))   # -> int 2147483647
    """

    def __init__(self, policy: NumericPolicy = NumericPolicy.FLAG, int_bits: int = 32):
        if int_bits < 2:
            raise ValueError("int_bits must be at least 2")
        self.policy = policy
        self.int_bits = int_bits
        self.int_min = -(1 << (int_bits - 1))
        self.int_max = (1 << (int_bits - 1)) - 1

    # -- constructors -------------------------------------------------------

    def make_int(self, n: int, what: str = "integer") -> Value:
        """Build an int Value, applying the policy if ``n`` is out of range."""
        if self.int_min <= n <= self.int_max:
            return int_val(n)
        if self.policy == NumericPolicy.SATURATE:
            return int_val(self.int_max if n > self.int_max else self.int_min)
        if self.policy == NumericPolicy.WRAP:
            span = 1 << self.int_bits
            return int_val(((n - self.int_min) % span) + self.int_min)
        raise NumericOverflowError(
            f"{what} ({n}) does not fit in a {self.int_bits}-bit int "
            f"[{self.int_min}, {self.int_max}]",
            hints=["use a float, or run with --numeric-policy saturate|wrap"],
        )

    def make_float(self, x: float, exact: Optional[Fraction] = None, what: str = "float") -> Value:
        """
        Build a float Value, applying the policy if ``x`` is not finite.

        ``exact`` is the true result when known (needed to wrap); without it
        wrap falls back to saturation.
        """
        if math.isfinite(x):
            return float_val(x)
        if math.isnan(x):
            raise NumericOverflowError(f"{what} has no numeric value (NaN)")
        if self.policy == NumericPolicy.SATURATE or (
                self.policy == NumericPolicy.WRAP and exact is None):
            return float_val(math.copysign(FLOAT_MAX, x))
        if self.policy == NumericPolicy.WRAP:
            span = 2 * _FLOAT_MAX_EXACT
            wrapped = ((exact + _FLOAT_MAX_EXACT) % span) - _FLOAT_MAX_EXACT
            return float_val(float(wrapped))
        raise NumericOverflowError(
            f"{what} overflows the float range (magnitude above {FLOAT_MAX!r})",
            hints=["run with --numeric-policy saturate|wrap to keep going"],
        )

    def float_literal(self, value: float, text: str) -> Value:
        """Build a float from a source literal, keeping its exact value for wrap."""
        exact = None
        if not math.isfinite(value) and text:
            exact = Fraction(text)
        return self.make_float(value, exact, what=f"float literal {text}")

    def admit(self, value: Value, what: str = "value") -> Value:
        """Apply the width and overflow rules to every number inside ``value``."""
        if value.type == INT:
            return self.make_int(value.data, what=what)
        if value.type == FLOAT:
            return self.make_float(value.data, what=what)
        if value.type == LIST:
            return list_val(self.admit(v, what) for v in value.data)
        if value.type == SET:
            return set_val(self.admit(v, what) for v in value.data)
        return value

    # -- operations ---------------------------------------------------------

    def negate(self, value: Value) -> Value:
        self._require_numeric("-", value)
        if value.type == INT:
            return self.make_int(-value.data, what="negation result")
        return float_val(-value.data)

    def binary(self, op: str, left: Value, right: Value) -> Value:
        """Apply ``op`` (one of + - * / // %) to two numeric Values."""
        self._require_numeric(op, left)
        self._require_numeric(op, right)

        if op in ("/", "//", "%") and right.data == 0:
            raise NumericOverflowError(
                f"division by zero in {left} {op} {right}",
                hints=["division by zero has no result under any numeric policy"],
            )

        if left.type == INT and right.type == INT and op != "/":
            a, b = left.data, right.data
            if op == "+":
                result = a + b
            elif op == "-":
                result = a - b
            elif op == "*":
                result = a * b
            elif op == "//":
                result = a // b
            elif op == "%":
                result = a % b
            else:
                raise TypeMismatchError(f"unsupported int operator '{op}'")
            return self.make_int(result, what=f"result of {a} {op} {b}")

        return self._float_op(op, float(left.data), float(right.data))

    def _float_op(self, op: str, a: float, b: float) -> Value:
        try:
            if op == "+":
                result = a + b
            elif op == "-":
                result = a - b
            elif op == "*":
                result = a * b
            elif op == "/":
                result = a / b
            elif op == "//":
                result = float(math.floor(a / b))
            elif op == "%":
                result = math.fmod(a, b)
                if result and (result < 0) != (b < 0):
                    result += b
            else:
                raise TypeMismatchError(f"unsupported float operator '{op}'")
        except OverflowError:
            result = math.inf if (a >= 0) == (b >= 0) else -math.inf

        if math.isfinite(result):
            return float_val(result)

        exact = None
        if op in _EXACT_OPS:
            exact = _EXACT_OPS[op](Fraction(a), Fraction(b))
            if result != result:  # NaN cannot come from finite operands; keep the exact sign
                result = math.copysign(math.inf, exact)
        return self.make_float(result, exact, what=f"result of {a!r} {op} {b!r}")

    @staticmethod
    def _require_numeric(op: str, value: Value) -> None:
        if value.type not in (INT, FLOAT):
            raise TypeMismatchError(
                f"operator '{op}' expects int or float, found {value.type}"
            )
