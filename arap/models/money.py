"""
Money - fixed-point monetary value in integer minor units (cents).

Design principles:
- Never floating point; arithmetic is plain integer arithmetic
- Immutable and hashable
- Decimal strings only at the formatting/wire boundary
- Serializes as a bare integer of minor units
"""

from decimal import Decimal, InvalidOperation
from functools import total_ordering
from typing import Any, Iterable

from arap.core.exceptions import InvalidAmount

_HUNDRED = Decimal(100)


@total_ordering
class Money:
    """Signed amount of minor currency units."""

    __slots__ = ("cents",)

    def __init__(self, cents: int = 0):
        if isinstance(cents, bool) or not isinstance(cents, int):
            raise InvalidAmount(f"Money requires integer minor units, got {cents!r}")
        object.__setattr__(self, "cents", cents)

    # ===== CONSTRUCTORS =====

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, value: Any) -> "Money":
        """
        Parse an amount given in minor units.

        Accepts Money, int, an integral Decimal, or a string of digits with
        an optional sign. Everything else (floats, None, "12.5", "abc")
        raises InvalidAmount.
        """
        if isinstance(value, Money):
            return value
        if isinstance(value, bool) or value is None:
            raise InvalidAmount(f"Amount must be a whole number of minor units, got {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, Decimal):
            if not value.is_finite() or value != value.to_integral_value():
                raise InvalidAmount(f"Amount must be a whole number of minor units, got {value}")
            return cls(int(value))
        if isinstance(value, str):
            text = value.strip()
            digits = text[1:] if text[:1] in ("+", "-") else text
            if not digits.isdigit() or not digits.isascii():
                raise InvalidAmount(f"Amount must be a whole number of minor units, got {value!r}")
            return cls(int(text))
        raise InvalidAmount(f"Amount must be a whole number of minor units, got {value!r}")

    @classmethod
    def from_major(cls, value: Any) -> "Money":
        """Parse a decimal amount in major units ("750.50") with at most two decimals."""
        if isinstance(value, (bool, float)) or value is None:
            raise InvalidAmount(f"Major-unit amount must be a decimal string, got {value!r}")
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmount(f"Not a decimal amount: {value!r}") from None
        if not amount.is_finite():
            raise InvalidAmount(f"Not a finite amount: {value!r}")
        scaled = amount * _HUNDRED
        if scaled != scaled.to_integral_value():
            raise InvalidAmount(f"Amount has more than two decimal places: {value!r}")
        return cls(int(scaled))

    @classmethod
    def sum(cls, values: Iterable["Money"]) -> "Money":
        total = 0
        for value in values:
            total += value.cents
        return cls(total)

    # ===== PREDICATES =====

    def is_zero(self) -> bool:
        return self.cents == 0

    def is_positive(self) -> bool:
        return self.cents > 0

    def is_negative(self) -> bool:
        return self.cents < 0

    # ===== ARITHMETIC =====

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __neg__(self) -> "Money":
        return Money(-self.cents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.cents == other.cents

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.cents < other.cents

    def __hash__(self) -> int:
        return hash(("Money", self.cents))

    # ===== IMMUTABILITY =====

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Money is immutable")

    def __copy__(self) -> "Money":
        return self

    def __deepcopy__(self, memo: dict) -> "Money":
        return self

    def __reduce__(self):
        return (Money, (self.cents,))

    # ===== FORMATTING BOUNDARY =====

    def to_major_string(self) -> str:
        """Plain decimal string in major units, e.g. "-12.05". No currency symbol."""
        sign = "-" if self.cents < 0 else ""
        whole, frac = divmod(abs(self.cents), 100)
        return f"{sign}{whole}.{frac:02d}"

    def __repr__(self) -> str:
        return f"Money({self.cents})"

    def __str__(self) -> str:
        return self.to_major_string()

    # ===== PYDANTIC =====

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any):
        from pydantic_core import core_schema

        from_int = core_schema.no_info_after_validator_function(
            cls, core_schema.int_schema(strict=True)
        )
        return core_schema.json_or_python_schema(
            json_schema=from_int,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_int]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda money: money.cents
            ),
        )
