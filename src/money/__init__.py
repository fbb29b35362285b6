"""
Money value type for the dropshipping simulation.

Amounts are held as ``Decimal`` quantized to cents so that ledger identities
such as ``profit == revenue - expenses`` hold exactly. The simulation books
everything in dollars; the currency code only guards against mixing amounts
from a catalog that reports something else.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any, Iterable, Union

CENTS = Decimal("0.01")

Numeric = Union[int, float, Decimal]


def _to_decimal(value: Union[Numeric, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from expanding to their binary representation
    return Decimal(str(value))


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        object.__setattr__(self, "currency", self.currency.upper())
        object.__setattr__(
            self, "amount", _to_decimal(self.amount).quantize(CENTS, rounding=ROUND_HALF_EVEN)
        )

    @classmethod
    def zero(cls, currency: str = "USD") -> Money:
        return cls(Decimal(0), currency)

    @classmethod
    def from_dollars(cls, amount: Union[Numeric, str], currency: str = "USD") -> Money:
        return cls(_to_decimal(amount), currency)

    def to_float(self) -> float:
        """Dollar value as float, used by JSON snapshots and API payloads."""
        return float(self.amount)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount}"

    def __repr__(self) -> str:
        return f"Money('{self.amount}', '{self.currency}')"

    def _check(self, other: Any, op: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {op} Money and {type(other).__name__}")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {op} Money of different currencies")

    def __add__(self, other: Money) -> Money:
        self._check(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __radd__(self, other: Any) -> Money:
        # Lets the builtin sum() start from 0
        if other == 0:
            return self
        return self.__add__(other)

    def __sub__(self, other: Money) -> Money:
        self._check(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, other: Numeric) -> Money:
        if isinstance(other, Money):
            raise TypeError("Cannot multiply Money by Money")
        return Money(self.amount * _to_decimal(other), self.currency)

    def __rmul__(self, other: Numeric) -> Money:
        return self.__mul__(other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError("Cannot compare Money of different currencies")
        return self.amount == other.amount

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: Money) -> bool:
        self._check(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._check(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._check(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._check(other, "compare")
        return self.amount >= other.amount

    def is_negative(self) -> bool:
        return self.amount < 0


def sum_money(values: Iterable[Money], currency: str = "USD") -> Money:
    """Sum an iterable of Money, returning zero for an empty iterable."""
    total = Money.zero(currency)
    for value in values:
        total = total + value
    return total


def max_money(a: Money, b: Money) -> Money:
    return a if a >= b else b


__all__ = ["Money", "max_money", "sum_money"]
