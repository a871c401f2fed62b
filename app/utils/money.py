"""
Currency-tagged amounts.

Two unit systems coexist: package prices are in USD, the ledger and tree
volume are in platform tokens. Amount keeps the unit next to the value so
they cannot be mixed by accident.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum


class Currency(StrEnum):
    """Units used by the platform."""

    USD = "USD"
    TOKEN = "TOKEN"  # Ledger / volume unit


@dataclass(frozen=True)
class Amount:
    """Decimal value with its currency."""

    value: Decimal
    currency: Currency

    @classmethod
    def zero(cls, currency: Currency) -> "Amount":
        return cls(Decimal("0"), currency)

    @classmethod
    def usd(cls, value: Decimal | int | str) -> "Amount":
        return cls(Decimal(str(value)), Currency.USD)

    @classmethod
    def tokens(cls, value: Decimal | int | str) -> "Amount":
        return cls(Decimal(str(value)), Currency.TOKEN)

    def _check(self, other: "Amount") -> None:
        if not isinstance(other, Amount):
            raise TypeError(f"Cannot combine Amount with {type(other).__name__}")
        if other.currency != self.currency:
            raise TypeError(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )

    def __add__(self, other: "Amount") -> "Amount":
        self._check(other)
        return Amount(self.value + other.value, self.currency)

    def __sub__(self, other: "Amount") -> "Amount":
        self._check(other)
        return Amount(self.value - other.value, self.currency)

    def __mul__(self, factor: Decimal | int) -> "Amount":
        if isinstance(factor, Amount):
            raise TypeError("Cannot multiply two amounts")
        return Amount(self.value * Decimal(str(factor)), self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Amount") -> bool:
        self._check(other)
        return self.value < other.value

    def __le__(self, other: "Amount") -> bool:
        self._check(other)
        return self.value <= other.value

    def __gt__(self, other: "Amount") -> bool:
        self._check(other)
        return self.value > other.value

    def __ge__(self, other: "Amount") -> bool:
        self._check(other)
        return self.value >= other.value

    def convert(self, rate: Decimal, to: Currency) -> "Amount":
        """
        Convert to another currency by multiplying with rate.

        Args:
            rate: Units of target currency per unit of this currency
            to: Target currency

        Returns:
            Converted amount
        """
        return Amount(self.value * rate, to)

    def quantize(self, quantum: Decimal) -> "Amount":
        """Round half-up to the given quantum."""
        return Amount(
            self.value.quantize(quantum, rounding=ROUND_HALF_UP), self.currency
        )

    def __str__(self) -> str:
        return f"{self.value} {self.currency}"


def usd_to_tokens(
    usd: Amount, token_price_usd: Decimal, quantum: Decimal
) -> Amount:
    """
    Convert a USD amount to tokens at a given token price.

    Args:
        usd: Amount in USD
        token_price_usd: Price of one token in USD (must be > 0)
        quantum: Token rounding quantum

    Returns:
        Token amount rounded half-up to quantum
    """
    if usd.currency != Currency.USD:
        raise TypeError(f"Expected USD amount, got {usd.currency}")
    if token_price_usd <= 0:
        raise ValueError("Token price must be positive")
    return Amount(usd.value / token_price_usd, Currency.TOKEN).quantize(quantum)
