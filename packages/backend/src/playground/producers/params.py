"""Request parameters handed to producers.

Learn: Producers read their inputs from the page's query string. Only
the first value of a repeated key counts (?rate=5&rate=7 → "5"), and
numbers are parsed as Decimal so money-like values keep their precision.
A value that does not parse is an InvalidParameterError, which the
route turns into a 400 — it is the caller's mistake, not the server's.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from playground.errors import InvalidParameterError

# Unbounded integer parameters are still capped at this many digits
MAX_INT_DIGITS = 18


class Params(dict[str, str]):
    """String-to-string parameter map with typed getters."""

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "Params":
        """Build from (key, value) pairs, keeping the first value per key."""
        params = cls()
        for key, value in pairs:
            params.setdefault(key, value)
        return params

    def get_string(self, key: str, default: str) -> str:
        return self.get(key, default)

    def get_decimal(self, key: str, default: Decimal) -> Decimal:
        if key not in self:
            return default
        raw = self[key]
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            raise InvalidParameterError(key, raw, "not a decimal number")
        if not value.is_finite():
            raise InvalidParameterError(key, raw, "must be finite")
        return value

    def get_int(
        self,
        key: str,
        default: int,
        *,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
    ) -> int:
        """Integer parameter, optionally bounded (inclusive).

        Bounds are checked on the Decimal, before int() would expand an
        exponent like 1e2000000 into millions of digits.
        """
        value = self.get_decimal(key, Decimal(default))
        raw = self.get(key, str(default))
        if minimum is not None and value < minimum:
            raise InvalidParameterError(key, raw, f"must be >= {minimum}")
        if maximum is not None and value > maximum:
            raise InvalidParameterError(key, raw, f"must be <= {maximum}")
        if value.adjusted() >= MAX_INT_DIGITS:
            raise InvalidParameterError(key, raw, "too large")
        if value != value.to_integral_value():
            raise InvalidParameterError(key, raw, "not a whole number")
        return int(value)
