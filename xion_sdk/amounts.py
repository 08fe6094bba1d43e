# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Token amount conversion and fee calculation.

XION balances are integers in the base denomination (``uxion``); one display
unit (XION) is ``10 ** decimals`` base units. All arithmetic here uses
``Decimal`` so no binary floating point error can creep into amounts.

Conversion is intentionally asymmetric:

- :func:`format_amount` renders base units with exactly six fractional digits.
- :func:`parse_amount` converts display units to base units and truncates
  toward zero. ``parse_amount("1.9999995")`` is ``"1999999"``, so a display
  value with more than ``decimals`` fractional digits loses precision.

Fees are a single-denom product of gas and gas price, rounded up to the next
whole base unit.
"""

from __future__ import annotations

import math
import re
import unittest
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .exceptions import ValidationError
from .transactions import Coin, StdFee

DISPLAY_PLACES = Decimal("0.000001")

GAS_PRICE_PATTERN = re.compile(r"^([0-9]+(?:\.[0-9]+)?)([a-zA-Z][a-zA-Z0-9/:._-]{2,127})$")


def _to_decimal(value: Union[int, str, Decimal], name: str) -> Decimal:
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Invalid {name}: {value}", str(value)) from e
    if not result.is_finite() or result < 0:
        raise ValidationError(f"Invalid {name}: {value}", str(value))
    return result


def format_amount(base_units: Union[int, str], decimals: int = 6) -> str:
    """Converts base units to a display string with six fractional digits."""
    amount = _to_decimal(base_units, "amount") / (Decimal(10) ** decimals)
    return str(amount.quantize(DISPLAY_PLACES, rounding=ROUND_HALF_UP))


def parse_amount(display: Union[int, str, Decimal], decimals: int = 6) -> str:
    """Converts a display amount to base units, truncating extra precision."""
    amount = _to_decimal(display, "amount") * (Decimal(10) ** decimals)
    return str(int(amount.to_integral_value(rounding=ROUND_DOWN)))


def adjust_gas(gas_used: int, gas_adjustment: float) -> int:
    """Scales a simulated gas figure by the adjustment factor, rounding up."""
    return math.ceil(Decimal(gas_used) * Decimal(str(gas_adjustment)))


class GasPrice:
    amount: Decimal
    denom: str

    def __init__(self, amount: Decimal, denom: str):
        self.amount = amount
        self.denom = denom

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GasPrice):
            return NotImplemented
        return self.amount == other.amount and self.denom == other.denom

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"

    @staticmethod
    def from_str(value: str) -> GasPrice:
        match = GAS_PRICE_PATTERN.match(value.strip())
        if not match:
            raise ValidationError(f"Invalid gas price string: {value}", value)
        return GasPrice(Decimal(match.group(1)), match.group(2))


def calculate_fee(gas: int, gas_price: Union[GasPrice, str]) -> StdFee:
    if isinstance(gas_price, str):
        gas_price = GasPrice.from_str(gas_price)
    fee_amount = math.ceil(Decimal(gas) * gas_price.amount)
    return StdFee([Coin(gas_price.denom, str(fee_amount))], gas)


class Test(unittest.TestCase):
    def test_format_amount(self):
        self.assertEqual(format_amount(1_000_000), "1.000000")
        self.assertEqual(format_amount("1"), "0.000001")
        self.assertEqual(format_amount(0), "0.000000")
        self.assertEqual(format_amount("123456789"), "123.456789")

    def test_parse_amount(self):
        self.assertEqual(parse_amount("1.000000"), "1000000")
        self.assertEqual(parse_amount("0.5"), "500000")
        self.assertEqual(parse_amount(2), "2000000")

    def test_parse_truncates(self):
        self.assertEqual(parse_amount("1.9999995"), "1999999")
        self.assertEqual(parse_amount("0.0000009"), "0")

    def test_round_trip(self):
        for base_units in [0, 1, 999_999, 1_000_000, 42_000_001]:
            self.assertEqual(parse_amount(format_amount(base_units)), str(base_units))

    def test_invalid_amounts(self):
        for value in ["abc", "", "-1", "NaN", "Infinity"]:
            with self.assertRaises(ValidationError):
                parse_amount(value)
        with self.assertRaises(ValidationError):
            format_amount("1.2.3")

    def test_gas_price(self):
        gas_price = GasPrice.from_str("0.025uxion")
        self.assertEqual(gas_price.amount, Decimal("0.025"))
        self.assertEqual(gas_price.denom, "uxion")
        for value in ["uxion", "0.025", "0.025 u", "-1uxion"]:
            with self.assertRaises(ValidationError):
                GasPrice.from_str(value)

    def test_calculate_fee(self):
        fee = calculate_fee(200000, "0.025uxion")
        self.assertEqual(fee.amount, [Coin("uxion", "5000")])
        self.assertEqual(fee.gas, 200000)
        self.assertEqual(fee.to_dict()["gas"], "200000")
        self.assertEqual(calculate_fee(1, "0.025uxion").amount[0].amount, "1")
        self.assertEqual(calculate_fee(0, "0.025uxion").amount[0].amount, "0")

    def test_adjust_gas(self):
        self.assertEqual(adjust_gas(100000, 1.3), 130000)
        self.assertEqual(adjust_gas(100001, 1.3), 130002)


if __name__ == "__main__":
    unittest.main()
