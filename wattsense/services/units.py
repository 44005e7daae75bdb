"""Unit conversion — fixed-rate IDR <-> kWh and Rupiah display formatting."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from ..exceptions import InvalidUnitError

KWH_RATE_IDR = 1444  # Rupiah per kWh


class Unit(str, Enum):
    IDR = "idr"
    KWH = "kwh"


def _finite(value: Any) -> float:
    """Coerce to float; None, NaN, infinities and junk become 0.0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def to_energy(money: Any, rate: float = KWH_RATE_IDR) -> float:
    """Convert Rupiah to kWh; a non-positive rate yields 0."""
    rate = _finite(rate)
    if rate <= 0:
        return 0.0
    return _finite(money) / rate


def to_money(energy: Any, rate: float = KWH_RATE_IDR) -> float:
    """Convert kWh to Rupiah."""
    return _finite(energy) * rate


def format_idr(value: Any = 0) -> str:
    """Format as zero-decimal Rupiah using id-ID grouping, e.g. ``Rp 1.250.000``."""
    # Half away from zero, not banker's rounding
    amount = int(Decimal(_finite(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    grouped = f"{abs(amount):,}".replace(",", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {grouped}"


def energy_label(money: Any, rate: float = KWH_RATE_IDR) -> str:
    """Rupiah amount with its kWh equivalent: ``Rp 95.000 (65.79 kWh)``."""
    return f"{format_idr(money)} ({to_energy(money, rate):.2f} kWh)"


def parse_unit(unit: Any) -> Unit:
    if isinstance(unit, Unit):
        return unit
    try:
        return Unit(str(unit or Unit.IDR.value).strip().lower())
    except ValueError:
        raise InvalidUnitError(f"Invalid budget unit: {unit!r}") from None
