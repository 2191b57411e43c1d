"""
Arrotondamento importi
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Tutti gli importi sono Decimal arrotondati a 2 decimali (ROUND_HALF_UP)
nel momento in cui vengono calcolati.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, str]


def to_money(value: Number) -> Decimal:
    """Converte e arrotonda al centesimo."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Number) -> Decimal:
    """Totale riga: quantità per prezzo unitario, al centesimo."""
    return to_money(to_money(unit_price) * quantity)


def sum_money(values: Iterable[Number]) -> Decimal:
    """Somma esatta di importi, al centesimo."""
    return to_money(sum((to_money(v) for v in values), ZERO))
