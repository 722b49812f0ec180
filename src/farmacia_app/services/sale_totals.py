from __future__ import annotations

from typing import Iterable, Protocol


class PricedLine(Protocol):
    per_price: float
    amount: float


def item_total(item: PricedLine) -> float:
    """Total de una línea: precio unitario por cantidad."""
    return item.per_price * item.amount


def invoice_total(items: Iterable[PricedLine]) -> float:
    return sum((item_total(it) for it in items), 0.0)


def remaining(items: Iterable[PricedLine], paid_amount: float) -> float:
    """Saldo pendiente de la factura.

    No se limita a cero: un valor negativo indica que el cliente pagó de más.
    """
    return invoice_total(items) - paid_amount


def balance(total_amount: float, paid_amount: float) -> float:
    """Saldo de una venta ya guardada (total persistido menos pagado)."""
    return total_amount - paid_amount


def format_money(value: float) -> str:
    """Formatea un monto con separador de miles y 2 decimales (solo para mostrar)."""
    return f"{value:,.2f}"
