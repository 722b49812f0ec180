"""Contratos de entrada/salida de la capa de persistencia.

Las vistas nunca reciben objetos ORM: el gateway convierte cada fila en un
registro inmutable y las peticiones viajan como dataclasses tipadas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


# --- Registros de referencia ---

@dataclass(frozen=True, slots=True)
class CustomerRecord:
    id: int
    full_name: str
    phone: str = ""
    address: str = ""
    email: str | None = None


@dataclass(frozen=True, slots=True)
class UnitRecord:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ProductRecord:
    id: int
    name: str
    price: float | None = None
    unit: str | None = None


# --- Ventas ---

@dataclass(frozen=True, slots=True)
class SaleRecord:
    id: int
    customer_id: int
    date: date
    notes: str | None
    total_amount: float
    paid_amount: float
    created_at: datetime | None = None
    customer_name: str | None = None


@dataclass(frozen=True, slots=True)
class SaleItemRecord:
    id: int
    sale_id: int
    product_id: int
    unit_id: int
    per_price: float
    amount: float
    total: float


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    id: int
    sale_id: int
    amount: float
    date: date


@dataclass(frozen=True, slots=True)
class SaleDetail:
    sale: SaleRecord
    items: tuple[SaleItemRecord, ...] = ()
    payment_count: int = 0


@dataclass(frozen=True, slots=True)
class PaymentMutationResult:
    """Venta actualizada + historial de pagos, leídos en la misma transacción."""
    sale: SaleRecord
    payments: tuple[PaymentRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class SalePage:
    items: tuple[SaleRecord, ...]
    total: int
    page: int
    per_page: int
    total_pages: int


# --- Peticiones ---

@dataclass(frozen=True, slots=True)
class SaleItemInput:
    product_id: int
    unit_id: int
    per_price: float
    amount: float


@dataclass(frozen=True, slots=True)
class CreateSaleRequest:
    customer_id: int
    date: date
    notes: str | None = None
    paid_amount: float = 0.0
    items: tuple[SaleItemInput, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class UpdateSaleRequest:
    id: int
    customer_id: int
    date: date
    notes: str | None = None
    paid_amount: float = 0.0
    items: tuple[SaleItemInput, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class CreatePaymentRequest:
    sale_id: int
    amount: float
    date: date
