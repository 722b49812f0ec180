from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Protocol

from ..repository import get_sale_display_number
from ..schemas import (
    CustomerRecord,
    PaymentRecord,
    ProductRecord,
    SaleDetail,
    SaleItemRecord,
    SaleRecord,
    UnitRecord,
)
from .reference_data import ReferenceData
from .sale_totals import balance, item_total

DEFAULT_COMPANY_NAME = "Farmacia"


class NameResolver(Protocol):
    def product(self, product_id: int | None) -> ProductRecord | None: ...
    def unit(self, unit_id: int | None) -> UnitRecord | None: ...


@dataclass(frozen=True, slots=True)
class CompanyInfo:
    name: str = DEFAULT_COMPANY_NAME
    address: str = ""
    phone: str = ""


@dataclass(frozen=True, slots=True)
class InvoiceLine:
    position: int
    product: str
    unit: str
    per_price: float
    amount: float
    total: float


@dataclass(frozen=True, slots=True)
class InvoiceSummary:
    total: float
    paid: float
    remaining: float


@dataclass(frozen=True, slots=True)
class InvoiceDocument:
    number: str
    sale_id: int
    date: date
    company: CompanyInfo
    customer_name: str
    customer_phone: str
    customer_address: str
    lines: tuple[InvoiceLine, ...]
    summary: InvoiceSummary
    payments: tuple[PaymentRecord, ...] = ()
    notes: str | None = None


def render_invoice(
    sale: SaleRecord,
    items: Iterable[SaleItemRecord],
    customer: CustomerRecord | None,
    resolver: NameResolver,
    *,
    payments: Iterable[PaymentRecord] = (),
    company: CompanyInfo | None = None,
) -> InvoiceDocument:
    """Arma el documento imprimible de una venta guardada.

    Producto o unidad inexistentes se muestran con su id numérico. El saldo
    es total - pagado sin limitar a cero.
    """
    lines = []
    for pos, it in enumerate(items, start=1):
        product = resolver.product(it.product_id)
        unit = resolver.unit(it.unit_id)
        lines.append(InvoiceLine(
            position=pos,
            product=product.name if product else str(it.product_id),
            unit=unit.name if unit else str(it.unit_id),
            per_price=it.per_price,
            amount=it.amount,
            total=item_total(it),
        ))

    return InvoiceDocument(
        number=get_sale_display_number(sale.id, sale.date),
        sale_id=sale.id,
        date=sale.date,
        company=company or CompanyInfo(),
        customer_name=customer.full_name if customer else "-",
        customer_phone=(customer.phone if customer else "") or "-",
        customer_address=(customer.address if customer else "") or "-",
        lines=tuple(lines),
        summary=InvoiceSummary(
            total=sale.total_amount,
            paid=sale.paid_amount,
            remaining=balance(sale.total_amount, sale.paid_amount),
        ),
        payments=tuple(payments),
        notes=sale.notes,
    )


@dataclass(frozen=True, slots=True)
class InvoiceBundle:
    """Todo lo que necesita quien muestra o imprime la factura."""
    sale_data: SaleDetail
    customer: CustomerRecord | None
    products: tuple[ProductRecord, ...]
    units: tuple[UnitRecord, ...]
    payments: tuple[PaymentRecord, ...] = ()


def render_bundle(bundle: InvoiceBundle, company: CompanyInfo | None = None) -> InvoiceDocument:
    resolver = ReferenceData(products=bundle.products, units=bundle.units)
    return render_invoice(
        bundle.sale_data.sale,
        bundle.sale_data.items,
        bundle.customer,
        resolver,
        payments=bundle.payments,
        company=company,
    )
