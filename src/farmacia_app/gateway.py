from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import repository as repo
from .errors import GatewayError
from .models import Customer, Product, Sale, SaleItem, SalePayment, Unit
from .schemas import (
    CreatePaymentRequest,
    CreateSaleRequest,
    CustomerRecord,
    PaymentMutationResult,
    PaymentRecord,
    ProductRecord,
    SaleDetail,
    SaleItemRecord,
    SalePage,
    SaleRecord,
    UnitRecord,
    UpdateSaleRequest,
)

logger = logging.getLogger(__name__)


# --- Conversión ORM -> registros ---

def _customer_record(c: Customer) -> CustomerRecord:
    return CustomerRecord(id=c.id, full_name=c.full_name, phone=c.phone or "", address=c.address or "", email=c.email)


def _product_record(p: Product) -> ProductRecord:
    return ProductRecord(id=p.id, name=p.name, price=p.price, unit=p.unit)


def _unit_record(u: Unit) -> UnitRecord:
    return UnitRecord(id=u.id, name=u.name)


def _sale_record(s: Sale) -> SaleRecord:
    customer = s.customer
    return SaleRecord(
        id=s.id,
        customer_id=s.customer_id,
        date=s.date,
        notes=s.notes,
        total_amount=float(s.total_amount or 0.0),
        paid_amount=float(s.paid_amount or 0.0),
        created_at=s.created_at,
        customer_name=customer.full_name if customer is not None else None,
    )


def _item_record(it: SaleItem) -> SaleItemRecord:
    return SaleItemRecord(
        id=it.id,
        sale_id=it.sale_id,
        product_id=it.product_id,
        unit_id=it.unit_id,
        per_price=float(it.per_price),
        amount=float(it.amount),
        total=float(it.total),
    )


def _payment_record(p: SalePayment) -> PaymentRecord:
    return PaymentRecord(id=p.id, sale_id=p.sale_id, amount=float(p.amount), date=p.date)


class SalesGateway:
    """Frontera de persistencia del flujo de ventas.

    Cada operación abre su propia sesión y transacción. Los errores de la base
    de datos (y las filas inexistentes) se convierten en ``GatewayError`` con
    el tipo de operación; el detalle queda en el log.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str, entity: str = "sale") -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except GatewayError:
            raise
        except (SQLAlchemyError, ValueError) as exc:
            # El registro con traceback lo hace quien atiende el error
            logger.debug("Fallo en operación %s/%s", entity, operation, exc_info=True)
            raise GatewayError(operation, entity, detail=str(exc)) from exc

    # --- Datos de referencia ---

    def get_customers(self) -> tuple[CustomerRecord, ...]:
        with self._session("fetch", "reference") as s:
            return tuple(_customer_record(c) for c in repo.list_customers(s))

    def get_products(self) -> tuple[ProductRecord, ...]:
        with self._session("fetch", "reference") as s:
            return tuple(_product_record(p) for p in repo.list_products(s))

    def get_units(self) -> tuple[UnitRecord, ...]:
        with self._session("fetch", "reference") as s:
            return tuple(_unit_record(u) for u in repo.list_units(s))

    # --- Ventas ---

    def create_sale(self, request: CreateSaleRequest) -> SaleRecord:
        with self._session("create") as s:
            sale = repo.create_sale(
                s,
                customer_id=request.customer_id,
                date=request.date,
                notes=request.notes,
                paid_amount=request.paid_amount,
                items=request.items,
            )
            return _sale_record(sale)

    def update_sale(self, request: UpdateSaleRequest) -> SaleRecord:
        with self._session("update") as s:
            sale = repo.update_sale(
                s,
                request.id,
                customer_id=request.customer_id,
                date=request.date,
                notes=request.notes,
                paid_amount=request.paid_amount,
                items=request.items,
            )
            if sale is None:
                raise GatewayError("update", detail=f"Venta {request.id} no encontrada")
            return _sale_record(sale)

    def get_sale(self, sale_id: int) -> SaleDetail:
        with self._session("fetch") as s:
            sale = repo.get_sale_by_id(s, sale_id)
            if sale is None:
                raise GatewayError("fetch", detail=f"Venta {sale_id} no encontrada")
            return SaleDetail(
                sale=_sale_record(sale),
                items=tuple(_item_record(it) for it in sale.items),
                payment_count=len(sale.payments),
            )

    def delete_sale(self, sale_id: int) -> None:
        with self._session("delete") as s:
            if not repo.delete_sale_by_id(s, sale_id):
                raise GatewayError("delete", detail=f"Venta {sale_id} no encontrada")

    def list_sales(self, page: int = 1, per_page: int = 10, search: str = "",
                   sort_by: str = "date", sort_order: str = "desc") -> SalePage:
        with self._session("fetch") as s:
            sales, total = repo.list_sales(
                s, page=page, per_page=per_page, search=search, sort_by=sort_by, sort_order=sort_order
            )
            return SalePage(
                items=tuple(_sale_record(x) for x in sales),
                total=total,
                page=max(1, page),
                per_page=per_page,
                total_pages=repo.total_pages(total, per_page),
            )

    # --- Pagos ---

    def _payment_result(self, s: Session, sale_id: int) -> PaymentMutationResult:
        sale = repo.get_sale_by_id(s, sale_id)
        if sale is None:
            raise ValueError(f"Venta {sale_id} no encontrada")
        payments = repo.list_sale_payments(s, sale_id)
        return PaymentMutationResult(sale=_sale_record(sale), payments=tuple(_payment_record(p) for p in payments))

    def create_sale_payment(self, request: CreatePaymentRequest) -> PaymentMutationResult:
        """Registra el pago y devuelve la venta y su historial ya actualizados."""
        with self._session("create", "payment") as s:
            repo.add_sale_payment(s, request.sale_id, request.amount, request.date)
            return self._payment_result(s, request.sale_id)

    def get_sale_payments(self, sale_id: int) -> tuple[PaymentRecord, ...]:
        with self._session("fetch", "payment") as s:
            return tuple(_payment_record(p) for p in repo.list_sale_payments(s, sale_id))

    def delete_sale_payment(self, payment_id: int) -> PaymentMutationResult:
        with self._session("delete", "payment") as s:
            sale_id = repo.delete_sale_payment(s, payment_id)
            if sale_id is None:
                raise GatewayError("delete", "payment", detail=f"Pago {payment_id} no encontrado")
            return self._payment_result(s, sale_id)
