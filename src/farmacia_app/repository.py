from __future__ import annotations

import logging
import math
from datetime import date as _date, datetime
from typing import Iterable, Optional

from sqlalchemy import func, or_, String, cast
from sqlalchemy.orm import Session, selectinload

from .models import Base, Customer, Product, Sale, SaleItem, SalePayment, SystemConfig, Unit
from .schemas import SaleItemInput

logger = logging.getLogger(__name__)

DEFAULT_UNITS = ("Unidad", "Caja", "Blíster", "Frasco", "Tableta", "Ampolla")

SALE_SORT_COLUMNS = {
    "date": Sale.date,
    "id": Sale.id,
    "total_amount": Sale.total_amount,
    "paid_amount": Sale.paid_amount,
}


def init_db(engine, seed: bool = True) -> None:
    """Crea tablas y opcionalmente inserta las unidades por defecto."""
    Base.metadata.create_all(bind=engine)
    if not seed:
        return
    with Session(bind=engine) as session:
        existing = {name for (name,) in session.query(Unit.name).all()}
        missing = [Unit(name=n) for n in DEFAULT_UNITS if n not in existing]
        if missing:
            session.add_all(missing)
            session.commit()
            logger.info("Unidades por defecto creadas: %s", ", ".join(u.name for u in missing))


# --- Clientes ---

def list_customers(session: Session) -> list[Customer]:
    """Lista todos los clientes ordenados por ID."""
    return session.query(Customer).order_by(Customer.id.asc()).all()


def add_customer(session: Session, *, full_name: str, phone: str = "", address: str = "",
                 email: str | None = None, notes: str | None = None) -> Customer:
    c = Customer(full_name=full_name, phone=phone, address=address, email=email, notes=notes)
    session.add(c)
    session.commit()
    session.refresh(c)
    return c


def get_customer_by_id(session: Session, customer_id: int) -> Customer | None:
    return session.get(Customer, customer_id)


# --- Unidades ---

def list_units(session: Session) -> list[Unit]:
    return session.query(Unit).order_by(Unit.id.asc()).all()


def add_unit(session: Session, *, name: str) -> Unit:
    u = Unit(name=name)
    session.add(u)
    session.commit()
    session.refresh(u)
    return u


# --- Productos ---

def list_products(session: Session) -> list[Product]:
    return session.query(Product).order_by(Product.id.asc()).all()


def add_product(session: Session, *, name: str, price: float | None = None, unit: str | None = None,
                description: str | None = None, stock_quantity: float | None = None) -> Product:
    p = Product(name=name, price=price, unit=unit, description=description, stock_quantity=stock_quantity)
    session.add(p)
    session.commit()
    session.refresh(p)
    return p


# --- Ventas ---

def _build_items(items: Iterable[SaleItemInput]) -> list[SaleItem]:
    built = []
    for it in items:
        per_price = float(it.per_price)
        amount = float(it.amount)
        built.append(SaleItem(
            product_id=int(it.product_id),
            unit_id=int(it.unit_id),
            per_price=per_price,
            amount=amount,
            total=per_price * amount,
        ))
    return built


def _recalculate_paid_amount(sale: Sale) -> float:
    """paid_amount siempre es la suma de los pagos registrados."""
    sale.paid_amount = sum(float(p.amount) for p in sale.payments)
    return sale.paid_amount


def create_sale(
    session: Session,
    *,
    customer_id: int,
    date: _date,
    notes: str | None = None,
    paid_amount: float = 0.0,
    items: Iterable[SaleItemInput] = (),
) -> Sale:
    """Crea la venta con sus items en una sola transacción.

    Si ``paid_amount`` es mayor a cero se registra como pago inicial con la
    fecha de la venta, de modo que paid_amount == suma de pagos.
    """
    sale_items = _build_items(items)
    sale = Sale(
        customer_id=customer_id,
        date=date,
        notes=notes or None,
        total_amount=sum(it.total for it in sale_items),
        paid_amount=0.0,
    )
    sale.items = sale_items
    if paid_amount and paid_amount > 0:
        sale.payments = [SalePayment(amount=float(paid_amount), date=date)]
    _recalculate_paid_amount(sale)
    try:
        session.add(sale)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(sale)
    logger.info("Venta %s creada (total=%.2f, pagado=%.2f)", sale.id, sale.total_amount, sale.paid_amount)
    return sale


def update_sale(
    session: Session,
    sale_id: int,
    *,
    customer_id: int,
    date: _date,
    notes: str | None = None,
    paid_amount: float = 0.0,
    items: Iterable[SaleItemInput] = (),
) -> Sale | None:
    """Actualiza la cabecera y reemplaza todos los items de la venta."""
    sale = session.get(Sale, sale_id)
    if not sale:
        return None
    try:
        sale.customer_id = customer_id
        sale.date = date
        sale.notes = notes or None
        # Reemplazo completo: delete-orphan elimina los items anteriores
        sale.items = _build_items(items)
        sale.total_amount = sum(it.total for it in sale.items)

        if not sale.payments:
            if paid_amount and paid_amount > 0:
                sale.payments = [SalePayment(amount=float(paid_amount), date=date)]
        elif abs(float(paid_amount or 0.0) - float(sale.paid_amount or 0.0)) > 1e-9:
            logger.warning(
                "Venta %s: paid_amount=%.2f ignorado, la venta ya tiene %d pagos registrados",
                sale_id, paid_amount or 0.0, len(sale.payments),
            )
        _recalculate_paid_amount(sale)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(sale)
    logger.info("Venta %s actualizada (total=%.2f, pagado=%.2f)", sale.id, sale.total_amount, sale.paid_amount)
    return sale


def get_sale_by_id(session: Session, sale_id: int) -> Sale | None:
    return (
        session.query(Sale)
        .options(selectinload(Sale.items), selectinload(Sale.payments), selectinload(Sale.customer))
        .filter(Sale.id == sale_id)
        .first()
    )


def delete_sale_by_id(session: Session, sale_id: int) -> bool:
    obj = session.get(Sale, sale_id)
    if not obj:
        return False
    # items y pagos se eliminan por cascade
    session.delete(obj)
    session.commit()
    logger.info("Venta %s eliminada", sale_id)
    return True


def list_sales(
    session: Session,
    *,
    page: int = 1,
    per_page: int = 10,
    search: str | None = None,
    sort_by: str | None = "date",
    sort_order: str | None = "desc",
) -> tuple[list[Sale], int]:
    """Lista paginada de ventas. Retorna (ventas_de_la_pagina, total)."""
    q = session.query(Sale).outerjoin(Customer, Customer.id == Sale.customer_id)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(
            Customer.full_name.ilike(like),
            Sale.notes.ilike(like),
            cast(Sale.id, String) == term,
        ))
    total = q.count()

    column = SALE_SORT_COLUMNS.get(sort_by or "date", Sale.date)
    ordering = column.asc() if (sort_order or "desc").lower() == "asc" else column.desc()
    # Desempate estable por id
    tie = Sale.id.asc() if (sort_order or "desc").lower() == "asc" else Sale.id.desc()

    page = max(1, int(page or 1))
    per_page = max(1, int(per_page or 10))
    sales = (
        q.options(selectinload(Sale.customer))
        .order_by(ordering, tie)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return sales, total


def total_pages(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page)) if per_page > 0 else 1


# --- Pagos ---

def add_sale_payment(session: Session, sale_id: int, amount: float, date: _date) -> SalePayment:
    """Registrar un pago para una venta existente y recalcular su paid_amount."""
    sale = session.get(Sale, sale_id)
    if not sale:
        raise ValueError(f"Venta {sale_id} no encontrada")
    payment = SalePayment(amount=float(amount), date=date)
    try:
        sale.payments.append(payment)
        _recalculate_paid_amount(sale)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(payment)
    logger.info("Pago %s registrado en venta %s por %.2f", payment.id, sale_id, payment.amount)
    return payment


def list_sale_payments(session: Session, sale_id: int) -> list[SalePayment]:
    return (
        session.query(SalePayment)
        .filter(SalePayment.sale_id == sale_id)
        .order_by(SalePayment.date.asc(), SalePayment.id.asc())
        .all()
    )


def delete_sale_payment(session: Session, payment_id: int) -> Optional[int]:
    """Elimina el pago y retorna el id de la venta afectada (o None si no existe)."""
    payment = session.get(SalePayment, payment_id)
    if not payment:
        return None
    sale = payment.sale
    try:
        sale.payments.remove(payment)
        _recalculate_paid_amount(sale)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Pago %s eliminado de la venta %s", payment_id, sale.id)
    return sale.id


def count_sales(session: Session) -> int:
    return session.query(func.count(Sale.id)).scalar() or 0


def get_sale_display_number(sale_id: int, sale_date: Optional[_date] = None) -> str:
    """Número visible de factura: V-YYYYMMDD-NNN."""
    d = sale_date or datetime.now().date()
    return f"V-{d.strftime('%Y%m%d')}-{sale_id:03d}"


# --- Funciones de Configuración del Sistema ---

def get_system_config(session: Session, key: str, default_value: Optional[str] = None) -> Optional[str]:
    """Obtener un valor de configuración del sistema."""
    config = session.query(SystemConfig).filter(SystemConfig.config_key == key).first()
    return config.config_value if config else default_value


def set_system_config(session: Session, key: str, value: str, description: Optional[str] = None) -> SystemConfig:
    """Establecer un valor de configuración del sistema."""
    config = session.query(SystemConfig).filter(SystemConfig.config_key == key).first()
    if config:
        config.config_value = value
        if description:
            config.description = description
    else:
        config = SystemConfig(config_key=key, config_value=value, description=description)
        session.add(config)
    session.commit()
    session.refresh(config)
    return config
