from __future__ import annotations

from datetime import date as _date, datetime
from typing import List

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base declarativa común para todos los modelos."""
    pass


# --- Datos de referencia ---

class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    address: Mapped[str] = mapped_column(String(300), default="", nullable=False)
    email: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"Customer(id={self.id!r}, full_name={self.full_name!r})"


class Unit(Base):
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"Unit(id={self.id!r}, name={self.name!r})"


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[float | None] = mapped_column(Float)  # Precio de catálogo (opcional)
    unit: Mapped[str | None] = mapped_column(String(80))  # Nombre de la unidad, se resuelve contra units.name
    stock_quantity: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"Product(id={self.id!r}, name={self.name!r}, price={self.price!r})"


# --- Ventas ---

class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(Integer, ForeignKey("customers.id"), nullable=False)
    date: Mapped[_date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000))

    # total_amount = suma de (per_price * amount) de los items
    total_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    # paid_amount = suma de sale_payments (se recalcula en cada mutación de pagos)
    paid_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer: Mapped["Customer"] = relationship("Customer")
    items: Mapped[List["SaleItem"]] = relationship(
        "SaleItem", back_populates="sale", cascade="all, delete-orphan", order_by="SaleItem.id"
    )
    payments: Mapped[List["SalePayment"]] = relationship(
        "SalePayment", back_populates="sale", cascade="all, delete-orphan", order_by="SalePayment.id"
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"Sale(id={self.id!r}, customer_id={self.customer_id!r}, total={self.total_amount!r}, paid={self.paid_amount!r})"


class SaleItem(Base):
    __tablename__ = "sale_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey("sales.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    per_price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # Precio copiado al momento de la venta
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # Cantidad
    total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="items")

    def __repr__(self) -> str:
        return f"SaleItem(id={self.id!r}, product_id={self.product_id!r}, qty={self.amount!r})"


class SalePayment(Base):
    __tablename__ = "sale_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey("sales.id"), nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    date: Mapped[_date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="payments")

    def __repr__(self) -> str:
        return f"SalePayment(id={self.id!r}, sale_id={self.sale_id!r}, amount={self.amount!r})"


# --- Configuración del sistema ---

class SystemConfig(Base):
    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    config_value: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:  # pragma: no cover
        return f"SystemConfig(key={self.config_key!r}, value={self.config_value!r})"
