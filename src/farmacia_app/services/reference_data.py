from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..schemas import CustomerRecord, ProductRecord, UnitRecord


class ReferenceSource(Protocol):
    def get_customers(self) -> tuple[CustomerRecord, ...]: ...
    def get_products(self) -> tuple[ProductRecord, ...]: ...
    def get_units(self) -> tuple[UnitRecord, ...]: ...


@dataclass(frozen=True, slots=True)
class ReferenceData:
    """Clientes, productos y unidades cargados al abrir la pantalla.

    Los nombres se resuelven por id; si el id no existe se muestra ``ID: n``.
    """
    customers: tuple[CustomerRecord, ...] = ()
    products: tuple[ProductRecord, ...] = ()
    units: tuple[UnitRecord, ...] = ()

    def customer(self, customer_id: int | None) -> CustomerRecord | None:
        return next((c for c in self.customers if c.id == customer_id), None)

    def product(self, product_id: int | None) -> ProductRecord | None:
        return next((p for p in self.products if p.id == product_id), None)

    def unit(self, unit_id: int | None) -> UnitRecord | None:
        return next((u for u in self.units if u.id == unit_id), None)

    def unit_by_name(self, name: str | None) -> UnitRecord | None:
        if not name:
            return None
        return next((u for u in self.units if u.name == name), None)

    def customer_name(self, customer_id: int | None) -> str:
        c = self.customer(customer_id)
        return c.full_name if c else f"ID: {customer_id}"

    def product_name(self, product_id: int | None) -> str:
        p = self.product(product_id)
        return p.name if p else f"ID: {product_id}"

    def unit_name(self, unit_id: int | None) -> str:
        u = self.unit(unit_id)
        return u.name if u else f"ID: {unit_id}"


def load_reference_data(source: ReferenceSource) -> ReferenceData:
    return ReferenceData(
        customers=tuple(source.get_customers()),
        products=tuple(source.get_products()),
        units=tuple(source.get_units()),
    )
