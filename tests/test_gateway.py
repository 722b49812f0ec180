from datetime import date

import pytest
from sqlalchemy import text

from src.farmacia_app.errors import GATEWAY_MESSAGES, GatewayError
from src.farmacia_app.schemas import CreatePaymentRequest, CreateSaleRequest, SaleItemInput, UpdateSaleRequest
from src.farmacia_app.services.reference_data import load_reference_data


def _create(gateway, catalog, paid=0.0, day=1):
    return gateway.create_sale(CreateSaleRequest(
        customer_id=catalog["ana"],
        date=date(2024, 4, day),
        notes="receta 123",
        paid_amount=paid,
        items=(
            SaleItemInput(product_id=catalog["paracetamol"], unit_id=2, per_price=100.0, amount=2),
            SaleItemInput(product_id=catalog["alcohol"], unit_id=4, per_price=50.0, amount=1),
        ),
    ))


def test_reference_data_loads(gateway, catalog):
    ref = load_reference_data(gateway)
    assert ref.customer_name(catalog["ana"]) == "Ana Pérez"
    assert ref.customer_name(999) == "ID: 999"
    assert ref.unit_by_name("Caja").id == 2
    assert ref.product(catalog["alcohol"]).price is None


def test_create_and_get_sale(gateway, catalog):
    rec = _create(gateway, catalog, paid=150.0)
    assert rec.total_amount == 250.0 and rec.paid_amount == 150.0
    assert rec.customer_name == "Ana Pérez"

    detail = gateway.get_sale(rec.id)
    assert [it.total for it in detail.items] == [200.0, 50.0]
    assert detail.payment_count == 1
    assert [p.amount for p in gateway.get_sale_payments(rec.id)] == [150.0]


def test_update_sale_returns_recomputed_record(gateway, catalog):
    rec = _create(gateway, catalog)
    upd = gateway.update_sale(UpdateSaleRequest(
        id=rec.id, customer_id=catalog["luis"], date=date(2024, 4, 2), notes=None, paid_amount=0.0,
        items=(SaleItemInput(product_id=catalog["paracetamol"], unit_id=2, per_price=90.0, amount=1),),
    ))
    assert upd.total_amount == 90.0
    assert upd.customer_id == catalog["luis"]
    assert len(gateway.get_sale(rec.id).items) == 1


def test_missing_rows_raise_gateway_error(gateway, catalog):
    with pytest.raises(GatewayError) as exc:
        gateway.get_sale(404)
    assert exc.value.operation == "fetch"

    with pytest.raises(GatewayError) as exc:
        gateway.update_sale(UpdateSaleRequest(id=404, customer_id=catalog["ana"], date=date(2024, 1, 1),
                                              notes=None, paid_amount=0.0, items=()))
    assert exc.value.operation == "update"

    with pytest.raises(GatewayError) as exc:
        gateway.delete_sale(404)
    assert exc.value.user_message == GATEWAY_MESSAGES[("sale", "delete")]

    with pytest.raises(GatewayError) as exc:
        gateway.create_sale_payment(CreatePaymentRequest(sale_id=404, amount=1.0, date=date(2024, 1, 1)))
    assert (exc.value.entity, exc.value.operation) == ("payment", "create")

    with pytest.raises(GatewayError):
        gateway.delete_sale_payment(404)


def test_foreign_key_violation_is_wrapped(gateway):
    with pytest.raises(GatewayError) as exc:
        gateway.create_sale(CreateSaleRequest(
            customer_id=12345, date=date(2024, 1, 1),
            items=(SaleItemInput(product_id=1, unit_id=1, per_price=1.0, amount=1),),
        ))
    assert exc.value.operation == "create"
    assert exc.value.user_message == "Error al registrar la venta."


def test_missing_table_maps_to_fetch_error(gateway, session_factory):
    with session_factory() as s:
        s.execute(text("DROP TABLE sale_payments"))
        s.commit()
    with pytest.raises(GatewayError) as exc:
        gateway.get_sale_payments(1)
    assert exc.value.user_message == "Error al obtener los pagos de la venta."


def test_payment_mutations_return_sale_and_history(gateway, catalog):
    rec = _create(gateway, catalog)
    res = gateway.create_sale_payment(CreatePaymentRequest(sale_id=rec.id, amount=100.0, date=date(2024, 4, 3)))
    assert res.sale.paid_amount == 100.0
    assert len(res.payments) == 1

    res = gateway.delete_sale_payment(res.payments[0].id)
    assert res.sale.paid_amount == 0.0
    assert res.payments == ()


def test_list_sales_page(gateway, catalog):
    for day in range(1, 8):
        _create(gateway, catalog, day=day)
    page = gateway.list_sales(page=2, per_page=3)
    assert page.total == 7 and page.total_pages == 3 and page.page == 2
    assert [s.date.day for s in page.items] == [4, 3, 2]
    assert gateway.list_sales(search="receta").total == 7
    assert gateway.list_sales(search="nada").items == ()


def test_delete_sale(gateway, catalog):
    rec = _create(gateway, catalog, paid=10.0)
    gateway.delete_sale(rec.id)
    with pytest.raises(GatewayError):
        gateway.get_sale(rec.id)


def test_wrapped_failure_is_not_logged_as_error_by_gateway(gateway, caplog):
    with caplog.at_level("DEBUG", logger="src.farmacia_app.gateway"):
        with pytest.raises(GatewayError):
            gateway.create_sale(CreateSaleRequest(
                customer_id=12345, date=date(2024, 1, 1),
                items=(SaleItemInput(product_id=1, unit_id=1, per_price=1.0, amount=1),),
            ))
    gateway_records = [r for r in caplog.records if r.name == "src.farmacia_app.gateway"]
    assert gateway_records
    assert all(r.levelname == "DEBUG" for r in gateway_records)
