from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from src.farmacia_app.models import Base, Sale, SaleItem, SalePayment, Unit
from src.farmacia_app import repository as repo
from src.farmacia_app.schemas import SaleItemInput


def _session():
    engine = create_engine("sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False})
    repo.init_db(engine, seed=True)
    return Session(bind=engine, expire_on_commit=False)


def _items(*pairs):
    return [SaleItemInput(product_id=1, unit_id=1, per_price=p, amount=a) for p, a in pairs]


def _seed(session):
    c = repo.add_customer(session, full_name="María Rojas", phone="0414")
    repo.add_product(session, name="Ibuprofeno", price=35.0, unit="Caja")
    return c


def test_init_db_seeds_units_once():
    with _session() as s:
        engine = s.get_bind()
        repo.init_db(engine, seed=True)
        names = [u.name for u in repo.list_units(s)]
        assert names == list(repo.DEFAULT_UNITS)
        assert s.query(Unit).count() == len(repo.DEFAULT_UNITS)


def test_create_sale_persists_totals_and_initial_payment():
    with _session() as s:
        c = _seed(s)
        sale = repo.create_sale(s, customer_id=c.id, date=date(2024, 5, 2), notes="mostrador",
                                paid_amount=150.0, items=_items((100.0, 2), (50.0, 1)))
        assert sale.total_amount == 250.0
        assert [it.total for it in sale.items] == [200.0, 50.0]
        assert sale.paid_amount == 150.0
        assert [(p.amount, p.date) for p in sale.payments] == [(150.0, date(2024, 5, 2))]


def test_update_sale_replaces_items_and_applies_paid_without_payments():
    with _session() as s:
        c = _seed(s)
        sale = repo.create_sale(s, customer_id=c.id, date=date(2024, 5, 2), items=_items((10.0, 1)))
        updated = repo.update_sale(s, sale.id, customer_id=c.id, date=date(2024, 5, 3), notes=None,
                                   paid_amount=5.0, items=_items((20.0, 2), (1.0, 3)))
        assert updated.total_amount == 43.0
        assert len(updated.items) == 2
        assert s.query(SaleItem).count() == 2
        assert updated.paid_amount == 5.0


def test_update_sale_ignores_paid_amount_when_payments_exist(caplog):
    with _session() as s:
        c = _seed(s)
        sale = repo.create_sale(s, customer_id=c.id, date=date(2024, 5, 2), paid_amount=10.0, items=_items((50.0, 1)))
        repo.add_sale_payment(s, sale.id, 15.0, date(2024, 5, 4))
        with caplog.at_level("WARNING"):
            updated = repo.update_sale(s, sale.id, customer_id=c.id, date=date(2024, 5, 2), notes=None,
                                       paid_amount=999.0, items=_items((50.0, 1)))
        assert updated.paid_amount == 25.0
        assert "ignorado" in caplog.text


def test_update_missing_sale_returns_none():
    with _session() as s:
        assert repo.update_sale(s, 42, customer_id=1, date=date(2024, 1, 1)) is None


def test_payments_keep_paid_amount_in_sync():
    with _session() as s:
        c = _seed(s)
        sale = repo.create_sale(s, customer_id=c.id, date=date(2024, 5, 2), items=_items((100.0, 1)))
        p1 = repo.add_sale_payment(s, sale.id, 30.0, date(2024, 5, 5))
        repo.add_sale_payment(s, sale.id, 20.0, date(2024, 5, 3))
        assert s.get(Sale, sale.id).paid_amount == 50.0
        assert [p.amount for p in repo.list_sale_payments(s, sale.id)] == [20.0, 30.0]

        assert repo.delete_sale_payment(s, p1.id) == sale.id
        assert s.get(Sale, sale.id).paid_amount == 20.0
        assert repo.delete_sale_payment(s, 9999) is None


def test_add_payment_to_missing_sale_raises():
    with _session() as s:
        try:
            repo.add_sale_payment(s, 77, 10.0, date(2024, 1, 1))
        except ValueError as exc:
            assert "77" in str(exc)
        else:
            raise AssertionError("se esperaba ValueError")


def test_delete_sale_cascades_items_and_payments():
    with _session() as s:
        c = _seed(s)
        sale = repo.create_sale(s, customer_id=c.id, date=date(2024, 5, 2), paid_amount=5.0, items=_items((10.0, 1)))
        assert repo.delete_sale_by_id(s, sale.id) is True
        assert s.query(SaleItem).count() == 0
        assert s.query(SalePayment).count() == 0
        assert repo.delete_sale_by_id(s, sale.id) is False


def test_list_sales_paginates_sorts_and_searches():
    with _session() as s:
        c = _seed(s)
        other = repo.add_customer(s, full_name="Pedro Salas")
        for day in range(1, 13):
            repo.create_sale(s, customer_id=c.id if day % 2 else other.id, date=date(2024, 6, day),
                             notes="urgente" if day == 7 else None, items=_items((float(day), 1)))

        page1, total = repo.list_sales(s, page=1, per_page=5)
        assert total == 12
        assert [x.date.day for x in page1] == [12, 11, 10, 9, 8]
        page3, _ = repo.list_sales(s, page=3, per_page=5)
        assert len(page3) == 2
        assert repo.total_pages(total, 5) == 3
        assert repo.total_pages(0, 5) == 1

        asc, _ = repo.list_sales(s, per_page=3, sort_by="total_amount", sort_order="asc")
        assert [x.total_amount for x in asc] == [1.0, 2.0, 3.0]

        by_name, n = repo.list_sales(s, search="pedro", per_page=50)
        assert n == 6 and all(x.customer_id == other.id for x in by_name)
        by_notes, n = repo.list_sales(s, search="URGENTE")
        assert n == 1 and by_notes[0].date.day == 7
        by_id, n = repo.list_sales(s, search=str(page1[0].id))
        assert n == 1


def test_display_number_and_system_config():
    assert repo.get_sale_display_number(7, date(2024, 1, 9)) == "V-20240109-007"
    with _session() as s:
        assert repo.get_system_config(s, "company_name", "x") == "x"
        repo.set_system_config(s, "company_name", "Farmacia Central")
        repo.set_system_config(s, "company_name", "Farmacia Norte")
        assert repo.get_system_config(s, "company_name") == "Farmacia Norte"
