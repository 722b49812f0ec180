"""Guarda los datos de la farmacia que aparecen en el encabezado de la factura.

Uso:
  python scripts/init_company_info.py "Farmacia Central" "Av. Bolívar 12" "0212-5550000"
"""
from __future__ import annotations
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from src.farmacia_app.db import make_engine, make_session_factory
from src.farmacia_app.receipts import COMPANY_KEYS
from src.farmacia_app.repository import init_db, set_system_config


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    values = dict(zip(("name", "address", "phone"), sys.argv[1:4]))

    engine = make_engine()
    init_db(engine, seed=True)
    Session = make_session_factory(engine)
    with Session() as s:
        for field, value in values.items():
            set_system_config(s, COMPANY_KEYS[field], value, description=f"Empresa: {field}")
            print(f"{COMPANY_KEYS[field]} = {value}")


if __name__ == '__main__':
    main()
